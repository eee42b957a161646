"""
Helpix Skill Comparator
Compares a helper's declared skills with a task's skill requirements
"""
from dataclasses import dataclass, field
from typing import Iterable, Optional

from helpix.schemas.matching import SkillRequirement, UserSkill

# Ratio used when a task lists no required skills
NO_REQUIREMENTS_RATIO = 0.8

# Credit for a requirement met only through a related skill group
RELATED_SKILL_CREDIT = 0.5

PROFICIENCY_SCORES = {
    "expert": 1.0,
    "advanced": 0.8,
    "intermediate": 0.6,
    "beginner": 0.4,
}

# Skills that count as related when both names hit the same group
SKILL_GROUPS = {
    "bricolage": ["réparation", "reparation", "maintenance", "outils", "construction", "diy", "repair"],
    "jardinage": ["botanique", "nature", "plantes", "gardening", "plants"],
    "informatique": ["technologie", "ordinateur", "logiciel", "programmation", "computer", "software"],
    "cuisine": ["alimentation", "recette", "gastronomie", "cooking"],
    "transport": ["véhicule", "vehicule", "conduite", "livraison", "déménagement", "demenagement", "moving"],
    "nettoyage": ["ménage", "menage", "hygiène", "hygiene", "cleaning"],
    "éducation": ["enseignement", "cours", "formation", "apprentissage", "tutoring"],
}


@dataclass(frozen=True)
class SkillComparison:
    """Result of comparing user skills to task requirements."""
    match_ratio: float
    satisfied: list[str] = field(default_factory=list)
    related: list[str] = field(default_factory=list)
    missing: list[str] = field(default_factory=list)
    missing_mandatory: list[str] = field(default_factory=list)
    average_proficiency: float = 0.0


def normalize_skill(name: str) -> str:
    """Case-insensitive, whitespace-trimmed skill key."""
    return " ".join(name.strip().lower().split())


def _skill_groups(name: str) -> set[str]:
    key = normalize_skill(name)
    return {
        main for main, related in SKILL_GROUPS.items()
        if main in key or any(r in key for r in related)
    }


def are_skills_related(skill_a: str, skill_b: str) -> bool:
    """True when both skill names fall into a common related-skill group."""
    return bool(_skill_groups(skill_a) & _skill_groups(skill_b))


def requirements_from_names(names: Iterable[str]) -> list[SkillRequirement]:
    """Flat skill names become mandatory, intermediate, full-weight requirements."""
    seen = set()
    requirements = []
    for name in names:
        if not name or not name.strip():
            continue
        key = normalize_skill(name)
        if key in seen:
            continue
        seen.add(key)
        requirements.append(SkillRequirement(skill_name=name.strip()))
    return requirements


def compare_skills(
    user_skills: Iterable[UserSkill],
    requirements: Iterable[SkillRequirement],
    related_credit: Optional[float] = RELATED_SKILL_CREDIT,
) -> SkillComparison:
    """
    Compare a user's skills with a task's requirements.

    Exact case-insensitive name matches satisfy a requirement with its full
    weight. When related_credit is set, a requirement that only matches via a
    related skill group earns that fraction of its weight. Pass
    related_credit=None for exact matching only.

    Returns:
        SkillComparison with match_ratio in [0, 1] and the missing skills
    """
    user_skills = list(user_skills)
    requirements = list(requirements)

    if not requirements:
        return SkillComparison(match_ratio=NO_REQUIREMENTS_RATIO)

    by_name = {normalize_skill(s.skill_name): s for s in user_skills}

    total_weight = 0.0
    earned = 0.0
    satisfied, related, missing, missing_mandatory = [], [], [], []
    proficiencies = []

    for req in requirements:
        weight = req.weight
        total_weight += weight

        user_skill = by_name.get(normalize_skill(req.skill_name))
        if user_skill is not None:
            earned += weight
            satisfied.append(req.skill_name)
            proficiencies.append(PROFICIENCY_SCORES.get(user_skill.proficiency_level, 0.2))
            continue

        if related_credit:
            match = next(
                (s for s in user_skills if are_skills_related(s.skill_name, req.skill_name)),
                None,
            )
            if match is not None:
                earned += weight * related_credit
                related.append(req.skill_name)
                proficiencies.append(PROFICIENCY_SCORES.get(match.proficiency_level, 0.2))
                continue

        missing.append(req.skill_name)
        if req.is_mandatory:
            missing_mandatory.append(req.skill_name)

    # All-zero weights: fall back to counting requirements
    if total_weight <= 0:
        ratio = len(satisfied) / len(requirements)
    else:
        ratio = earned / total_weight

    return SkillComparison(
        match_ratio=max(0.0, min(1.0, ratio)),
        satisfied=satisfied,
        related=related,
        missing=missing,
        missing_mandatory=missing_mandatory,
        average_proficiency=sum(proficiencies) / len(proficiencies) if proficiencies else 0.0,
    )
