"""
Helpix Skill Gap Analyzer
Finds the skills open tasks ask for that a helper does not have
"""
from collections import Counter
from typing import Iterable

from helpix.schemas.matching import SkillGap, UserProfile
from helpix.services.profiles import to_matching_profile
from helpix.services.skills import are_skills_related, normalize_skill


def analyze_skill_gaps(user: UserProfile, tasks: Iterable, top_n: int = 5) -> list[SkillGap]:
    """
    Most demanded skills among the given tasks that the helper lacks.

    A skill counts as covered when the helper has it or a related one.

    Args:
        user: Helper profile snapshot
        tasks: TaskRecords or TaskMatchingProfiles
        top_n: Number of gaps to return

    Returns:
        SkillGaps ordered by the number of tasks requiring them
    """
    pool = [to_matching_profile(t) for t in tasks if t.user_id != user.id]
    if not pool:
        return []

    user_skills = [s.skill_name for s in user.skills]
    owned = {normalize_skill(name) for name in user_skills}

    demand = Counter()
    earnings = Counter()
    categories = {}
    display_names = {}
    for task in pool:
        # Count each skill once per task
        for name in {normalize_skill(s) for s in task.required_skills if s.strip()}:
            demand[name] += 1
            earnings[name] += task.budget_credits
            categories.setdefault(name, task.category)
        for s in task.required_skills:
            display_names.setdefault(normalize_skill(s), s.strip())

    gaps = []
    for skill, count in sorted(demand.items(), key=lambda item: (-item[1], item[0])):
        if skill in owned or any(are_skills_related(skill, name) for name in user_skills):
            continue
        gaps.append(SkillGap(
            skill_name=display_names.get(skill, skill),
            category=categories.get(skill, "other"),
            demand_level=_demand_level(count / len(pool)),
            tasks_requiring=count,
            potential_earnings=round(earnings[skill], 2),
        ))
        if len(gaps) >= top_n:
            break

    return gaps


def _demand_level(share: float) -> str:
    if share >= 0.3:
        return "high"
    if share >= 0.1:
        return "medium"
    return "low"
