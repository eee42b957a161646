#!/usr/bin/env python3
"""
Demo script for the matching core
Run: python scripts/demo_matching.py
"""
import os
import sys

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from helpix.schemas.matching import TaskRecord, UserProfile, UserSkill, UserStats
from helpix.services.compatibility import score_compatibility
from helpix.services.profiles import to_matching_profile
from helpix.services.proximity import generate_proximity_alerts
from helpix.services.recommendations import generate_recommendations


def demo_matching():
    """Score one Paris helper against tasks in Paris and Lyon."""

    helper = UserProfile(
        id="demo-helper",
        display_name="Camille",
        latitude=48.8566,
        longitude=2.3522,
        skills=[UserSkill(skill_name="Jardinage", category="gardening", proficiency_level="advanced")],
        stats=UserStats(completion_rate=92, total_tasks_completed=14, response_time_minutes=25),
        reputation_score=78,
        trust_level="verified",
    )

    tasks = [
        TaskRecord(id=1, user_id="demo-owner", title="Tailler la haie", category="gardening",
                   required_skills=["Jardinage"], budget_credits=45,
                   latitude=48.8570, longitude=2.3530),
        TaskRecord(id=2, user_id="demo-owner", title="Arroser le potager", category="gardening",
                   priority="urgent", required_skills=["Jardinage"], budget_credits=20,
                   latitude=45.7640, longitude=4.8357),
        TaskRecord(id=3, user_id="demo-owner", title="Monter une étagère", category="home_improvement",
                   required_skills=["Bricolage"], budget_credits=30,
                   latitude=48.8600, longitude=2.3400),
    ]

    print("=" * 60)
    print("HELPIX MATCHING DEMO")
    print("=" * 60)

    print("\n[1] Compatibility scores")
    for task in tasks:
        result = score_compatibility(helper, to_matching_profile(task))
        distance = f"{result.distance_km:.2f} km" if result.distance_km is not None else "n/a"
        print(f"   {task.title:<22} {result.compatibility_score:.3f}  ({distance})")
        for reason in result.reasons:
            print(f"      + {reason}")
        for suggestion in result.suggestions:
            print(f"      - {suggestion}")

    print("\n[2] Recommendations")
    for rec in generate_recommendations(helper, tasks):
        print(f"   {rec.id:<18} {rec.score:.3f} {rec.priority:<6} {rec.reason}")

    print("\n[3] Proximity alerts")
    for alert in generate_proximity_alerts(helper, tasks):
        print(f"   {alert.id:<20} {alert.distance_km:.2f} km")


if __name__ == "__main__":
    demo_matching()
