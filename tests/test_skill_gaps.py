"""
Unit tests for dashboard skill gap analysis.
"""
from helpix.services.skill_gaps import analyze_skill_gaps


class TestSkillGaps:

    def test_missing_skills_ranked_by_demand(self, paris_user, make_task):
        tasks = [
            make_task(1, skills=("Bricolage", "Cuisine"), budget_credits=30),
            make_task(2, skills=("Bricolage",), budget_credits=20),
            make_task(3, skills=("Jardinage",)),
        ]

        gaps = analyze_skill_gaps(paris_user, tasks)

        assert [g.skill_name for g in gaps] == ["Bricolage", "Cuisine"]
        assert gaps[0].tasks_requiring == 2
        assert gaps[0].potential_earnings == 50
        assert gaps[0].demand_level == "high"

    def test_related_skills_count_as_covered(self, make_user, make_task):
        user = make_user(skills=("Plantes vertes",))
        assert analyze_skill_gaps(user, [make_task(skills=("Jardinage",))]) == []

    def test_owned_skill_outside_related_groups_is_covered(self, make_user, make_task):
        user = make_user(skills=("Plomberie",))
        tasks = [make_task(1, skills=("plomberie ",)), make_task(2, skills=("Plomberie", "Cuisine"))]

        assert [g.skill_name for g in analyze_skill_gaps(user, tasks)] == ["Cuisine"]

    def test_own_tasks_ignored(self, paris_user, make_task):
        tasks = [make_task(1, user_id=paris_user.id, skills=("Cuisine",))]
        assert analyze_skill_gaps(paris_user, tasks) == []

    def test_top_n(self, paris_user, make_task):
        tasks = [make_task(i, skills=(f"Skill {i}",)) for i in range(1, 10)]
        assert len(analyze_skill_gaps(paris_user, tasks, top_n=3)) == 3
