import pytest

from app.models.engine import (
    EducationStatement, ExperienceStatement, ExtractedSkill, FeatureSet, RequiredSkill, RequirementSet,
)
from app.models.settings import EngineSettings, ScoringWeights
from app.services.matching import (
    aggregate_role_requirements, analyze_resume, analyze_skill_gaps, categorize,
    keyword_match, requirement_set_from_job, round_half_up, score,
)
from app.utils.exceptions import ValidationError


def skill(name, level="intermediate"):
    return ExtractedSkill(name=name, level=level)


class TestScore:

    def test_react_advanced_mandatory(self, react_features, react_requirements):
        result = score(react_features, react_requirements)

        assert result.skills_match == 1.0
        assert result.experience_match == 0.0
        assert result.education_match == 0.0
        assert result.keyword_match == 0.0
        assert result.overall_score == 40
        assert "Meets mandatory skill: React (advanced)" in result.strengths
        assert "Strong skills match (100%)" in result.strengths
        assert "Weak experience match (0%)" in result.weaknesses
        assert result.confidence == 0.5

    def test_no_required_skills_is_full_skills_match(self):
        result = score(FeatureSet(), RequirementSet())
        assert result.skills_match == 1.0
        assert not any("skills match" in s for s in result.strengths + result.weaknesses)

    def test_missing_mandatory_skill(self, react_requirements):
        result = score(FeatureSet(skills=[skill("Python")]), react_requirements)
        assert result.skills_match == 0.0
        assert "Missing mandatory skill: React" in result.weaknesses
        assert result.recommendations[0] == "Start learning React fundamentals"

    def test_partial_level_credit(self):
        requirements = RequirementSet(skills=[RequiredSkill(name="python", level="expert")])
        result = score(FeatureSet(skills=[skill("Python", "intermediate")]), requirements)
        assert result.skills_match == pytest.approx(0.5)

    def test_mandatory_skills_weigh_double(self):
        requirements = RequirementSet(skills=[
            RequiredSkill(name="python", mandatory=True),
            RequiredSkill(name="docker"),
        ])
        result = score(FeatureSet(skills=[skill("python")]), requirements)
        assert result.skills_match == pytest.approx(2 / 3)

    def test_adding_matching_skill_never_lowers_skills_match(self):
        requirements = RequirementSet(skills=[
            RequiredSkill(name="python", level="advanced", mandatory=True),
            RequiredSkill(name="react"),
            RequiredSkill(name="docker", level="expert"),
        ])
        skills = []
        previous = score(FeatureSet(skills=skills), requirements).skills_match
        for extra in [skill("docker", "beginner"), skill("python", "advanced"), skill("react"), skill("docker", "expert")]:
            skills = skills + [extra]
            current = score(FeatureSet(skills=skills), requirements).skills_match
            assert current >= previous
            previous = current
        assert previous == 1.0

    def test_experience_years_against_minimum(self):
        features = FeatureSet(experience=[ExperienceStatement(description="Engineer at X for 2 years", duration_years=2)])
        result = score(features, RequirementSet(min_years_experience=4))
        assert result.experience_match == pytest.approx(0.5)

    def test_experience_statements_without_minimum(self):
        features = FeatureSet(experience=[ExperienceStatement(description=f"Role {i}") for i in range(5)])
        assert score(features, RequirementSet()).experience_match == 1.0

    def test_education_terms(self):
        features = FeatureSet(education=[EducationStatement(description="BSc Computer Science, Leeds University")])
        requirements = RequirementSet(education=["computer science", "mba"])
        assert score(features, requirements).education_match == pytest.approx(0.5)
        assert score(features, RequirementSet(education=["computer science"])).education_match == 1.0

    def test_components_bounded_and_pure(self, resume_text):
        requirements = RequirementSet(
            skills=[RequiredSkill(name="python", level="expert", mandatory=True), RequiredSkill(name="aws")],
            keywords=["microservices", "python"],
            min_years_experience=5,
            education=["computer science"],
        )
        first = analyze_resume(resume_text, requirements)
        second = analyze_resume(resume_text, requirements)

        assert first == second
        assert 0 <= first.overall_score <= 100
        for value in (first.skills_match, first.experience_match, first.education_match, first.keyword_match, first.confidence):
            assert 0.0 <= value <= 1.0
        assert len(first.recommendations) <= 5

    def test_custom_weights(self, react_features, react_requirements):
        settings = EngineSettings(weights=ScoringWeights(skills=1.0, experience=0.0, education=0.0, keywords=0.0))
        assert score(react_features, react_requirements, settings=settings).overall_score == 100

    def test_weights_must_sum_to_one(self):
        with pytest.raises(ValueError):
            ScoringWeights(skills=0.5, experience=0.5, education=0.5, keywords=0.5)


class TestAnalyzeResume:

    @pytest.mark.parametrize("text", ["", "   ", None, 12])
    def test_malformed_input_scores_zero(self, text, react_requirements):
        result = analyze_resume(text, react_requirements)
        assert result.overall_score == 0
        assert result.skills_match == 0.0
        assert result.confidence == 0.0
        assert result.weaknesses

    def test_keywords(self):
        assert keyword_match("Built REST APIs in Python", ["python", "rest", "graphql", "kafka"]) == 0.5
        assert keyword_match("anything", []) == 0.0


class TestHelpers:

    @pytest.mark.parametrize("value,expected", [(0.5, 1), (1.5, 2), (2.5, 3), (39.9999, 40), (0.49, 0)])
    def test_round_half_up(self, value, expected):
        assert round_half_up(value) == expected

    def test_categorize(self, react_features, react_requirements):
        result = score(react_features, react_requirements)
        assert categorize(result, 40) == "shortlist"
        assert categorize(result, 41) == "review"

    def test_requirement_set_from_job(self):
        job = {
            "job_id": "job1",
            "skills": [
                {"name": "Python", "level": "Advanced", "mandatory": True},
                {"name": "Docker", "level": "wizard", "importance": "low"},
                {"level": "expert"},
            ],
            "experience_level": "senior",
            "education": ["Computer Science"],
            "ai_criteria": {"minimum_score": 70, "keyword_weights": [{"keyword": "microservices", "weight": 2}]},
        }
        requirements = requirement_set_from_job(job)

        assert [(s.name, s.level, s.mandatory, s.importance) for s in requirements.skills] == [
            ("Python", "advanced", True, "medium"),
            ("Docker", "intermediate", False, "low"),
        ]
        assert requirements.min_years_experience == 5
        assert requirements.keywords == ["microservices"]
        assert requirements.minimum_score == 70
        assert requirements.education == ["Computer Science"]

    def test_requirement_set_defaults(self):
        requirements = requirement_set_from_job({"job_id": "job2"})
        assert requirements.skills == []
        assert requirements.min_years_experience is None
        assert requirements.minimum_score == 60

    @pytest.mark.parametrize("stored,expected", [(None, 60), (70.0, 70), (0, 0), (100, 100)])
    def test_stored_minimum_score_is_normalised(self, stored, expected):
        requirements = requirement_set_from_job({"job_id": "job3", "ai_criteria": {"minimum_score": stored}})
        assert requirements.minimum_score == expected

    @pytest.mark.parametrize("stored", [65.5, "70", True, -1, 101])
    def test_bad_stored_minimum_score_names_the_job(self, stored):
        with pytest.raises(ValidationError) as exc_info:
            requirement_set_from_job({"job_id": "job3", "ai_criteria": {"minimum_score": stored}})
        assert "job3" in exc_info.value.message
        assert exc_info.value.details["field"] == "ai_criteria.minimum_score"

    def test_aggregate_role_requirements_keeps_common_skills(self):
        jobs = [
            {"skills": [{"name": "Python", "level": "advanced", "mandatory": True}, {"name": "Go"}]},
            {"skills": [{"name": "python"}, {"name": "AWS"}]},
            {"skills": [{"name": "AWS", "level": "beginner"}]},
        ]
        requirements = aggregate_role_requirements(jobs)
        assert [(s.name, s.level, s.importance) for s in requirements.skills] == [
            ("Python", "advanced", "high"),
            ("AWS", "intermediate", "medium"),
        ]


class TestSkillGaps:

    def test_gaps_strengths_and_timeline(self):
        requirements = RequirementSet(skills=[
            RequiredSkill(name="docker", level="intermediate", importance="low"),
            RequiredSkill(name="python", level="advanced", mandatory=True, importance="high"),
            RequiredSkill(name="sql", level="beginner"),
        ])
        current = [skill("Python", "beginner"), skill("SQL", "advanced")]
        analysis = analyze_skill_gaps(current, requirements)

        assert [g.skill for g in analysis.gaps] == ["python", "docker"]
        assert analysis.gaps[0].priority == 6
        assert analysis.gaps[0].current_level == "beginner"
        assert analysis.gaps[1].current_level == "none"
        assert [(s.skill, s.advantage) for s in analysis.strengths] == [("SQL", 2)]

        assert analysis.recommendations[0].action == "Advance python from beginner to advanced"
        assert analysis.recommendations[1].action == "Start learning docker fundamentals"
        assert analysis.recommendations[1].resources == ["Cloud provider certification track", "Infrastructure sandbox project"]
        assert [r.timeline_months for r in analysis.recommendations] == [6, 6]
        assert analysis.timeline_months == 12

    def test_no_gaps(self):
        requirements = RequirementSet(skills=[RequiredSkill(name="python", level="beginner")])
        analysis = analyze_skill_gaps([skill("python", "expert")], requirements)
        assert analysis.gaps == [] and analysis.recommendations == []
        assert analysis.timeline_months == 0
