import os

os.environ.setdefault("ENVIRONMENT", "testing")
os.environ["LLM_ENABLED"] = "false"

import pytest

from app.models.engine import ExtractedSkill, FeatureSet, RequiredSkill, RequirementSet


@pytest.fixture
def react_requirements():
    return RequirementSet(skills=[RequiredSkill(name="React", level="advanced", mandatory=True, importance="high")])


@pytest.fixture
def react_features():
    return FeatureSet(skills=[ExtractedSkill(name="React", category="programming", level="advanced")])


@pytest.fixture
def resume_text():
    return (
        "Senior developer at Acme Corp from 2018 to 2021. Advanced Python and Docker user.\n"
        "Bachelor of Science in Computer Science, State University, 2017."
    )
