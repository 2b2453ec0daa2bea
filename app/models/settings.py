"""
Engine Settings and Catalog Models
"""
from typing import Dict, List
from pydantic import BaseModel, Field, field_validator, model_validator


class ScoringWeights(BaseModel):
    """Weights of the component scores in the overall resume score"""
    skills: float = Field(default=0.4, ge=0.0, le=1.0, description="Weight for skills match")
    experience: float = Field(default=0.3, ge=0.0, le=1.0, description="Weight for experience match")
    education: float = Field(default=0.2, ge=0.0, le=1.0, description="Weight for education match")
    keywords: float = Field(default=0.1, ge=0.0, le=1.0, description="Weight for keyword match")

    @model_validator(mode="after")
    def validate_total_weights(self):
        total = self.skills + self.experience + self.education + self.keywords
        if abs(total - 1.0) > 0.01:  # Allow small floating point errors
            raise ValueError('Scoring weights must sum to 1.0')
        return self


class Thresholds(BaseModel):
    """Decision thresholds"""
    strength: float = Field(default=0.6, ge=0.0, le=1.0, description="Component score at or above which it counts as a strength")
    intent_confidence: float = Field(default=0.3, ge=0.0, le=1.0, description="Intent confidence at or below which the query is unknown")
    default_minimum_score: int = Field(default=60, ge=0, le=100, description="Shortlisting score when a job sets none")


class EngineLimits(BaseModel):
    """Size limits for generated lists and stored history"""
    max_suggestions: int = Field(default=6, ge=1)
    max_recommendations: int = Field(default=5, ge=1)
    history_limit: int = Field(default=50, ge=1)
    context_window: int = Field(default=10, ge=1)
    skill_confidence_saturation: int = Field(default=3, ge=1, description="Occurrences at which skill confidence reaches 1.0")
    evidence_target: int = Field(default=3, ge=1, description="Statements at which experience evidence saturates")
    months_per_level: int = Field(default=3, ge=1, description="Estimated months to advance one proficiency level")


class EngineSettings(BaseModel):
    """Complete engine configuration"""
    weights: ScoringWeights = Field(default_factory=ScoringWeights)
    thresholds: Thresholds = Field(default_factory=Thresholds)
    limits: EngineLimits = Field(default_factory=EngineLimits)


class IntentDefinition(BaseModel):
    category: str
    keywords: List[str]

    @field_validator('keywords')
    @classmethod
    def validate_keywords(cls, v):
        if not v:
            raise ValueError('Intent keyword list cannot be empty')
        return [k.lower() for k in v]


class RoleSuggestion(BaseModel):
    text: str
    category: str


class SuggestionCatalog(BaseModel):
    base: List[str] = Field(default_factory=list)
    roles: Dict[str, List[str]] = Field(default_factory=dict)
    intents: Dict[str, List[str]] = Field(default_factory=dict)


class SentimentLexicon(BaseModel):
    positive: List[str] = Field(default_factory=list)
    negative: List[str] = Field(default_factory=list)


class Catalog(BaseModel):
    """Keyword, skill and suggestion tables loaded from catalog.json"""
    skill_categories: Dict[str, List[str]]
    skill_levels: Dict[str, int]
    proficiency_cues: Dict[str, List[str]] = Field(default_factory=dict)
    importance_weights: Dict[str, int] = Field(default_factory=lambda: {"high": 3, "medium": 2, "low": 1})
    experience_levels: Dict[str, float] = Field(default_factory=dict)
    intents: List[IntentDefinition]
    suggestions: SuggestionCatalog = Field(default_factory=SuggestionCatalog)
    role_suggestions: Dict[str, List[RoleSuggestion]] = Field(default_factory=dict)
    role_permissions: Dict[str, List[str]] = Field(default_factory=dict)
    sentiment: SentimentLexicon = Field(default_factory=SentimentLexicon)
    skill_resources: Dict[str, List[str]] = Field(default_factory=dict)

    @field_validator('proficiency_cues')
    @classmethod
    def validate_cue_levels(cls, v, info):
        levels = info.data.get('skill_levels', {})
        unknown = [level for level in v if level not in levels]
        if unknown:
            raise ValueError(f'Proficiency cues reference unknown levels: {unknown}')
        return v

    def skill_category(self, skill: str) -> str:
        skill = skill.lower()
        for category, skills in self.skill_categories.items():
            if skill in skills:
                return category
        return "other"

    def level_value(self, level) -> int:
        return self.skill_levels.get((level or "").lower(), 0)
