from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional, Literal
from datetime import datetime

SkillLevel = Literal["beginner", "intermediate", "advanced", "expert"]
Importance = Literal["high", "medium", "low"]

UNKNOWN_INTENT = "unknown"

# -------- Requirements --------
class RequiredSkill(BaseModel):
    name: str
    level: SkillLevel = "intermediate"
    mandatory: bool = False
    importance: Importance = "medium"

class RequirementSet(BaseModel):
    """Target skills and keywords a text is matched against"""
    skills: List[RequiredSkill] = Field(default_factory=list)
    keywords: List[str] = Field(default_factory=list)
    min_years_experience: Optional[float] = Field(default=None, ge=0)
    education: List[str] = Field(default_factory=list)
    minimum_score: int = Field(default=60, ge=0, le=100)

# -------- Extracted features --------
class ExtractedSkill(BaseModel):
    name: str
    category: str = "other"
    confidence: float = Field(default=1.0, ge=0.0, le=1.0)
    level: Optional[str] = None

class ExperienceStatement(BaseModel):
    description: str
    duration_years: Optional[float] = None
    company: Optional[str] = None

class EducationStatement(BaseModel):
    description: str
    degree: Optional[str] = None
    institution: Optional[str] = None
    year: Optional[int] = None

class FeatureSet(BaseModel):
    """Structured attributes extracted from free text"""
    skills: List[ExtractedSkill] = Field(default_factory=list)
    experience: List[ExperienceStatement] = Field(default_factory=list)
    education: List[EducationStatement] = Field(default_factory=list)
    text: str = ""

    @property
    def total_years(self) -> float:
        return sum(e.duration_years or 0.0 for e in self.experience)

# -------- Scores --------
class ScoreResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    overall_score: int = Field(ge=0, le=100)
    skills_match: float = Field(ge=0.0, le=1.0)
    experience_match: float = Field(ge=0.0, le=1.0)
    education_match: float = Field(ge=0.0, le=1.0)
    keyword_match: float = Field(ge=0.0, le=1.0)
    strengths: List[str] = Field(default_factory=list)
    weaknesses: List[str] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)
    confidence: float = Field(ge=0.0, le=1.0)

    @classmethod
    def empty(cls) -> "ScoreResult":
        """Result for input that carries no usable text"""
        return cls(
            overall_score=0, skills_match=0.0, experience_match=0.0,
            education_match=0.0, keyword_match=0.0, confidence=0.0,
            weaknesses=["No readable resume content was provided"],
        )

class SkillGap(BaseModel):
    skill: str
    importance: Importance = "medium"
    current_level: str = "none"
    target_level: str
    priority: int

class SkillStrength(BaseModel):
    skill: str
    level: str
    advantage: int

class SkillRecommendation(BaseModel):
    skill: str
    action: str
    resources: List[str] = Field(default_factory=list)
    timeline_months: int

class SkillGapAnalysis(BaseModel):
    gaps: List[SkillGap] = Field(default_factory=list)
    strengths: List[SkillStrength] = Field(default_factory=list)
    recommendations: List[SkillRecommendation] = Field(default_factory=list)
    timeline_months: int = 0

# -------- Chat --------
class Intent(BaseModel):
    category: str = UNKNOWN_INTENT
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)

class Entities(BaseModel):
    dates: List[str] = Field(default_factory=list)
    numbers: List[str] = Field(default_factory=list)

class Feedback(BaseModel):
    rating: int = Field(ge=1, le=5)
    comment: Optional[str] = None
    user_id: Optional[str] = None
    timestamp: datetime = Field(default_factory=datetime.utcnow)

class ConversationTurn(BaseModel):
    role: Literal["user", "assistant"]
    content: str
    timestamp: datetime = Field(default_factory=datetime.utcnow)
    intent: Optional[Intent] = None
    confidence: Optional[float] = None
    feedback: Optional[Feedback] = None

class CallerContext(BaseModel):
    """Who is asking, used to personalise responses and suggestions"""
    user_id: str
    name: Optional[str] = None
    role: str = "employee"
    department: Optional[str] = None
    position: Optional[str] = None
    history: List[ConversationTurn] = Field(default_factory=list)

class AssistantReply(BaseModel):
    response: str
    intent: Intent
    entities: Entities = Field(default_factory=Entities)
    suggestions: List[str] = Field(default_factory=list)

# -------- Sentiment / performance --------
class SentimentResult(BaseModel):
    score: float = Field(ge=-1.0, le=1.0)
    sentiment: Literal["positive", "negative", "neutral"]
    confidence: float = Field(ge=0.0, le=1.0)
    tokens: List[str] = Field(default_factory=list)

class PerformanceFactor(BaseModel):
    factor: str
    value: float
    impact: Literal["positive", "negative"]

class PerformancePrediction(BaseModel):
    score: int = Field(ge=0, le=100)
    factors: List[PerformanceFactor] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)
    confidence: float = Field(ge=0.0, le=1.0)
