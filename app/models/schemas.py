from pydantic import BaseModel, Field, field_validator
from typing import Any, Dict, List, Optional, Union

from app.models.engine import RequirementSet

# -------- AI endpoints --------
class ScreenApplicationsRequest(BaseModel):
    job_id: str
    application_ids: List[str] = Field(min_length=1)

class RoleRequirements(RequirementSet):
    title: Optional[str] = None

class SkillGapRequest(BaseModel):
    employee_id: str
    target_role: Union[str, RoleRequirements]

    @field_validator('target_role')
    @classmethod
    def validate_target_role(cls, v):
        if isinstance(v, str) and not v.strip():
            raise ValueError('target_role must not be empty')
        return v

class SentimentRequest(BaseModel):
    text: str
    context: Optional[str] = None

class PerformanceRequest(BaseModel):
    employee_id: str

# -------- Chatbot --------
class ChatMessageRequest(BaseModel):
    message: str = Field(min_length=1, max_length=2000)
    conversation_id: Optional[str] = None

    @field_validator('message')
    @classmethod
    def validate_message(cls, v):
        if not v.strip():
            raise ValueError('message must not be blank')
        return v.strip()

class FeedbackRequest(BaseModel):
    conversation_id: str
    message_index: int = Field(ge=0)
    rating: int = Field(ge=1, le=5)
    feedback: Optional[str] = None

# -------- Screening --------
class ScreeningOutcome(BaseModel):
    application_id: str
    candidate_name: str = ""
    recommendation: str
    overall_score: Optional[int] = None
    confidence: Optional[float] = None
    error: Optional[str] = None
    analysis: Optional[Dict[str, Any]] = None
