"""
Performance prediction from employee signals.

A fixed-weight linear model over a 30-slot feature vector. Slots 0-9 hold
experience signals, 10-19 behaviour, 20-29 engagement; unused slots stay 0.
"""
from datetime import datetime
from typing import Any, Callable, Dict, List, NamedTuple, Optional

import numpy as np

from app.models.engine import PerformanceFactor, PerformancePrediction
from app.utils.logging_config import get_logger

logger = get_logger(__name__)

FEATURE_COUNT = 30


class FeatureSpec(NamedTuple):
    index: int
    key: str
    label: str
    default: float
    weight: float
    normalize: Callable[[Any], float]


def _ratio(v) -> float:
    return float(v)


def _count(cap: float) -> Callable[[Any], float]:
    def f(v) -> float:
        n = len(v) if isinstance(v, (list, tuple, set)) else float(v or 0)
        return min(float(n), cap) / cap
    return f


FEATURES: List[FeatureSpec] = [
    FeatureSpec(0, "years_of_experience", "Years of experience", 0.0, 1.0, _count(20)),
    FeatureSpec(1, "skills", "Skill breadth", 0.0, 0.5, _count(50)),
    FeatureSpec(2, "education_level", "Education level", 0.0, 0.5, _ratio),
    FeatureSpec(3, "certifications", "Certifications", 0.0, 0.5, _count(10)),
    FeatureSpec(4, "previous_rating", "Previous ratings", 0.0, 1.5, _ratio),
    FeatureSpec(10, "attendance_rate", "Attendance", 0.95, 1.0, _ratio),
    FeatureSpec(11, "project_completion_rate", "Project completion", 0.8, 1.5, _ratio),
    FeatureSpec(12, "teamwork_score", "Teamwork", 0.7, 1.0, _ratio),
    FeatureSpec(13, "communication_score", "Communication", 0.7, 1.0, _ratio),
    FeatureSpec(14, "leadership_score", "Leadership", 0.5, 0.75, _ratio),
    FeatureSpec(20, "training_hours", "Training hours", 0.0, 0.5, _count(100)),
    FeatureSpec(21, "feedback_score", "Feedback", 0.7, 1.0, _ratio),
    FeatureSpec(22, "goal_achievement_rate", "Goal achievement", 0.8, 1.5, _ratio),
    FeatureSpec(23, "innovation_score", "Innovation", 0.5, 0.75, _ratio),
    FeatureSpec(24, "adaptability_score", "Adaptability", 0.7, 0.75, _ratio),
]

WEIGHTS = np.zeros(FEATURE_COUNT)
for _spec in FEATURES:
    WEIGHTS[_spec.index] = _spec.weight

RECOMMENDATIONS = {
    "attendance_rate": "Review attendance patterns and agree on a schedule",
    "project_completion_rate": "Break projects into smaller milestones with regular check-ins",
    "teamwork_score": "Pair on cross-team work to strengthen collaboration",
    "communication_score": "Enrol in a communication skills workshop",
    "leadership_score": "Offer opportunities to lead small initiatives",
    "feedback_score": "Schedule regular one-to-one feedback sessions",
    "goal_achievement_rate": "Set clearer, measurable quarterly goals",
    "innovation_score": "Encourage participation in innovation or hack days",
    "adaptability_score": "Rotate through varied assignments to build adaptability",
    "training_hours": "Allocate time for structured training",
}

STRONG = 0.7
WEAK = 0.5


def extract_performance_features(employee_data: Dict[str, Any]) -> np.ndarray:
    features = np.zeros(FEATURE_COUNT)
    for spec in FEATURES:
        raw = employee_data.get(spec.key)
        value = spec.default if raw is None else spec.normalize(raw)
        features[spec.index] = value
    return np.clip(features, 0.0, 1.0)


def predict_performance(employee_data: Dict[str, Any]) -> PerformancePrediction:
    features = extract_performance_features(employee_data)
    raw = float(np.dot(WEIGHTS, features) / WEIGHTS.sum())
    value = min(1.0, max(0.0, raw))

    factors = []
    recommendations = []
    contributions = sorted(FEATURES, key=lambda s: s.weight * features[s.index], reverse=True)
    for spec in contributions:
        v = float(features[spec.index])
        if v >= STRONG and len([f for f in factors if f.impact == "positive"]) < 3:
            factors.append(PerformanceFactor(factor=spec.label, value=round(v, 2), impact="positive"))
    for spec in FEATURES:
        v = float(features[spec.index])
        if v < WEAK:
            factors.append(PerformanceFactor(factor=spec.label, value=round(v, 2), impact="negative"))
            if spec.key in RECOMMENDATIONS:
                recommendations.append(RECOMMENDATIONS[spec.key])

    supplied = sum(1 for spec in FEATURES if employee_data.get(spec.key) is not None)
    prediction = PerformancePrediction(
        score=int(np.floor(value * 100 + 0.5)),
        factors=factors,
        recommendations=recommendations[:5],
        confidence=round(supplied / len(FEATURES), 2),
    )
    logger.debug(f"Performance prediction score={prediction.score} confidence={prediction.confidence}")
    return prediction


EDUCATION_LEVELS = {"phd": 1.0, "doctor": 1.0, "master": 0.8, "mba": 0.8, "bachelor": 0.6, "associate": 0.4, "diploma": 0.3}


def _years_since(value) -> Optional[float]:
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    if not isinstance(value, datetime):
        return None
    now = datetime.now(value.tzinfo) if value.tzinfo else datetime.utcnow()
    return max(0.0, (now - value).days / 365.25)


def _education_level(education) -> Optional[float]:
    best = None
    for entry in education or []:
        degree = str(entry.get("degree", "") if isinstance(entry, dict) else entry).lower()
        for marker, level in EDUCATION_LEVELS.items():
            if marker in degree and (best is None or level > best):
                best = level
    return best


def employee_performance_data(employee: Dict[str, Any]) -> Dict[str, Any]:
    """Map a stored employee document to the keys predict_performance reads"""
    data: Dict[str, Any] = dict(employee.get("metrics") or {})
    years = employee.get("years_of_experience")
    if years is None:
        years = _years_since(employee.get("hire_date"))
    data["years_of_experience"] = years
    data["skills"] = employee.get("skills")
    data["certifications"] = employee.get("certifications")
    data["education_level"] = _education_level(employee.get("education"))

    rating = (employee.get("performance") or {}).get("rating")
    if rating is not None:
        data["previous_rating"] = float(rating) / 5
    return {k: v for k, v in data.items() if v is not None}
