import math
from typing import Any, Dict, Iterable, List, Tuple

from app.models.engine import (
    ExtractedSkill, FeatureSet, RequiredSkill, RequirementSet, ScoreResult,
    SkillGap, SkillGapAnalysis, SkillRecommendation, SkillStrength,
)
from app.models.settings import Catalog, EngineSettings
from app.services.catalog import get_catalog, get_settings
from app.services.extractor import extract_features
from app.utils.exceptions import ValidationError
from app.utils.logging_config import get_logger, log_function_call

logger = get_logger(__name__)

COMPONENT_LABELS = {
    "skills_match": "skills match",
    "experience_match": "experience match",
    "education_match": "education match",
    "keyword_match": "keyword match",
}

COMPONENT_ADVICE = {
    "experience_match": "Describe relevant work experience with roles, employers and durations",
    "education_match": "Add education details such as degrees, institutions and graduation years",
    "keyword_match": "Include role-specific keywords from the job posting: {missing}",
}


def round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def level_match(candidate_level, required_level, catalog: Catalog) -> float:
    candidate = catalog.level_value(candidate_level)
    required = catalog.level_value(required_level) or 1
    return 1.0 if candidate >= required else candidate / required


def candidate_index(skills: Iterable[ExtractedSkill], catalog: Catalog) -> Dict[str, ExtractedSkill]:
    """Candidate skills by lowercased name, keeping the highest level per name"""
    index: Dict[str, ExtractedSkill] = {}
    for s in skills:
        key = s.name.lower()
        current = index.get(key)
        if current is None or catalog.level_value(s.level) > catalog.level_value(current.level):
            index[key] = s
    return index


def skill_priority(skill: RequiredSkill, catalog: Catalog) -> int:
    return catalog.importance_weights.get(skill.importance, 2) * (2 if skill.mandatory else 1)


def skills_match(index: Dict[str, ExtractedSkill], required: List[RequiredSkill], catalog: Catalog) -> float:
    total = 0.0
    matched = 0.0
    for req in required:
        weight = 2 if req.mandatory else 1
        total += weight
        candidate = index.get(req.name.lower())
        if candidate:
            matched += weight * level_match(candidate.level, req.level, catalog)
    return matched / total if total > 0 else 1.0


def experience_match(features: FeatureSet, requirements: RequirementSet, settings: EngineSettings) -> float:
    statement_ratio = len(features.experience) / settings.limits.evidence_target
    if requirements.min_years_experience:
        return min(1.0, max(features.total_years / requirements.min_years_experience, statement_ratio))
    return min(1.0, statement_ratio)


def education_match(features: FeatureSet, requirements: RequirementSet) -> float:
    has_education = bool(features.education)
    terms = [t.strip().lower() for t in requirements.education if t and t.strip()]
    if not terms:
        return 1.0 if has_education else 0.0
    education_text = " ".join(e.description.lower() for e in features.education)
    found = sum(1 for t in terms if t in education_text)
    return max(found / len(terms), 0.5 if has_education else 0.0)


def missing_keywords(text: str, keywords: List[str]) -> List[str]:
    lowered = (text or "").lower()
    return [k for k in keywords if k.strip() and k.strip().lower() not in lowered]


def keyword_match(text: str, keywords: List[str]) -> float:
    keywords = [k for k in keywords if k and k.strip()]
    if not keywords:
        return 0.0
    return (len(keywords) - len(missing_keywords(text, keywords))) / len(keywords)


def find_skill_gaps(
    index: Dict[str, ExtractedSkill], requirements: RequirementSet, catalog: Catalog
) -> Tuple[List[SkillGap], List[SkillStrength]]:
    gaps, strengths = [], []
    for req in requirements.skills:
        current = index.get(req.name.lower())
        if current is not None and catalog.level_value(current.level) >= catalog.level_value(req.level):
            strengths.append(SkillStrength(
                skill=current.name,
                level=current.level,
                advantage=catalog.level_value(current.level) - catalog.level_value(req.level),
            ))
            continue
        gaps.append(SkillGap(
            skill=req.name,
            importance=req.importance,
            current_level=(current.level or "none") if current else "none",
            target_level=req.level,
            priority=skill_priority(req, catalog),
        ))
    # sorted() is stable, equal priorities keep declaration order
    return sorted(gaps, key=lambda g: g.priority, reverse=True), strengths


def recommended_action(gap: SkillGap) -> str:
    if gap.current_level == "none":
        return f"Start learning {gap.skill} fundamentals"
    return f"Advance {gap.skill} from {gap.current_level} to {gap.target_level}"


def _strengths_and_weaknesses(
    components: Dict[str, float], index: Dict[str, ExtractedSkill],
    requirements: RequirementSet, catalog: Catalog, settings: EngineSettings
) -> Tuple[List[str], List[str]]:
    strengths, weaknesses = [], []
    threshold = settings.thresholds.strength
    for key, value in components.items():
        # No required skills means no constraint, not a strength
        if key == "skills_match" and not requirements.skills:
            continue
        label = COMPONENT_LABELS[key]
        pct = round_half_up(value * 100)
        if value >= threshold:
            strengths.append(f"Strong {label} ({pct}%)")
        else:
            weaknesses.append(f"Weak {label} ({pct}%)")

    for req in requirements.skills:
        if not req.mandatory:
            continue
        candidate = index.get(req.name.lower())
        if candidate is None:
            weaknesses.append(f"Missing mandatory skill: {req.name}")
        elif level_match(candidate.level, req.level, catalog) >= 1.0:
            strengths.append(f"Meets mandatory skill: {req.name} ({candidate.level})")
        else:
            weaknesses.append(f"{req.name} below required level ({candidate.level or 'unrated'} < {req.level})")
    return strengths, weaknesses


def _recommendations(
    components: Dict[str, float], gaps: List[SkillGap], features: FeatureSet,
    requirements: RequirementSet, settings: EngineSettings
) -> List[str]:
    out = [recommended_action(g) for g in gaps]
    weak = sorted(
        (k for k, v in components.items() if v < settings.thresholds.strength and k in COMPONENT_ADVICE),
        key=lambda k: components[k],
    )
    for key in weak:
        if key == "keyword_match":
            missing = missing_keywords(features.text, requirements.keywords)
            if not missing:
                continue
            out.append(COMPONENT_ADVICE[key].format(missing=", ".join(missing[:3])))
        else:
            out.append(COMPONENT_ADVICE[key])
    return out[:settings.limits.max_recommendations]


def _confidence(features: FeatureSet, index: Dict[str, ExtractedSkill],
                requirements: RequirementSet, settings: EngineSettings) -> float:
    if requirements.skills:
        found = sum(1 for r in requirements.skills if r.name.lower() in index)
        skill_evidence = found / len(requirements.skills)
    else:
        skill_evidence = min(1.0, len(features.skills) / settings.limits.evidence_target)
    value = 0.5 * skill_evidence + 0.25 * bool(features.experience) + 0.25 * bool(features.education)
    return round(min(1.0, max(0.0, value)), 2)


def score(features: FeatureSet, requirements: RequirementSet,
          catalog: Catalog = None, settings: EngineSettings = None) -> ScoreResult:
    """Match a FeatureSet against a RequirementSet. Pure: same inputs, same result."""
    catalog = catalog or get_catalog()
    settings = settings or get_settings()
    weights = settings.weights

    index = candidate_index(features.skills, catalog)
    components = {
        "skills_match": skills_match(index, requirements.skills, catalog),
        "experience_match": experience_match(features, requirements, settings),
        "education_match": education_match(features, requirements),
        "keyword_match": keyword_match(features.text, requirements.keywords),
    }
    weighted = (
        weights.skills * components["skills_match"]
        + weights.experience * components["experience_match"]
        + weights.education * components["education_match"]
        + weights.keywords * components["keyword_match"]
    )
    overall = min(100, max(0, round_half_up(weighted * 100)))

    gaps, _ = find_skill_gaps(index, requirements, catalog)
    strengths, weaknesses = _strengths_and_weaknesses(components, index, requirements, catalog, settings)

    return ScoreResult(
        overall_score=overall,
        strengths=strengths,
        weaknesses=weaknesses,
        recommendations=_recommendations(components, gaps, features, requirements, settings),
        confidence=_confidence(features, index, requirements, settings),
        **components,
    )


@log_function_call
def analyze_resume(text: Any, requirements: RequirementSet,
                   catalog: Catalog = None, settings: EngineSettings = None) -> ScoreResult:
    """Extract features from resume text and score them. Unusable text yields an all-zero result."""
    if not isinstance(text, str) or not text.strip():
        logger.info("Resume text is empty or not text, returning empty score")
        return ScoreResult.empty()
    features = extract_features(text, catalog, settings)
    return score(features, requirements, catalog, settings)


def analyze_skill_gaps(current_skills: List[ExtractedSkill], requirements: RequirementSet,
                       catalog: Catalog = None, settings: EngineSettings = None) -> SkillGapAnalysis:
    catalog = catalog or get_catalog()
    settings = settings or get_settings()
    months = settings.limits.months_per_level

    gaps, strengths = find_skill_gaps(candidate_index(current_skills, catalog), requirements, catalog)

    def gap_months(gap: SkillGap) -> int:
        steps = catalog.level_value(gap.target_level) - catalog.level_value(gap.current_level)
        return max(1, steps) * months

    default_resources = catalog.skill_resources.get("default", [])
    recommendations = [
        SkillRecommendation(
            skill=gap.skill,
            action=recommended_action(gap),
            resources=catalog.skill_resources.get(catalog.skill_category(gap.skill), default_resources),
            timeline_months=gap_months(gap),
        )
        for gap in gaps[:settings.limits.max_recommendations]
    ]
    return SkillGapAnalysis(
        gaps=gaps,
        strengths=strengths,
        recommendations=recommendations,
        timeline_months=sum(gap_months(g) for g in gaps),
    )


def _clean_level(level, catalog: Catalog) -> str:
    level = (level or "").lower()
    return level if level in catalog.skill_levels else "intermediate"


def aggregate_role_requirements(job_docs: List[Dict[str, Any]], min_count: int = 2,
                                catalog: Catalog = None) -> RequirementSet:
    """Requirements for a role title: skills named in at least `min_count` similar postings"""
    catalog = catalog or get_catalog()
    seen: Dict[str, Dict[str, Any]] = {}
    for job in job_docs:
        for skill in job.get("skills") or []:
            name = (skill.get("name") or "").strip()
            if not name:
                continue
            entry = seen.setdefault(name.lower(), {**skill, "name": name, "count": 0})
            entry["count"] += 1
    return RequirementSet(skills=[
        RequiredSkill(
            name=s["name"],
            level=_clean_level(s.get("level"), catalog),
            importance="high" if s.get("mandatory") else "medium",
        )
        for s in seen.values()
        if s["count"] >= min_count
    ])


def _minimum_score(job: Dict[str, Any], criteria: Dict[str, Any], settings: EngineSettings) -> int:
    value = criteria.get("minimum_score")
    if value is None:
        return settings.thresholds.default_minimum_score
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= 100:
        raise ValidationError(
            f"Invalid minimum_score for job {job.get('job_id') or job.get('_id')}: expected a whole number 0-100",
            field="ai_criteria.minimum_score",
            value=value,
        )
    return value


def requirement_set_from_job(job: Dict[str, Any], catalog: Catalog = None,
                             settings: EngineSettings = None) -> RequirementSet:
    """Map a stored job posting document to a RequirementSet"""
    catalog = catalog or get_catalog()
    settings = settings or get_settings()
    criteria = job.get("ai_criteria") or {}

    min_years = job.get("min_years_experience")
    if min_years is None and job.get("experience_level"):
        min_years = catalog.experience_levels.get(str(job["experience_level"]).lower())

    return RequirementSet(
        skills=[
            RequiredSkill(
                name=s["name"],
                level=_clean_level(s.get("level"), catalog),
                mandatory=bool(s.get("mandatory", False)),
                importance=s.get("importance") if s.get("importance") in catalog.importance_weights else "medium",
            )
            for s in job.get("skills") or [] if s.get("name")
        ],
        keywords=[kw["keyword"] for kw in criteria.get("keyword_weights") or [] if kw.get("keyword")],
        min_years_experience=min_years,
        education=list(job.get("education") or []),
        minimum_score=_minimum_score(job, criteria, settings),
    )


def categorize(result: ScoreResult, minimum_score: int) -> str:
    return "shortlist" if result.overall_score >= minimum_score else "review"
