"""
Feature extraction from free text (resumes, application summaries).

Pattern matching only: skills come from the catalog by case-insensitive
substring search, experience and education statements are sentences that
match simple lexical patterns. False positives and negatives are expected.
"""
import re
from datetime import datetime
from typing import List, Optional

from app.models.engine import EducationStatement, ExperienceStatement, ExtractedSkill, FeatureSet
from app.models.settings import Catalog, EngineSettings
from app.services.catalog import get_catalog, get_settings
from app.utils.logging_config import get_logger

logger = get_logger(__name__)

SENTENCE_SPLIT_RE = re.compile(r"(?<=[.!?])\s+|[\r\n]+")

DURATION_RE = re.compile(r"\b(\d+(?:\.\d+)?)\s*\+?\s*(years?|yrs?|months?)\b", re.IGNORECASE)
YEAR_RANGE_RE = re.compile(
    r"\b((?:19|20)\d{2})\s*(?:-|–|—|to|until)\s*((?:19|20)\d{2}|present|current|now|today)\b",
    re.IGNORECASE,
)
WORK_VERB_RE = re.compile(
    r"\b(worked|working|employed|served|serving|led|leading|managed|managing|developed|developing|"
    r"built|designed|engineer|developer|manager|analyst|consultant|intern|internship)\b",
    re.IGNORECASE,
)
COMPANY_MARKER_RE = re.compile(
    r"\b(inc|ltd|llc|plc|corp|corporation|company|technologies|solutions|group)\b", re.IGNORECASE
)
COMPANY_AT_RE = re.compile(r"\bat\s+([A-Z][\w&.\-]*(?:\s+[A-Z][\w&.\-]*)*)")

DEGREE_RE = re.compile(
    r"\b(ph\.?d|doctorate|master(?:'s)?|bachelor(?:'s)?|mba|m\.sc|b\.sc|msc|bsc|b\.tech|m\.tech|"
    r"btech|mtech|associate degree|diploma|degree)\b",
    re.IGNORECASE,
)
INSTITUTION_RE = re.compile(r"\b(university|college|institute|academy|school|polytechnic)\b", re.IGNORECASE)
INSTITUTION_NAME_RE = re.compile(
    r"((?:[A-Z][\w.&'\-]*\s+)*(?:University|College|Institute|Academy|School|Polytechnic)"
    r"(?:\s+of(?:\s+[A-Z][\w.&'\-]*)+)?)"
)
YEAR_RE = re.compile(r"\b(19\d{2}|20\d{2})\b")


def split_sentences(text: str) -> List[str]:
    return [s.strip() for s in SENTENCE_SPLIT_RE.split(text) if s and s.strip()]


def _duration_years(sentence: str) -> Optional[float]:
    years = 0.0
    found = False
    for amount, unit in DURATION_RE.findall(sentence):
        found = True
        value = float(amount)
        years += value / 12.0 if unit.lower().startswith("month") else value
    for start, end in YEAR_RANGE_RE.findall(sentence):
        end_year = datetime.utcnow().year if not end[:1].isdigit() else int(end)
        if end_year >= int(start):
            found = True
            years += end_year - int(start)
    return round(years, 2) if found else None


def _company(sentence: str) -> Optional[str]:
    m = COMPANY_AT_RE.search(sentence)
    return m.group(1).strip(" .,") if m else None


def is_experience_sentence(sentence: str) -> bool:
    if is_education_sentence(sentence) and not WORK_VERB_RE.search(sentence):
        return False
    if DURATION_RE.search(sentence) or YEAR_RANGE_RE.search(sentence):
        return True
    return bool(WORK_VERB_RE.search(sentence) and (COMPANY_AT_RE.search(sentence) or COMPANY_MARKER_RE.search(sentence)))


def is_education_sentence(sentence: str) -> bool:
    return bool(DEGREE_RE.search(sentence) or INSTITUTION_RE.search(sentence))


def extract_experience(sentences: List[str]) -> List[ExperienceStatement]:
    return [
        ExperienceStatement(description=s, duration_years=_duration_years(s), company=_company(s))
        for s in sentences
        if is_experience_sentence(s)
    ]


def extract_education(sentences: List[str]) -> List[EducationStatement]:
    out = []
    for s in sentences:
        if not is_education_sentence(s):
            continue
        degree = DEGREE_RE.search(s)
        institution = INSTITUTION_NAME_RE.search(s)
        years = YEAR_RE.findall(s)
        out.append(EducationStatement(
            description=s,
            degree=degree.group(1) if degree else None,
            institution=institution.group(1).strip() if institution else None,
            year=int(years[-1]) if years else None,
        ))
    return out


def _infer_level(skill: str, lowered_sentences: List[str], catalog: Catalog) -> str:
    mentions = [s for s in lowered_sentences if skill in s]
    for level in sorted(catalog.proficiency_cues, key=catalog.level_value, reverse=True):
        for cue in catalog.proficiency_cues[level]:
            if any(re.search(rf"\b{re.escape(cue)}\b", s) for s in mentions):
                return level
    return "intermediate"


def extract_skills(text: str, catalog: Catalog, settings: EngineSettings) -> List[ExtractedSkill]:
    lowered = text.lower()
    lowered_sentences = [s.lower() for s in split_sentences(text)]
    saturation = settings.limits.skill_confidence_saturation
    skills = []
    for category, names in catalog.skill_categories.items():
        for name in names:
            occurrences = lowered.count(name.lower())
            if not occurrences:
                continue
            skills.append(ExtractedSkill(
                name=name,
                category=category,
                confidence=min(1.0, occurrences / saturation),
                level=_infer_level(name.lower(), lowered_sentences, catalog),
            ))
    return skills


def extract_features(text: str, catalog: Catalog = None, settings: EngineSettings = None) -> FeatureSet:
    """Turn free text into a FeatureSet. Never raises; unusable input gives an empty set."""
    if not isinstance(text, str) or not text.strip():
        return FeatureSet()

    catalog = catalog or get_catalog()
    settings = settings or get_settings()
    sentences = split_sentences(text)

    features = FeatureSet(
        skills=extract_skills(text, catalog, settings),
        experience=extract_experience(sentences),
        education=extract_education(sentences),
        text=text,
    )
    logger.debug(
        f"Extracted {len(features.skills)} skills, {len(features.experience)} experience and "
        f"{len(features.education)} education statements from {len(sentences)} sentences"
    )
    return features
