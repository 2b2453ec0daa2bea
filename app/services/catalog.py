"""
Loading of the keyword catalog and engine settings
"""
import json
import os
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv
from pydantic import ValidationError as PydanticValidationError

from app.models.settings import Catalog, EngineSettings
from app.utils.exceptions import ConfigurationError
from app.utils.logging_config import get_logger

load_dotenv()
logger = get_logger(__name__)

DEFAULT_CATALOG_PATH = Path(__file__).resolve().parent.parent / "data" / "catalog.json"

# env var -> (settings section, field)
SETTINGS_ENV = {
    "SCORE_WEIGHT_SKILLS": ("weights", "skills"),
    "SCORE_WEIGHT_EXPERIENCE": ("weights", "experience"),
    "SCORE_WEIGHT_EDUCATION": ("weights", "education"),
    "SCORE_WEIGHT_KEYWORDS": ("weights", "keywords"),
    "STRENGTH_THRESHOLD": ("thresholds", "strength"),
    "INTENT_THRESHOLD": ("thresholds", "intent_confidence"),
    "DEFAULT_MINIMUM_SCORE": ("thresholds", "default_minimum_score"),
}


def load_catalog(path: str = None) -> Catalog:
    """Read and validate a catalog file"""
    path = Path(path or os.getenv("CATALOG_PATH") or DEFAULT_CATALOG_PATH)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as e:
        raise ConfigurationError(f"Catalog file not found: {path}", config_key="CATALOG_PATH", config_value=path, cause=e) from e
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Catalog file is not valid JSON: {path}", config_key="CATALOG_PATH", config_value=path, cause=e) from e

    try:
        catalog = Catalog(**data)
    except PydanticValidationError as e:
        raise ConfigurationError(f"Catalog file failed validation: {path}", config_key="CATALOG_PATH", cause=e) from e

    logger.info(
        f"Loaded catalog from {path}: {sum(len(s) for s in catalog.skill_categories.values())} skills, "
        f"{len(catalog.intents)} intents"
    )
    return catalog


def load_settings() -> EngineSettings:
    """Build engine settings from defaults plus environment overrides"""
    sections = {"weights": {}, "thresholds": {}, "limits": {}}
    for env_key, (section, field) in SETTINGS_ENV.items():
        raw = os.getenv(env_key)
        if raw is None or raw == "":
            continue
        sections[section][field] = raw
    try:
        settings = EngineSettings(**sections)
    except PydanticValidationError as e:
        raise ConfigurationError("Invalid engine settings in environment", cause=e) from e

    logger.debug(f"Engine settings: {settings.model_dump()}")
    return settings


@lru_cache(maxsize=1)
def get_catalog() -> Catalog:
    return load_catalog()


@lru_cache(maxsize=1)
def get_settings() -> EngineSettings:
    return load_settings()
