import os
import requests
from dotenv import load_dotenv

from app.utils.exceptions import ExternalServiceError, retry_with_logging
from app.utils.logging_config import get_logger

load_dotenv()
logger = get_logger(__name__)

OLLAMA = os.getenv("OLLAMA_BASE_URL", "http://localhost:11434")
LLM_MODEL = os.getenv("LLM_MODEL", "llama3.1:8b")
LLM_ENABLED = os.getenv("LLM_ENABLED", "false").lower() in ("1", "true", "yes")


def llm_available() -> bool:
    return LLM_ENABLED


@retry_with_logging(max_attempts=2, backoff_factor=0.5, exceptions=(requests.RequestException,), logger=logger)
def _post_generate(payload: dict) -> dict:
    resp = requests.post(f"{OLLAMA}/api/generate", json=payload, timeout=60)
    resp.raise_for_status()
    return resp.json()


def ollama_generate(prompt: str, model: str = None, temperature: float = 0.7, max_tokens: int = 500) -> str:
    model = model or LLM_MODEL
    payload = {
        "model": model,
        "prompt": prompt,
        "options": {"temperature": temperature, "num_predict": max_tokens},
        "stream": False
    }
    try:
        data = _post_generate(payload)
    except requests.RequestException as e:
        status = getattr(getattr(e, "response", None), "status_code", None)
        raise ExternalServiceError(
            "LLM generation request failed",
            service_name="ollama",
            status_code=status,
            cause=e
        ) from e
    return (data.get("response") or "").strip()
