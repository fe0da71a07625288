"""
Gemini Model Manager - shared model instances.

Uses the Vertex AI SDK; GOOGLE_CLOUD_PROJECT (plus service-account
credentials) must be available. Instances are cached per system instruction.
"""

from __future__ import annotations

import os
from functools import lru_cache

from worklog.infrastructure.settings import GEMINI_LOCATION, GEMINI_MODEL, GOOGLE_CLOUD_PROJECT, USE_LLM
from worklog.observability.logging import get_logger

logger = get_logger(__name__)


class GeminiInitializationError(RuntimeError):
    """Raised when Gemini model cannot be initialized."""


def is_llm_configured() -> bool:
    """True when AI summaries are enabled and a Vertex AI project is set."""
    if not USE_LLM or os.getenv("WORKLOG_USE_LLM", "true").lower() != "true":
        return False
    return bool(os.getenv("GOOGLE_CLOUD_PROJECT") or GOOGLE_CLOUD_PROJECT)


@lru_cache(maxsize=4)
def get_gemini_model(system_instruction: str | None = None):
    """
    Get or create a shared Gemini model instance.

    Returns:
        GenerativeModel

    Raises:
        GeminiInitializationError: If model cannot be initialized
    """
    # Read env vars fresh (settings may predate dotenv loading)
    project = os.getenv("GOOGLE_CLOUD_PROJECT") or GOOGLE_CLOUD_PROJECT
    location = os.getenv("GEMINI_LOCATION", "") or GEMINI_LOCATION or "us-central1"

    if not project:
        raise GeminiInitializationError("GOOGLE_CLOUD_PROJECT not set")

    try:
        import vertexai
        from vertexai.generative_models import GenerativeModel
    except ImportError as e:
        raise GeminiInitializationError(
            "Vertex AI SDK not available. Install google-cloud-aiplatform."
        ) from e

    try:
        vertexai.init(project=project, location=location)
        model = GenerativeModel(GEMINI_MODEL, system_instruction=system_instruction)
    except Exception as e:
        logger.error("Failed to initialize Gemini model: %s", e)
        raise GeminiInitializationError(f"Failed to initialize Gemini: {e}") from e

    logger.info(
        "Initialized Gemini model (Vertex AI): project=%s, location=%s, model=%s",
        project,
        location,
        GEMINI_MODEL,
    )
    return model

