"""Single-shot Gemini call returning text plus token usage.

Vertex AI exceptions are converted to builtin exception types so callers can
apply their own failure policy without importing google.api_core. There is no
automatic retry: the summarizer falls back to deterministic text instead.
"""

from __future__ import annotations

from dataclasses import dataclass

from worklog.infrastructure.settings import GEMINI_MAX_TOKENS, GEMINI_TEMPERATURE
from worklog.llm.gemini import get_gemini_model
from worklog.observability.logging import get_logger
from worklog.observability.telemetry import counter

logger = get_logger(__name__)


@dataclass(frozen=True)
class LLMResponse:
    text: str
    input_tokens: int = 0
    output_tokens: int = 0


def call_llm(
    prompt: str,
    system_instruction: str | None = None,
    counter_prefix: str = "llm",
) -> LLMResponse:
    """Call Gemini once.

    Raises:
        TimeoutError: On deadline exceeded.
        ConnectionError: On service unavailable or internal error.
        OSError: On resource exhausted / rate limited.
        Exception: On other errors (caller handles).
    """
    from google.api_core.exceptions import (
        DeadlineExceeded,
        InternalServerError,
        ResourceExhausted,
        ServiceUnavailable,
    )

    model = get_gemini_model(system_instruction)
    generation_config = {
        "temperature": GEMINI_TEMPERATURE,
        "max_output_tokens": GEMINI_MAX_TOKENS,
    }

    try:
        response = model.generate_content(prompt, generation_config=generation_config)
    except DeadlineExceeded as e:
        counter(f"{counter_prefix}.timeout")
        raise TimeoutError(f"LLM call timed out: {e}") from e
    except ServiceUnavailable as e:
        counter(f"{counter_prefix}.service_unavailable")
        raise ConnectionError(f"LLM service unavailable: {e}") from e
    except ResourceExhausted as e:
        counter(f"{counter_prefix}.rate_limited")
        raise OSError(f"LLM rate limited: {e}") from e
    except InternalServerError as e:
        counter(f"{counter_prefix}.internal_error")
        raise ConnectionError(f"LLM internal error: {e}") from e

    usage = getattr(response, "usage_metadata", None)
    return LLMResponse(
        text=response.text,
        input_tokens=getattr(usage, "prompt_token_count", 0) or 0,
        output_tokens=getattr(usage, "candidates_token_count", 0) or 0,
    )
