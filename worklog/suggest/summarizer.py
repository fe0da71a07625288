"""
Description Summarizer - one line of "what was done" per workday.

Two tiers:
1. Deterministic fallback, always computed: commit counts per repo, PR titles
   with their strongest action, review and comment counts.
2. Optional AI rewrite of the fallback into a short business-facing sentence.
   Only attempted when there is something to rewrite, an LLM is configured and
   the identity still has quota. Any failure returns the fallback with zero
   token usage; describe() never raises.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass

from worklog.activity.types import ActivityRecord, EventType, PrAction
from worklog.config import (
    LLM_TIMEOUT_SECONDS,
    SUMMARY_LANGUAGE,
    SUMMARY_MAX_CHARS,
    SUMMARY_MAX_PR_TITLES,
)
from worklog.errors import SummarizerError
from worklog.infrastructure.ai_quota import AiAllowance, UsageQuota
from worklog.llm.client import LLMResponse, call_llm
from worklog.llm.gemini import is_llm_configured
from worklog.observability.logging import get_logger
from worklog.observability.telemetry import counter

logger = get_logger(__name__)

GENERIC_DESCRIPTION = "general work"

SYSTEM_INSTRUCTION_TEMPLATE = """You summarize a developer's workday for a client-facing timesheet.

Rewrite the activity summary you are given as ONE line of at most {max_chars} characters, written in {language}.

Rules:
- Describe the work performed in business terms.
- Drop repository names, counts and other technical identifiers.
- Turn pull request titles into what was built, fixed or reviewed.
- Output only the summary line: no quotes, no bullet, no explanation."""

LLMCallable = Callable[[str, str], LLMResponse]


@dataclass(frozen=True)
class Description:
    text: str
    input_tokens: int = 0
    output_tokens: int = 0
    used_ai: bool = False


def _default_llm(prompt: str, system_instruction: str) -> LLMResponse:
    return call_llm(prompt, system_instruction=system_instruction, counter_prefix="summarizer")


def fallback_description(records: list[ActivityRecord]) -> str:
    """Deterministic summary of a workday's records."""
    parts: list[str] = []

    commits = [r for r in records if r.event_type == EventType.COMMIT]
    prs = [r for r in records if r.event_type == EventType.PR]
    reviews = [r for r in records if r.event_type == EventType.REVIEW]
    comments = [r for r in records if r.event_type == EventType.ISSUE_COMMENT]

    if commits:
        total = sum(r.commit_count for r in commits)
        repos: list[str] = []
        for record in commits:
            if record.repo:
                short = record.repo.split("/")[-1]
                if short not in repos:
                    repos.append(short)
        parts.append(f"{total}commits({','.join(repos)})" if repos else f"{total}commits")

    if prs:
        # Strongest action per title, titles kept in first-seen order
        best: dict[str, PrAction] = {}
        for record in prs:
            if not record.title:
                continue
            action = record.pr_action or PrAction.OPENED
            current = best.get(record.title)
            if current is None or action.priority > current.priority:
                best[record.title] = action
        titles = [f"{title} ({action.value})" for title, action in best.items()]
        if titles:
            parts.append(f"PR: {', '.join(titles[:SUMMARY_MAX_PR_TITLES])}")

    if reviews:
        parts.append(f"{len(reviews)} reviews")

    if comments:
        parts.append(f"{len(comments)} comments")

    return " / ".join(parts) or GENERIC_DESCRIPTION


def _clean_ai_text(text: str | None, max_chars: int) -> str:
    if not text:
        return ""
    line = next((line.strip() for line in text.splitlines() if line.strip()), "")
    line = line.strip("\"'「」").strip()
    return line[:max_chars]


class DescriptionSummarizer:
    """
    Produces per-day descriptions, upgrading to AI text when allowed.

    Dependencies are injected: `llm` is any callable (prompt, system) ->
    LLMResponse; `quota` gates and records AI usage per identity/period.
    """

    def __init__(
        self,
        llm: LLMCallable | None = None,
        quota: UsageQuota | None = None,
        timeout: float = LLM_TIMEOUT_SECONDS,
        language: str = SUMMARY_LANGUAGE,
        max_chars: int = SUMMARY_MAX_CHARS,
        llm_enabled: bool | None = None,
    ):
        self._llm = llm or _default_llm
        self.quota = quota
        self.timeout = timeout
        self.max_chars = max_chars
        self.system_instruction = SYSTEM_INSTRUCTION_TEMPLATE.format(
            max_chars=max_chars, language=language
        )
        # An explicitly injected llm counts as configured
        if llm_enabled is None:
            llm_enabled = llm is not None or is_llm_configured()
        self.llm_enabled = llm_enabled

    async def _quota_allows(
        self, identity: str | None, period: str | None, allowance: AiAllowance | None
    ) -> bool:
        if allowance is not None:
            return allowance.take()
        if self.quota is None or identity is None or period is None:
            # Without an identity there is nobody to charge
            return False
        status = await asyncio.to_thread(self.quota.check, identity, period)
        return status.is_allowed

    async def _generate(self, fallback: str) -> LLMResponse:
        """
        Run the blocking LLM call in a worker thread under the timeout.

        Raises:
            SummarizerError: On timeout, provider error, or empty output
        """
        try:
            response = await asyncio.wait_for(
                asyncio.to_thread(self._llm, fallback, self.system_instruction),
                timeout=self.timeout,
            )
        except TimeoutError as e:
            counter("summarizer.ai_timeout")
            raise SummarizerError(f"AI summary timed out after {self.timeout}s") from e
        except Exception as e:
            counter("summarizer.ai_error")
            raise SummarizerError(f"AI summary failed: {e}") from e

        text = _clean_ai_text(response.text, self.max_chars)
        if not text:
            counter("summarizer.ai_empty")
            raise SummarizerError("AI summary was empty")
        return LLMResponse(text, response.input_tokens, response.output_tokens)

    async def describe(
        self,
        records: list[ActivityRecord],
        identity: str | None = None,
        period: str | None = None,
        allowance: AiAllowance | None = None,
    ) -> Description:
        """
        Describe one workday.

        Args:
            records: The day's activity
            identity: Who is charged for AI usage
            period: Quota period key (YYYY-MM)
            allowance: Per-request AI slots handed out by the assembler; when
                given it replaces the direct quota check

        Returns:
            Description; token counts are zero unless AI text was used

        Side Effects:
            - May call the LLM
            - Records one AI use in the quota on success
        """
        fallback = fallback_description(records)

        if fallback == GENERIC_DESCRIPTION or not self.llm_enabled:
            return Description(fallback)

        try:
            allowed = await self._quota_allows(identity, period, allowance)
        except Exception as e:
            logger.warning("Quota check failed, using fallback description: %s", e)
            counter("summarizer.quota_check_failed")
            return Description(fallback)

        if not allowed:
            counter("summarizer.quota_exhausted")
            return Description(fallback)

        try:
            response = await self._generate(fallback)
        except SummarizerError as e:
            logger.warning("%s; using fallback description", e)
            if allowance is not None:
                allowance.give_back()
            return Description(fallback)

        if self.quota is not None and identity is not None and period is not None:
            try:
                await asyncio.to_thread(
                    self.quota.record, identity, period, 1, response.input_tokens, response.output_tokens
                )
            except Exception as e:
                logger.error("Failed to record AI usage for %s/%s: %s", identity, period, e)
                counter("summarizer.quota_record_failed")

        counter("summarizer.ai_used")
        return Description(
            text=response.text,
            input_tokens=response.input_tokens,
            output_tokens=response.output_tokens,
            used_ai=True,
        )
