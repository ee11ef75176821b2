"""
Guardrails - composable input/output filters.

A filter is any callable ``(text) -> FilterResult`` (sync or async).
Chains resolve conflicts most-restrictive-wins: block > redact > allow.
"""

import asyncio
import inspect
import re
from enum import IntEnum
from typing import Any, Awaitable, Callable, Iterable, Literal

from pydantic import BaseModel

from agentrun.utils.logging import get_logger

logger = get_logger(__name__)


class FilterAction(IntEnum):
    """Ordered by restrictiveness."""

    ALLOW = 0
    REDACT = 1
    BLOCK = 2


class FilterResult(BaseModel):
    action: FilterAction = FilterAction.ALLOW
    content: str
    reason: str | None = None
    guardrail: str | None = None

    @property
    def blocked(self) -> bool:
        return self.action == FilterAction.BLOCK

    @classmethod
    def allow(cls, content: str) -> "FilterResult":
        return cls(action=FilterAction.ALLOW, content=content)

    @classmethod
    def redact(cls, content: str, reason: str) -> "FilterResult":
        return cls(action=FilterAction.REDACT, content=content, reason=reason)

    @classmethod
    def block(cls, content: str, reason: str) -> "FilterResult":
        return cls(action=FilterAction.BLOCK, content=content, reason=reason)


Filter = Callable[[str], "FilterResult | Awaitable[FilterResult]"]


def _filter_name(f: Any) -> str:
    return getattr(f, "guardrail_name", None) or getattr(f, "__name__", type(f).__name__)


async def _apply(f: Filter, text: str) -> FilterResult:
    result = f(text)
    if inspect.isawaitable(result):
        result = await result
    if result.guardrail is None:
        result = result.model_copy(update={"guardrail": _filter_name(f)})
    return result


class GuardrailChain:
    """
    Ordered list of filters.

    sequential: each filter sees the previous filter's output; the first
        block stops the chain.
    parallel: every filter sees the original text; the most restrictive
        result wins, earlier filters winning ties.
    """

    def __init__(
        self,
        filters: Iterable[Filter] = (),
        mode: Literal["sequential", "parallel"] = "sequential",
    ):
        if mode not in ("sequential", "parallel"):
            raise ValueError(f"Unknown guardrail mode: {mode}")
        self.filters = list(filters)
        self.mode = mode
        self.guardrail_name = f"{mode}_chain"

    def __bool__(self) -> bool:
        return bool(self.filters)

    async def __call__(self, text: str) -> FilterResult:
        # A chain is itself a filter, so chains nest
        return await self.check(text)

    async def check(self, text: str) -> FilterResult:
        if not self.filters:
            return FilterResult.allow(text)
        if self.mode == "parallel":
            return await self._check_parallel(text)
        return await self._check_sequential(text)

    async def _check_sequential(self, text: str) -> FilterResult:
        final = FilterResult.allow(text)
        current = text
        for f in self.filters:
            result = await _apply(f, current)
            if result.action > FilterAction.ALLOW:
                logger.info(
                    "guardrail_triggered",
                    guardrail=result.guardrail,
                    action=result.action.name.lower(),
                    reason=result.reason,
                )
            if result.blocked:
                return result
            if result.action == FilterAction.REDACT:
                current = result.content
                final = result
        return final.model_copy(update={"content": current})

    async def _check_parallel(self, text: str) -> FilterResult:
        results = await asyncio.gather(*(_apply(f, text) for f in self.filters))
        winner = FilterResult.allow(text)
        for result in results:
            if result.action > winner.action:
                winner = result
        if winner.action > FilterAction.ALLOW:
            logger.info(
                "guardrail_triggered",
                guardrail=winner.guardrail,
                action=winner.action.name.lower(),
                reason=winner.reason,
            )
        return winner


# ============================================================================
# Built-in filters
# ============================================================================

PII_PATTERNS: dict[str, re.Pattern[str]] = {
    "email": re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b"),
    "ssn": re.compile(r"\b\d{3}-\d{2}-\d{4}\b"),
    "credit_card": re.compile(r"\b(?:\d[ -]?){13,16}\b"),
    "phone": re.compile(r"\b(?:\+?1[-. ]?)?\(?\d{3}\)?[-. ]\d{3}[-. ]\d{4}\b"),
}


def pii_filter(text: str) -> FilterResult:
    """Redact emails, SSNs, card numbers and phone numbers."""
    redacted = text
    found = []
    for label, pattern in PII_PATTERNS.items():
        redacted, n = pattern.subn(f"[REDACTED_{label.upper()}]", redacted)
        if n:
            found.append(label)
    if found:
        return FilterResult.redact(redacted, f"PII detected: {', '.join(found)}")
    return FilterResult.allow(text)


def length_filter(max_length: int) -> Filter:
    """Block text longer than ``max_length`` characters."""

    def check_length(text: str) -> FilterResult:
        if len(text) > max_length:
            return FilterResult.block(text, f"Content length {len(text)} exceeds {max_length}")
        return FilterResult.allow(text)

    check_length.guardrail_name = "length_filter"
    return check_length


def keyword_filter(words: Iterable[str]) -> Filter:
    """Block text containing any of ``words`` (whole word, case-insensitive)."""
    blocked = [w for w in words if w]
    pattern = re.compile(r"\b(" + "|".join(re.escape(w) for w in blocked) + r")\b", re.IGNORECASE)

    def check_keywords(text: str) -> FilterResult:
        if blocked:
            match = pattern.search(text)
            if match:
                return FilterResult.block(text, f"Blocked keyword: {match.group(0).lower()}")
        return FilterResult.allow(text)

    check_keywords.guardrail_name = "keyword_filter"
    return check_keywords


__all__ = [
    "Filter",
    "FilterAction",
    "FilterResult",
    "GuardrailChain",
    "keyword_filter",
    "length_filter",
    "pii_filter",
]
