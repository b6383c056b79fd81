from __future__ import annotations

import logging
import re
from dataclasses import asdict, dataclass, field
from typing import Any, Iterable

from sentinel.rules import RedactRule, apply_rules
from sentinel.stats import CallCounter, StatsSnapshot

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RedactionRecord:
    """A redaction rule that matched *count* times."""

    type: str  # "pii" or "secret"
    name: str
    count: int


@dataclass
class FilterResult:
    """Result of ``OutputFilter.filter_output``."""

    original: str | None
    output: str | None
    changed: bool = False
    redactions: list[RedactionRecord] = field(default_factory=list)
    degraded: bool = False
    processing_time_ms: float | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class FilterConfig:
    redact_pii: bool = True
    redact_secrets: bool = True

    def __post_init__(self) -> None:
        for name in ("redact_pii", "redact_secrets"):
            if not isinstance(getattr(self, name), bool):
                raise ValueError(f"{name} must be a bool, got {getattr(self, name)!r}")


# ---------------------------------------------------------------------------
# Masks
# ---------------------------------------------------------------------------
# None of the masks may match its own source pattern again, so filtering an
# already filtered text is a no-op.

_NON_DIGIT_RE = re.compile(r"\D")


def mask_ssn(_match: str) -> str:
    return "XXX-XX-XXXX"


def mask_card(match: str) -> str:
    """Keep the trailing four digits: ``**** **** **** 1234``."""
    digits = _NON_DIGIT_RE.sub("", match)
    return "**** **** **** " + digits[-4:]


def mask_email(match: str) -> str:
    """``john.doe@example.com`` -> ``j***@example.com``."""
    local, _, domain = match.partition("@")
    return f"{local[:1]}***@{domain}"


def mask_phone(_match: str) -> str:
    return "(XXX) XXX-XXXX"


def mask_password(_match: str) -> str:
    return "password: [REDACTED]"


# ---------------------------------------------------------------------------
# Redaction rules  (applied in this order: PII first, then secrets)
# ---------------------------------------------------------------------------

PII_RULES: tuple[RedactRule, ...] = (
    RedactRule(
        "SSN",
        re.compile(r"\b\d{3}[-\s]?\d{2}[-\s]?\d{4}\b", re.ASCII),
        replacement=mask_ssn,
        category="pii",
    ),
    # 13 to 16 digits in groups of four
    RedactRule(
        "Credit Card",
        re.compile(r"\b(?:\d{4}[-\s]?){2}\d{4}[-\s]?\d{1,4}\b", re.ASCII),
        replacement=mask_card,
        category="pii",
    ),
    RedactRule(
        "Email",
        re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b"),
        replacement=mask_email,
        category="pii",
    ),
    # NANP numbers, optional +1 prefix, optional parenthesised area code
    RedactRule(
        "Phone",
        re.compile(
            r"(?<![\w+(])(?:\+?1[-.\s]?)?(?:\(\d{3}\)|\d{3})[-.\s]?\d{3}[-.\s]?\d{4}\b",
            re.ASCII,
        ),
        replacement=mask_phone,
        category="pii",
    ),
)

SECRET_RULES: tuple[RedactRule, ...] = (
    RedactRule(
        "Password",
        re.compile(
            r"(?:password|passwd|pwd)[:\s=]+['\"]?(?!\[REDACTED\])([^\s'\"]{4,})['\"]?",
            re.IGNORECASE,
        ),
        replacement=mask_password,
        category="secret",
    ),
)


# ---------------------------------------------------------------------------
# Filter
# ---------------------------------------------------------------------------


class OutputFilter:
    """Format-preserving redaction of PII and secrets in generated text."""

    def __init__(
        self,
        config: FilterConfig | None = None,
        *,
        pii_rules: Iterable[RedactRule] | None = None,
        secret_rules: Iterable[RedactRule] | None = None,
    ) -> None:
        self.config = config or FilterConfig()
        rules: list[RedactRule] = []
        if self.config.redact_pii:
            rules.extend(PII_RULES if pii_rules is None else pii_rules)
        if self.config.redact_secrets:
            rules.extend(SECRET_RULES if secret_rules is None else secret_rules)
        self._rules: tuple[RedactRule, ...] = tuple(rules)
        self._counter = CallCounter()

    @property
    def rules(self) -> tuple[RedactRule, ...]:
        return self._rules

    def filter_output(self, text: str | None) -> FilterResult:
        """Redact every enabled PII/secret shape in *text*. Never raises."""
        outcome = apply_rules(text, self._rules)
        if outcome.degraded:
            result = FilterResult(original=text, output=text, degraded=True)
        else:
            redactions = [
                RedactionRecord(type=hit.rule.category, name=hit.rule.name, count=hit.count)
                for hit in outcome.hits
            ]
            result = FilterResult(
                original=text,
                output=outcome.text,
                changed=bool(redactions),
                redactions=redactions,
            )
            if redactions:
                logger.debug(
                    "Output redacted: %s",
                    ", ".join(f"{r.name}x{r.count}" for r in redactions),
                )

        self._counter.record(transformed=result.changed)
        return result

    def get_stats(self) -> StatsSnapshot:
        return self._counter.snapshot()
