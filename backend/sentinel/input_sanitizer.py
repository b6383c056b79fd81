from __future__ import annotations

import logging
import re
from dataclasses import asdict, dataclass, field
from typing import Any, Iterable

from sentinel.rules import (
    ChangeRecord,
    EscapeRule,
    RemoveRule,
    Rule,
    apply_rules,
)
from sentinel.stats import CallCounter, StatsSnapshot

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ThreatRecord:
    """A manipulation indicator found in the sanitised text."""

    type: str
    severity: str  # "low", "medium", "high", "critical"
    details: str


@dataclass(frozen=True)
class Indicator:
    """Detection-only pattern. Never changes the text."""

    category: str
    pattern: re.Pattern[str]
    severity: str = "high"
    details: str = "Basic injection pattern detected"


@dataclass
class SanitizeResult:
    """Result of ``InputSanitizer.sanitize``."""

    original: str | None
    output: str | None
    changed: bool = False
    changes: list[ChangeRecord] = field(default_factory=list)
    threats: list[ThreatRecord] = field(default_factory=list)
    degraded: bool = False
    processing_time_ms: float | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class SanitizerConfig:
    max_input_length: int = 10_000

    def __post_init__(self) -> None:
        value = self.max_input_length
        if isinstance(value, bool) or not isinstance(value, int) or value < 1:
            raise ValueError(
                f"max_input_length must be a positive integer, got {value!r}"
            )


# ---------------------------------------------------------------------------
# Removal / escape rules  (applied in this order)
# ---------------------------------------------------------------------------

# Characters removed later in the pass by control_chars and zero_width.
# Tags, fences and markers must match with these interleaved.
_INVISIBLE = r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F\u200b-\u200d\ufeff]*"


def _tolerant(literal: str) -> str:
    """Regex for *literal* allowing invisible characters between its chars."""
    return _INVISIBLE.join(re.escape(ch) for ch in literal)


DEFAULT_RULES: tuple[Rule, ...] = (
    # Code injection
    RemoveRule(
        "code_block",
        re.compile(_tolerant("```") + r"[\s\S]*?" + _tolerant("```")),
    ),
    RemoveRule(
        "script_tag",
        re.compile(_tolerant("<script") + r"[\s\S]*?" + _tolerant("</script>"), re.IGNORECASE),
    ),
    # System markers, skipped when already escaped
    EscapeRule(
        "system_marker",
        re.compile(r"(?<!\[ESCAPED:)" + _tolerant("[SYSTEM]"), re.IGNORECASE),
    ),
    EscapeRule(
        "inst_marker",
        re.compile(r"(?<!\[ESCAPED:)" + _tolerant("[INST]"), re.IGNORECASE),
    ),
    # C0 controls except TAB, LF, CR; plus DEL
    RemoveRule("control_chars", re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]")),
    RemoveRule("zero_width", re.compile(r"[\u200b-\u200d\ufeff]")),
    # URI schemes
    RemoveRule("js_protocol", re.compile(r"javascript:", re.IGNORECASE)),
)


# ---------------------------------------------------------------------------
# Injection indicators
# ---------------------------------------------------------------------------

DEFAULT_INDICATORS: tuple[Indicator, ...] = (
    Indicator(
        "injection_attempt",
        re.compile(r"ignore\s+(all\s+)?previous\s+instructions?", re.IGNORECASE),
    ),
    Indicator(
        "injection_attempt",
        re.compile(r"reveal\s+(your\s+)?system\s+prompt", re.IGNORECASE),
    ),
    Indicator("injection_attempt", re.compile(r"jailbreak", re.IGNORECASE)),
    Indicator("injection_attempt", re.compile(r"\bDAN\b")),
    Indicator("injection_attempt", re.compile(r"bypass\s+safety", re.IGNORECASE)),
)

_CRLF_RE = re.compile(r"\r\n?")
_SPACE_RUN_RE = re.compile(r" {3,}")


def normalize_whitespace(text: str) -> str:
    """Unify line endings, shorten runs of 3+ spaces to 2, trim the ends."""
    text = _CRLF_RE.sub("\n", text)
    text = _SPACE_RUN_RE.sub("  ", text)
    return text.strip()


# ---------------------------------------------------------------------------
# Sanitiser
# ---------------------------------------------------------------------------


class InputSanitizer:
    """Structural stripping/escaping and injection flagging for untrusted input."""

    def __init__(
        self,
        config: SanitizerConfig | None = None,
        *,
        rules: Iterable[Rule] | None = None,
        indicators: Iterable[Indicator] | None = None,
    ) -> None:
        self.config = config or SanitizerConfig()
        self._rules: tuple[Rule, ...] = tuple(DEFAULT_RULES if rules is None else rules)
        self._indicators: tuple[Indicator, ...] = tuple(
            DEFAULT_INDICATORS if indicators is None else indicators
        )
        self._counter = CallCounter()

    @property
    def rules(self) -> tuple[Rule, ...]:
        return self._rules

    def sanitize(self, text: str | None) -> SanitizeResult:
        """Run rules, indicator scan, truncation and whitespace normalisation.

        Never raises. On an internal fault the input comes back untouched
        with ``degraded=True``.
        """
        try:
            result = self._sanitize(text)
        except Exception:
            logger.warning("Sanitizer failed, passing input through", exc_info=True)
            result = SanitizeResult(original=text, output=text, degraded=True)

        self._counter.record(transformed=result.changed)
        return result

    def get_stats(self) -> StatsSnapshot:
        return self._counter.snapshot()

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def _sanitize(self, text: str | None) -> SanitizeResult:
        if not isinstance(text, str) or not text:
            return SanitizeResult(original=text, output=text)

        # 1. Removal / escape rules
        outcome = apply_rules(text, self._rules)
        if outcome.degraded:
            return SanitizeResult(original=text, output=text, degraded=True)
        cleaned = outcome.text
        changes = outcome.change_records()

        # 2. Indicators, on the post-rule text
        threats = self._scan_indicators(cleaned)

        # 3. Length ceiling, measured after rule application
        limit = self.config.max_input_length
        if len(cleaned) > limit:
            changes.append(
                ChangeRecord(type="truncation", count=1, original_length=len(cleaned))
            )
            cleaned = cleaned[:limit]

        # 4. Whitespace
        cleaned = normalize_whitespace(cleaned)

        if changes:
            logger.debug(
                "Input sanitized: %s",
                ", ".join(f"{c.type}x{c.count}" for c in changes),
            )
        return SanitizeResult(
            original=text,
            output=cleaned,
            changed=bool(changes),
            changes=changes,
            threats=threats,
        )

    def _scan_indicators(self, text: str) -> list[ThreatRecord]:
        """One threat record per indicator category that matched."""
        threats: list[ThreatRecord] = []
        seen: set[str] = set()
        for indicator in self._indicators:
            if indicator.category in seen:
                continue
            if indicator.pattern.search(text):
                seen.add(indicator.category)
                threats.append(
                    ThreatRecord(
                        type=indicator.category,
                        severity=indicator.severity,
                        details=indicator.details,
                    )
                )
        return threats
