from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Callable, ClassVar, Iterable, Union

logger = logging.getLogger(__name__)

# Marker wrapped around every match of an escape rule.
ESCAPE_PREFIX = "[ESCAPED:"
ESCAPE_SUFFIX = "]"


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ChangeRecord:
    """One entry of a change log: a rule that matched *count* times."""

    type: str
    count: int = 1
    original_length: int | None = None  # only set for truncation


# ---------------------------------------------------------------------------
# Rule variants
# ---------------------------------------------------------------------------


def _compile(pattern: str | re.Pattern[str], flags: int) -> re.Pattern[str]:
    if isinstance(pattern, re.Pattern):
        return pattern
    return re.compile(pattern, flags)


@dataclass(frozen=True)
class _BaseRule:
    name: str
    pattern: re.Pattern[str]
    flags: int = field(default=0, repr=False, compare=False)

    action: ClassVar[str] = ""

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("Rule name must be a non-empty string")
        # Malformed patterns surface here as re.error, never mid-call.
        object.__setattr__(self, "pattern", _compile(self.pattern, self.flags))

    def substitute(self, match: re.Match[str]) -> str:
        raise NotImplementedError


@dataclass(frozen=True)
class RemoveRule(_BaseRule):
    """Delete every match."""

    action: ClassVar[str] = "remove"

    def substitute(self, match: re.Match[str]) -> str:
        return ""


@dataclass(frozen=True)
class EscapeRule(_BaseRule):
    """Keep the match but wrap it in a visible ``[ESCAPED:...]`` marker.

    Patterns should refuse to match text that already sits inside a marker,
    otherwise a second pass would wrap it again.
    """

    action: ClassVar[str] = "escape"

    def substitute(self, match: re.Match[str]) -> str:
        return f"{ESCAPE_PREFIX}{match.group()}{ESCAPE_SUFFIX}"


@dataclass(frozen=True)
class RedactRule(_BaseRule):
    """Replace every match with ``replacement(matched_text)``.

    *category* is ``"pii"`` or ``"secret"`` and ends up in redaction records.
    """

    replacement: Callable[[str], str] | None = None
    category: str = "pii"

    action: ClassVar[str] = "redact"

    def __post_init__(self) -> None:
        super().__post_init__()
        if not callable(self.replacement):
            raise ValueError(f"Redact rule {self.name!r} requires a replacement function")
        if self.category not in ("pii", "secret"):
            raise ValueError(
                f"Redact rule {self.name!r} has unknown category {self.category!r}"
            )

    def substitute(self, match: re.Match[str]) -> str:
        return self.replacement(match.group())


Rule = Union[RemoveRule, EscapeRule, RedactRule]

_RULE_TYPES: dict[str, type] = {
    "remove": RemoveRule,
    "escape": EscapeRule,
    "redact": RedactRule,
}


def make_rule(
    name: str,
    pattern: str | re.Pattern[str],
    action: str,
    replacement: Callable[[str], str] | None = None,
    *,
    flags: int = 0,
    category: str = "pii",
) -> Rule:
    """Build a rule from an action name (``remove``, ``escape`` or ``redact``)."""
    try:
        rule_cls = _RULE_TYPES[action]
    except KeyError:
        raise ValueError(
            f"Unknown rule action {action!r}. Available: {', '.join(_RULE_TYPES)}"
        ) from None
    if rule_cls is RedactRule:
        return RedactRule(
            name, pattern, flags, replacement=replacement, category=category
        )
    if replacement is not None:
        raise ValueError(f"Rule {name!r}: only redact rules take a replacement")
    return rule_cls(name, pattern, flags)


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RuleHit:
    rule: Rule
    count: int


@dataclass
class RuleOutcome:
    """Result of folding a rule list over a text.

    ``degraded`` is set when application failed part-way; ``text`` is then
    the untouched input and ``hits`` is empty.
    """

    text: str | None
    hits: list[RuleHit] = field(default_factory=list)
    degraded: bool = False

    @property
    def changed(self) -> bool:
        return bool(self.hits)

    def change_records(self) -> list[ChangeRecord]:
        return [ChangeRecord(type=hit.rule.name, count=hit.count) for hit in self.hits]


def apply_rules(text: str | None, rules: Iterable[Rule]) -> RuleOutcome:
    """Apply *rules* in order, each one to the output of the previous one."""
    if not isinstance(text, str) or not text:
        return RuleOutcome(text=text)

    working = text
    hits: list[RuleHit] = []
    try:
        for rule in rules:
            working, count = rule.pattern.subn(rule.substitute, working)
            if count:
                hits.append(RuleHit(rule=rule, count=count))
    except Exception:
        logger.warning(
            "Rule application failed, returning input unchanged", exc_info=True
        )
        return RuleOutcome(text=text, degraded=True)

    return RuleOutcome(text=working, hits=hits)
