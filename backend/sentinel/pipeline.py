from __future__ import annotations

import inspect
import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Union

from config import Settings, get_settings
from sentinel.input_sanitizer import InputSanitizer, SanitizeResult, ThreatRecord
from sentinel.output_filter import FilterResult, OutputFilter, RedactionRecord
from sentinel.threat_logger import ThreatLogger

logger = logging.getLogger(__name__)

LLMCallback = Callable[[str], Union[Awaitable[str], str]]

# Severities that stop the pipeline when blocking is enabled
_BLOCKING_SEVERITIES = {"high", "critical"}

BLOCKED_MESSAGE = "Blocked: high severity threat detected"


@dataclass
class PipelineResult:
    """Outcome of one sanitize -> generate -> filter round trip."""

    success: bool
    response: str | None = None
    redactions: list[RedactionRecord] = field(default_factory=list)
    input_threats: list[ThreatRecord] = field(default_factory=list)
    blocked: bool = False
    error: str | None = None
    input_result: SanitizeResult | None = None
    output_result: FilterResult | None = None


def _elapsed_ms(start: float) -> float:
    return round((time.perf_counter() - start) * 1000, 3)


class SentinelPipeline:
    """Top-level orchestrator wrapping a text-generation call.

    Typical flow
    ------------
    1. **Input protection** -- ``protect`` sanitises untrusted text and
       reports injection indicators to the threat log.
    2. **Generation** -- the caller's ``llm_callback`` receives the
       sanitised text.
    3. **Output filtering** -- ``filter_output`` redacts PII and secrets
       from whatever the callback returned.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        on_threat_detected: Callable[[SanitizeResult], Any] | None = None,
        on_blocked: Callable[[SanitizeResult], Any] | None = None,
        on_error: Callable[[BaseException, dict[str, Any]], Any] | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.sanitizer = InputSanitizer(self.settings.sanitizer_config())
        self.output_filter = OutputFilter(self.settings.filter_config())
        self.threat_logger = ThreatLogger(
            enabled=self.settings.enable_logging,
            buffer_size=self.settings.log_buffer_size,
            on_threat_detected=on_threat_detected,
            on_blocked=on_blocked,
            on_error=on_error,
        )

        self._lock = threading.Lock()
        self._total_requests = 0
        self._threats_detected = 0
        self._blocked = 0

    # ------------------------------------------------------------------
    # Single stages
    # ------------------------------------------------------------------

    def protect(self, text: str | None) -> SanitizeResult:
        """Sanitise untrusted input before it reaches the model."""
        start = time.perf_counter()
        result = self.sanitizer.sanitize(text)

        with self._lock:
            self._total_requests += 1
            self._threats_detected += len(result.threats)

        if result.threats:
            self.threat_logger.log_threats(result)

        result.processing_time_ms = _elapsed_ms(start)
        return result

    def filter_output(self, text: str | None) -> FilterResult:
        """Redact PII and secrets from generated text."""
        start = time.perf_counter()
        result = self.output_filter.filter_output(text)
        result.processing_time_ms = _elapsed_ms(start)
        return result

    # ------------------------------------------------------------------
    # Full round trip
    # ------------------------------------------------------------------

    async def run(self, text: str | None, llm_callback: LLMCallback) -> PipelineResult:
        """protect -> ``llm_callback`` -> filter.

        A failing callback is reported as ``success=False`` with an
        ``error`` message; it never propagates.
        """
        input_result = self.protect(text)

        if input_result.threats:
            logger.warning(
                "Threats detected in input: %s",
                ", ".join(f"{t.type} ({t.severity})" for t in input_result.threats),
            )

        if self.settings.block_high_severity and any(
            t.severity in _BLOCKING_SEVERITIES for t in input_result.threats
        ):
            with self._lock:
                self._blocked += 1
            self.threat_logger.log_blocked(input_result, BLOCKED_MESSAGE)
            return PipelineResult(
                success=False,
                blocked=True,
                error=BLOCKED_MESSAGE,
                input_threats=input_result.threats,
                input_result=input_result,
            )

        try:
            response = llm_callback(input_result.output)
            if inspect.isawaitable(response):
                response = await response
        except Exception as exc:
            logger.error("LLM call failed: %s", exc)
            self.threat_logger.log_error(exc, {"stage": "llm_callback"})
            return PipelineResult(
                success=False,
                error=f"LLM call failed: {exc}",
                input_threats=input_result.threats,
                input_result=input_result,
            )

        output_result = self.filter_output(response)

        logger.info(
            "Pipeline completed: %d changes, %d threats, %d redactions",
            len(input_result.changes),
            len(input_result.threats),
            len(output_result.redactions),
        )
        return PipelineResult(
            success=True,
            response=output_result.output,
            redactions=output_result.redactions,
            input_threats=input_result.threats,
            input_result=input_result,
            output_result=output_result,
        )

    # ------------------------------------------------------------------
    # Statistics
    # ------------------------------------------------------------------

    def get_stats(self) -> dict[str, Any]:
        sanitizer = self.sanitizer.get_stats()
        output_filter = self.output_filter.get_stats()
        with self._lock:
            return {
                "total_requests": self._total_requests,
                "threats_detected": self._threats_detected,
                "blocked": self._blocked,
                "sanitizer": {
                    "processed": sanitizer.processed,
                    "sanitized": sanitizer.transformed,
                },
                "output_filter": {
                    "filtered": output_filter.processed,
                    "redacted": output_filter.transformed,
                },
            }
