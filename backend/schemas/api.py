from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


# --- Request Schemas ---

class TextRequest(BaseModel):
    text: str | None = Field(None, max_length=100_000)


# --- Sanitize Schemas ---

class ChangeResponse(BaseModel):
    type: str
    count: int
    original_length: int | None = None


class ThreatResponse(BaseModel):
    type: str
    severity: str
    details: str


class SanitizeResponse(BaseModel):
    original: str | None
    output: str | None
    changed: bool
    degraded: bool = False
    changes: list[ChangeResponse] = []
    threats: list[ThreatResponse] = []
    processing_time_ms: float | None = None


# --- Filter Schemas ---

class RedactionResponse(BaseModel):
    type: str
    name: str
    count: int


class FilterResponse(BaseModel):
    original: str | None
    output: str | None
    changed: bool
    degraded: bool = False
    redactions: list[RedactionResponse] = []
    processing_time_ms: float | None = None


# --- Stats Schemas ---

class SanitizerStats(BaseModel):
    processed: int
    sanitized: int


class FilterStats(BaseModel):
    filtered: int
    redacted: int


class StatsResponse(BaseModel):
    total_requests: int
    threats_detected: int
    blocked: int
    sanitizer: SanitizerStats
    output_filter: FilterStats


# --- Threat Log Schemas ---

class LogEntryResponse(BaseModel):
    level: str
    category: str
    data: dict[str, Any] = Field(default_factory=dict)
    timestamp: str


class ThreatSummaryResponse(BaseModel):
    total: int
    by_severity: dict[str, int]
    by_type: dict[str, int]
    recent: list[LogEntryResponse]


class RecentLogsResponse(BaseModel):
    entries: list[LogEntryResponse]
