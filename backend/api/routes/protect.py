from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from api.dependencies import get_pipeline
from schemas.api import FilterResponse, SanitizeResponse, TextRequest
from sentinel.pipeline import SentinelPipeline

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/sanitize", response_model=SanitizeResponse)
async def sanitize_input(
    body: TextRequest,
    pipeline: SentinelPipeline = Depends(get_pipeline),
):
    """Sanitise untrusted text before it is sent to a model."""
    result = pipeline.protect(body.text)
    return SanitizeResponse(**result.to_dict())


@router.post("/filter", response_model=FilterResponse)
async def filter_output(
    body: TextRequest,
    pipeline: SentinelPipeline = Depends(get_pipeline),
):
    """Redact PII and secrets from model output."""
    result = pipeline.filter_output(body.text)
    return FilterResponse(**result.to_dict())
