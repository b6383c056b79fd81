from functools import lru_cache

from config import get_settings
from sentinel.pipeline import SentinelPipeline


@lru_cache
def get_pipeline() -> SentinelPipeline:
    """One pipeline per process so counters and the threat log are shared."""
    return SentinelPipeline(get_settings())
