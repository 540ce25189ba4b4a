from __future__ import annotations

from .redis_cache import Cache, analytics_key, survey_key

__all__ = ["Cache", "analytics_key", "survey_key"]
