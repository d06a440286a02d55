"""
StudyTrust Storage Layer

In-process analysis cache.
"""

from studytrust.storage.cache import AnalysisCache, CacheEntry, make_cache_key

__all__ = ["AnalysisCache", "CacheEntry", "make_cache_key"]
