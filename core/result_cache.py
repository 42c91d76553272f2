"""
Result cache for image format classifications.

This module handles:
- Cache key normalisation (query string and fragment dropped, MIME hint folded in)
- LRU eviction and TTL expiry
- Caching eligibility so transient failures are retried on the next request
- Hit / miss / eviction statistics
"""

import logging
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional
from urllib.parse import urlsplit, urlunsplit

from models.validation import ClassificationResult

logger = logging.getLogger(__name__)

CACHEABLE_CONFIDENCE = 0.6


@dataclass
class CacheEntry:
    """A cached classification and its lifetime."""
    key: str
    result: ClassificationResult
    inserted_at: float
    expires_at: float


class ResultCache:
    """Key-normalising LRU cache over classification results."""

    def __init__(
        self,
        max_size: int = 1000,
        ttl_seconds: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize the result cache.

        Args:
            max_size: Maximum number of cached results
            ttl_seconds: Lifetime of a cached result in seconds
            clock: Monotonic time source
        """
        if max_size <= 0:
            raise ValueError("Cache size must be positive")
        if ttl_seconds <= 0:
            raise ValueError("Cache TTL must be positive")

        self.max_size = max_size
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()

        self._hits = 0
        self._misses = 0
        self._evictions = 0
        self._key_generation_errors = 0

    def generate_key(self, url: str, mime_hint: Optional[str] = None) -> Optional[str]:
        """Generate a cache key for a URL and optional MIME hint.

        Args:
            url: Image URL
            mime_hint: Resolved MIME type hint

        Returns:
            Normalised key, or None if the URL cannot be parsed
        """
        try:
            parts = urlsplit(url)
            key = urlunsplit((parts.scheme.lower(), parts.netloc.lower(), parts.path, "", ""))
        except (ValueError, TypeError, AttributeError) as e:
            self._key_generation_errors += 1
            logger.debug(f"Could not generate cache key for {url!r}: {e}")
            return None

        if mime_hint:
            key = f"{key}|mime:{mime_hint.strip().lower()}"
        return key

    @staticmethod
    def is_cacheable(result: ClassificationResult, transient_error: bool = False) -> bool:
        """Whether a result may be stored: never transport faults or low-confidence noise."""
        if transient_error:
            return False
        return result.is_valid or result.confidence >= CACHEABLE_CONFIDENCE

    def get(self, key: str) -> Optional[ClassificationResult]:
        """Look up a cached result, counting the hit or miss."""
        entry = self._entries.get(key)
        if entry is None:
            self._misses += 1
            return None

        if self._clock() > entry.expires_at:
            del self._entries[key]
            self._misses += 1
            return None

        self._entries.move_to_end(key)
        self._hits += 1
        return entry.result

    def put(self, key: str, result: ClassificationResult, transient_error: bool = False) -> bool:
        """Store a result if it is eligible.

        Args:
            key: Cache key from generate_key
            result: Classification result
            transient_error: Whether the result came from a transport fault

        Returns:
            True if the result was stored
        """
        if not self.is_cacheable(result, transient_error):
            return False

        if key in self._entries:
            del self._entries[key]
        while len(self._entries) >= self.max_size:
            self._entries.popitem(last=False)
            self._evictions += 1

        now = self._clock()
        self._entries[key] = CacheEntry(key=key, result=result, inserted_at=now, expires_at=now + self.ttl_seconds)
        return True

    def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def cleanup(self) -> int:
        """Drop expired entries and return how many were removed."""
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if now > entry.expires_at]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def clear(self) -> None:
        """Clear all entries and reset statistics."""
        self._entries.clear()
        self._hits = 0
        self._misses = 0
        self._evictions = 0
        self._key_generation_errors = 0
        logger.info("Validation result cache cleared")

    def __len__(self) -> int:
        return len(self._entries)

    def stats(self) -> Dict[str, Any]:
        """Get cache performance statistics.

        Returns:
            Dictionary containing cache statistics; hit_rate is a percentage
        """
        total = self._hits + self._misses
        hit_rate = (self._hits / total) * 100 if total > 0 else 0.0
        return {
            "hits": self._hits,
            "misses": self._misses,
            "size": len(self._entries),
            "max_size": self.max_size,
            "evictions": self._evictions,
            "key_generation_errors": self._key_generation_errors,
            "hit_rate": round(hit_rate, 2),
        }
