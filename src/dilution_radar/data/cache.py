"""Disk cache for per-ticker enrichment payloads."""

import gzip
import json
import os
from typing import Any

import diskcache


def snapshot_uri(ticker: str, kind: str, as_of: str) -> str:
    """Canonical cache key, e.g. snapshot://ACME/quote/2025-01-10."""
    return f"snapshot://{ticker.upper()}/{kind}/{as_of}"


class SnapshotCache:
    """
    Stores gzipped JSON payloads keyed by ticker, payload kind and run date.

    Keys carry the run date, so a rerun on the same day reuses the morning's
    enrichment and the next day starts fresh.
    """

    def __init__(self, cache_dir: str | None = None, default_ttl: int | None = None):
        if cache_dir is None:
            cache_dir = os.environ.get("CACHE_DIR", ".cache/radar")
        self.cache: diskcache.Cache = diskcache.Cache(cache_dir)
        if default_ttl is None:
            default_ttl = int(os.environ.get("CACHE_TTL", "3600"))
        self._default_ttl = default_ttl

    def store(self, uri: str, payload: Any, ttl: int | None = None) -> str:
        """
        Store a JSON-serializable payload under uri.

        Args:
            uri: Canonical URI from snapshot_uri()
            payload: JSON-serializable value
            ttl: Cache TTL in seconds (default: CACHE_TTL)

        Returns:
            The uri
        """
        raw = json.dumps(payload, sort_keys=True, default=str).encode("utf-8")
        expire = ttl if ttl is not None else self._default_ttl
        self.cache.set(uri, gzip.compress(raw), expire=expire)
        return uri

    def load(self, uri: str) -> Any | None:
        """Decompressed payload, or None if absent or expired."""
        compressed = self.cache.get(uri)
        if not compressed:
            return None
        return json.loads(gzip.decompress(compressed).decode("utf-8"))

    def close(self) -> None:
        self.cache.close()
