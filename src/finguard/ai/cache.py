"""
Bounded analysis cache.

Insertion-ordered map with FIFO eviction: once ``max_entries`` is reached the
oldest inserted key is removed before the new one is stored. Reads do not
refresh an entry's position.
"""

import hashlib
import json
import threading
from collections import OrderedDict
from typing import Any

from finguard.shared.infrastructure.logging import get_logger

from .types import AnalysisDomain, AnalysisResponse

logger = get_logger(__name__)


def _canonical(value: Any) -> Any:
    """JSON-ready copy of ``value``; mapping keys become strings so they can be sorted."""
    if isinstance(value, dict):
        return {str(key): _canonical(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_canonical(item) for item in value]
    return value


def make_cache_key(domain: AnalysisDomain, payload: Any) -> str:
    """Deterministic key over the domain and a canonical JSON rendering of the payload."""
    canonical = json.dumps(_canonical(payload), sort_keys=True, separators=(",", ":"), default=str)
    digest = hashlib.sha256(f"{domain.value}:{canonical}".encode()).hexdigest()
    return f"{domain.value}_{digest[:32]}"


class AnalysisCache:
    def __init__(self, max_entries: int = 100) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.max_entries = max_entries
        self._entries: OrderedDict[str, AnalysisResponse] = OrderedDict()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def get(self, key: str) -> AnalysisResponse | None:
        with self._lock:
            return self._entries.get(key)

    def put(self, key: str, value: AnalysisResponse) -> None:
        with self._lock:
            if key in self._entries:
                self._entries[key] = value
                return
            while len(self._entries) >= self.max_entries:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug("analysis_cache_evicted", key=evicted)
            self._entries[key] = value

    def keys(self) -> list[str]:
        with self._lock:
            return list(self._entries)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
