"""Report cache for the scope governance engine.

건강도/태스크 범위 보고서를 짧은 TTL 동안 메모리에 보관합니다.

주요 기능:
- 프로젝트 + 보고서 종류 단위 캐시키
- 초 단위 TTL (동시 쓰기 후에도 오래된 값이 남지 않도록 짧게 유지)
- 프로젝트 쓰기 시 해당 프로젝트 엔트리 전체 무효화
- 캐시 히트율 통계

사용 예시:
    cache = ReportCache(ttl_seconds=2)

    cached = cache.get("proj-1", "scope-health")
    if cached is None:
        cached = build_report()
        cache.set("proj-1", "scope-health", cached)

    # 베이스라인/변경요청/태스크 쓰기 후
    cache.invalidate("proj-1")
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

logger = logging.getLogger(__name__)


@dataclass
class CacheEntry:
    """캐시 엔트리."""
    value: Any
    created_at: float
    expires_at: float
    hit_count: int = 0


@dataclass
class CacheStats:
    """캐시 통계."""
    hits: int = 0
    misses: int = 0
    evictions: int = 0
    invalidations: int = 0

    @property
    def hit_rate(self) -> float:
        """캐시 히트율 계산."""
        total = self.hits + self.misses
        return self.hits / total if total > 0 else 0.0


class ReportCache:
    """
    프로젝트 단위 보고서 캐시.

    Attributes:
        ttl_seconds: 캐시 만료 시간 (초). 0 이하이면 캐시를 사용하지 않음.
        max_entries: 메모리 캐시 최대 엔트리 수
    """

    def __init__(self, ttl_seconds: float = 2.0, max_entries: int = 256):
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._entries: Dict[Tuple[str, str], CacheEntry] = {}
        self._stats = CacheStats()

    @property
    def enabled(self) -> bool:
        return self.ttl_seconds > 0

    def get(self, project_id: str, kind: str) -> Optional[Any]:
        """
        캐시에서 값 조회. 만료된 엔트리는 제거됩니다.

        Returns:
            캐시된 값. 없거나 만료되면 None.
        """
        if not self.enabled:
            return None

        key = (project_id, kind)
        entry = self._entries.get(key)
        if entry is not None:
            if time.monotonic() < entry.expires_at:
                entry.hit_count += 1
                self._stats.hits += 1
                logger.debug(f"[ReportCache] 캐시 히트: {project_id}/{kind}")
                return entry.value
            del self._entries[key]
            self._stats.evictions += 1

        self._stats.misses += 1
        return None

    def set(self, project_id: str, kind: str, value: Any) -> None:
        if not self.enabled:
            return

        if len(self._entries) >= self.max_entries:
            # 가장 오래된 엔트리 제거 (LRU 근사)
            oldest_key = min(self._entries, key=lambda k: self._entries[k].created_at)
            del self._entries[oldest_key]
            self._stats.evictions += 1

        now = time.monotonic()
        self._entries[(project_id, kind)] = CacheEntry(
            value=value,
            created_at=now,
            expires_at=now + self.ttl_seconds,
        )

    def invalidate(self, project_id: str) -> int:
        """프로젝트의 모든 캐시 엔트리를 제거하고 제거된 개수를 반환합니다."""
        keys = [k for k in self._entries if k[0] == project_id]
        for key in keys:
            del self._entries[key]
        if keys:
            self._stats.invalidations += 1
            logger.debug(f"[ReportCache] 무효화: {project_id} ({len(keys)}건)")
        return len(keys)

    def clear(self) -> None:
        self._entries.clear()

    def get_stats(self) -> dict:
        """캐시 통계 반환."""
        return {
            "entries": len(self._entries),
            "ttl_seconds": self.ttl_seconds,
            "hits": self._stats.hits,
            "misses": self._stats.misses,
            "evictions": self._stats.evictions,
            "invalidations": self._stats.invalidations,
            "hit_rate": f"{self._stats.hit_rate:.1%}",
        }
