"""
프로젝트 리소스 잠금 관리자입니다.

프로젝트별, 리소스별(baseline, change_requests, tasks)로 asyncio.Lock을 하나씩 두어
"검사 후 생성" 같은 복합 쓰기 작업을 직렬화합니다.
프로젝트 간에는 잠금을 공유하지 않습니다.

사용 예시:
    locks = ProjectLockManager(timeout_seconds=30)
    async with locks.acquire("proj-1", "change_requests"):
        ...
"""

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import AsyncIterator, Dict, Optional, Tuple

from taskscope.exceptions import LockTimeoutError

logger = logging.getLogger(__name__)

RESOURCES = ("baseline", "change_requests", "tasks")


@dataclass
class LockEntry:
    """잠금 하나의 상태."""
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    waiters: int = 0
    holder: Optional[str] = None
    acquired_at: Optional[float] = None
    acquisitions: int = 0


class ProjectLockManager:
    """(project_id, resource) 단위 잠금 관리자."""

    def __init__(self, timeout_seconds: float = 30.0):
        self.timeout_seconds = timeout_seconds
        self._locks: Dict[Tuple[str, str], LockEntry] = {}
        self._timeouts = 0

    def _entry(self, project_id: str, resource: str) -> LockEntry:
        if resource not in RESOURCES:
            raise ValueError(f"알 수 없는 잠금 리소스: {resource}")
        key = (project_id, resource)
        entry = self._locks.get(key)
        if entry is None:
            entry = LockEntry()
            self._locks[key] = entry
        return entry

    @asynccontextmanager
    async def acquire(
        self,
        project_id: str,
        resource: str,
        holder: str = "",
        timeout: Optional[float] = None,
    ) -> AsyncIterator[None]:
        """
        잠금을 획득합니다. 제한 시간 안에 얻지 못하면 LockTimeoutError를 발생시키며
        이 경우 어떤 쓰기도 일어나지 않습니다.
        """
        entry = self._entry(project_id, resource)
        wait = self.timeout_seconds if timeout is None else timeout

        if entry.lock.locked():
            logger.debug(f"[Locks] 대기: {project_id}/{resource} (보유자: {entry.holder})")

        entry.waiters += 1
        try:
            await asyncio.wait_for(entry.lock.acquire(), timeout=wait)
        except asyncio.TimeoutError:
            self._timeouts += 1
            logger.warning(f"[Locks] 잠금 시간 초과: {project_id}/{resource} ({wait}s)")
            raise LockTimeoutError(
                f"리소스 잠금을 획득하지 못했습니다: {project_id}/{resource}",
                details={"project_id": project_id, "resource": resource, "timeout": wait},
            )
        finally:
            entry.waiters -= 1

        entry.holder = holder or None
        entry.acquired_at = time.monotonic()
        entry.acquisitions += 1
        try:
            yield
        finally:
            entry.holder = None
            entry.acquired_at = None
            entry.lock.release()

    def is_locked(self, project_id: str, resource: str) -> bool:
        entry = self._locks.get((project_id, resource))
        return bool(entry and entry.lock.locked())

    def status(self) -> dict:
        """현재 잠금 상태 요약 (상세 헬스 체크용)."""
        now = time.monotonic()
        active = []
        for (project_id, resource), entry in self._locks.items():
            if entry.lock.locked() or entry.waiters:
                active.append({
                    "project_id": project_id,
                    "resource": resource,
                    "holder": entry.holder,
                    "held_seconds": round(now - entry.acquired_at, 3) if entry.acquired_at else None,
                    "waiters": entry.waiters,
                })
        return {
            "tracked_locks": len(self._locks),
            "active_locks": active,
            "timeouts": self._timeouts,
            "timeout_seconds": self.timeout_seconds,
        }
