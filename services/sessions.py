"""Навигационное состояние пользователей: живёт только в памяти процесса."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable

if TYPE_CHECKING:
    from services.catalog import ProductView

logger = logging.getLogger(__name__)

STAGE_AWAITING_EMAIL = "awaiting_email"


@dataclass
class UserSession:
    stage: str | None = None
    category: str | None = None
    index: int = 0
    products: list["ProductView"] = field(default_factory=list)
    message_id: int | None = None

    # Черновик авторизации, пока stage == awaiting_email
    pending_email: str | None = None
    matched_identity: Any = None

    touched_at: float = 0.0

    def reset_navigation(self) -> None:
        self.category = None
        self.index = 0
        self.products = []
        self.message_id = None

    def reset_auth(self) -> None:
        self.stage = None
        self.pending_email = None
        self.matched_identity = None


class SessionStore:
    """
    Таблица сессий по telegram_id с блокировкой на пользователя.
    Сессии, которые не трогали дольше idle_ttl секунд, удаляет sweep().
    """

    def __init__(
        self,
        idle_ttl: float = 3600,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.idle_ttl = idle_ttl
        self._clock = clock
        self._sessions: dict[int, UserSession] = {}
        self._locks: dict[int, asyncio.Lock] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def get(self, user_id: int) -> UserSession | None:
        session = self._sessions.get(user_id)
        if session is not None:
            session.touched_at = self._clock()
        return session

    def set(self, user_id: int, session: UserSession) -> UserSession:
        session.touched_at = self._clock()
        self._sessions[user_id] = session
        return session

    def get_or_create(self, user_id: int) -> UserSession:
        session = self.get(user_id)
        if session is None:
            session = self.set(user_id, UserSession())
        return session

    def clear(self, user_id: int) -> None:
        self._sessions.pop(user_id, None)

    def lock(self, user_id: int) -> asyncio.Lock:
        lock = self._locks.get(user_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[user_id] = lock
        return lock

    def sweep(self) -> int:
        now = self._clock()
        evicted = 0
        for user_id, session in list(self._sessions.items()):
            if now - session.touched_at <= self.idle_ttl:
                continue
            lock = self._locks.get(user_id)
            if lock is not None and lock.locked():
                continue
            self._sessions.pop(user_id, None)
            self._locks.pop(user_id, None)
            evicted += 1

        for user_id, lock in list(self._locks.items()):
            if user_id not in self._sessions and not lock.locked():
                self._locks.pop(user_id, None)

        if evicted:
            logger.info("Evicted %s idle sessions, %s left", evicted, len(self._sessions))
        return evicted

    async def run_sweeper(self, interval: float = 300) -> None:
        while True:
            await asyncio.sleep(interval)
            self.sweep()
