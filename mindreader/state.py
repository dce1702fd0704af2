import asyncio
import logging
import time
from abc import ABC, abstractmethod
from collections import OrderedDict
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable, Dict, Optional

from redis.asyncio import Redis

from .config import Settings, settings as default_settings
from .models import GameSession

logger = logging.getLogger("mindreader")


class SessionStore(ABC):
	"""Keyed session storage. ``get`` hands out a private copy; nothing changes until ``put``."""

	@abstractmethod
	async def get(self, session_id: str) -> Optional[GameSession]:
		...

	@abstractmethod
	async def put(self, session: GameSession) -> None:
		...

	@abstractmethod
	async def delete(self, session_id: str) -> None:
		...

	@abstractmethod
	def lock(self, session_id: str):
		"""Async context manager serializing mutations of one session."""

	async def close(self) -> None:
		return None


class InMemorySessionStore(SessionStore):
	def __init__(self, ttl_seconds: int = 3600, max_sessions: int = 1000, clock: Callable[[], float] = time.time) -> None:
		self.ttl_seconds = ttl_seconds
		self.max_sessions = max_sessions
		self.clock = clock
		self.sessions: "OrderedDict[str, GameSession]" = OrderedDict()
		self._locks: Dict[str, asyncio.Lock] = {}
		self._lock_users: Dict[str, int] = {}

	def __len__(self) -> int:
		return len(self.sessions)

	def _forget(self, session_id: str) -> None:
		self.sessions.pop(session_id, None)

	def purge_expired(self) -> int:
		if self.ttl_seconds <= 0:
			return 0
		now = self.clock()
		expired = [sid for sid, s in self.sessions.items() if now - s.last_accessed > self.ttl_seconds]
		for sid in expired:
			self._forget(sid)
		if expired:
			logger.debug({"event": "sessions_expired", "count": len(expired)})
		return len(expired)

	async def get(self, session_id: str) -> Optional[GameSession]:
		self.purge_expired()
		session = self.sessions.get(session_id)
		if session is None:
			return None
		session.last_accessed = self.clock()
		self.sessions.move_to_end(session_id)
		return session.model_copy(deep=True)

	async def put(self, session: GameSession) -> None:
		stored = session.model_copy(deep=True)
		stored.last_accessed = self.clock()
		self.sessions[stored.session_id] = stored
		self.sessions.move_to_end(stored.session_id)
		while self.max_sessions > 0 and len(self.sessions) > self.max_sessions:
			oldest = next(iter(self.sessions))
			self._forget(oldest)
			logger.debug({"event": "session_evicted", "session_id": oldest})

	async def delete(self, session_id: str) -> None:
		self._forget(session_id)

	@asynccontextmanager
	async def lock(self, session_id: str) -> AsyncIterator[None]:
		# An entry lives only while some task holds or waits on it.
		lock = self._locks.setdefault(session_id, asyncio.Lock())
		self._lock_users[session_id] = self._lock_users.get(session_id, 0) + 1
		try:
			async with lock:
				yield
		finally:
			remaining = self._lock_users[session_id] - 1
			if remaining:
				self._lock_users[session_id] = remaining
			else:
				del self._lock_users[session_id]
				del self._locks[session_id]


class RedisSessionStore(SessionStore):
	def __init__(self, redis: Redis, ttl_seconds: int = 3600, *, prefix: str = "mindreader:session:", lock_timeout: float = 60.0) -> None:
		self.redis = redis
		self.ttl_seconds = ttl_seconds
		self.prefix = prefix
		self.lock_timeout = lock_timeout

	def _key(self, session_id: str) -> str:
		return f"{self.prefix}{session_id}"

	async def get(self, session_id: str) -> Optional[GameSession]:
		raw = await self.redis.get(self._key(session_id))
		if raw is None:
			return None
		session = GameSession.model_validate_json(raw)
		session.last_accessed = time.time()
		await self.redis.expire(self._key(session_id), self.ttl_seconds)
		return session

	async def put(self, session: GameSession) -> None:
		session.last_accessed = time.time()
		await self.redis.set(self._key(session.session_id), session.model_dump_json(), ex=self.ttl_seconds)

	async def delete(self, session_id: str) -> None:
		await self.redis.delete(self._key(session_id))

	@asynccontextmanager
	async def lock(self, session_id: str) -> AsyncIterator[None]:
		async with self.redis.lock(self._key(session_id) + ":lock", timeout=self.lock_timeout):
			yield

	async def close(self) -> None:
		await self.redis.aclose()


LOCK_MARGIN_SECONDS = 10.0


def turn_lock_timeout(settings: Settings) -> float:
	"""Upper bound on one turn: every model attempt timing out plus a full enrichment miss."""
	model_calls = settings.duplicate_retries + 1
	enrichment_calls = 3
	return (
		model_calls * settings.llm_timeout_seconds
		+ enrichment_calls * settings.enrichment_timeout_seconds
		+ LOCK_MARGIN_SECONDS
	)


def build_session_store(settings: Settings = default_settings) -> SessionStore:
	if settings.session_backend == "redis":
		lock_timeout = turn_lock_timeout(settings)
		logger.info({"event": "session_store", "backend": "redis", "url": settings.redis_url, "lock_timeout": lock_timeout})
		client = Redis.from_url(settings.redis_url, decode_responses=True)
		return RedisSessionStore(client, settings.session_ttl_seconds, lock_timeout=lock_timeout)
	logger.info({"event": "session_store", "backend": "memory", "max_sessions": settings.max_sessions})
	return InMemorySessionStore(settings.session_ttl_seconds, settings.max_sessions)
