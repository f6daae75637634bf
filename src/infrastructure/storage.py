"""
Record storage for analyses, chat messages and sessions
Supports in-memory and Redis backends
"""
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

import redis.asyncio as aioredis

from src.core.records import (
    AnalysisRecord,
    MessageRecord,
    NewAnalysis,
    SessionRecord,
    utcnow,
)
from src.utils.config import settings
from src.utils.exceptions import RecordNotFoundError, StorageError
from src.utils.logger import get_logger

logger = get_logger(__name__)


class AnalysisStore(ABC):
    """Abstract record store; each call is atomic for a single record"""

    @abstractmethod
    async def create_analysis(self, analysis: NewAnalysis) -> AnalysisRecord:
        pass

    @abstractmethod
    async def get_analysis(self, analysis_id: int) -> Optional[AnalysisRecord]:
        pass

    @abstractmethod
    async def latest_analysis(self, session_id: str) -> Optional[AnalysisRecord]:
        """Most recent analysis of a session"""
        pass

    @abstractmethod
    async def mark_downloaded(self, analysis_id: int) -> AnalysisRecord:
        pass

    @abstractmethod
    async def create_message(self, session_id: str, role: str, content: str,
                             analysis_id: Optional[int] = None) -> MessageRecord:
        pass

    @abstractmethod
    async def get_messages(self, session_id: str) -> List[MessageRecord]:
        pass

    @abstractmethod
    async def list_sessions(self) -> List[SessionRecord]:
        pass

    @abstractmethod
    async def clear_session(self, session_id: str) -> None:
        """Delete a session with its analyses and messages"""
        pass

    @abstractmethod
    async def rename_session(self, session_id: str, name: str) -> SessionRecord:
        pass


class MemoryAnalysisStore(AnalysisStore):
    """In-memory store (dict-based, lost on restart)"""

    def __init__(self):
        self._analyses: Dict[int, AnalysisRecord] = {}
        self._messages: Dict[str, List[MessageRecord]] = {}
        self._sessions: Dict[str, SessionRecord] = {}
        self._next_analysis_id = 1
        self._next_message_id = 1
        logger.info("MemoryAnalysisStore initialized")

    def _touch_session(self, session_id: str) -> None:
        session = self._sessions.get(session_id)
        if session is None:
            self._sessions[session_id] = SessionRecord(session_id=session_id)
        else:
            self._sessions[session_id] = session.model_copy(update={"updated_at": utcnow()})

    async def create_analysis(self, analysis: NewAnalysis) -> AnalysisRecord:
        record = AnalysisRecord(id=self._next_analysis_id, **analysis.model_dump())
        self._next_analysis_id += 1
        self._analyses[record.id] = record
        self._touch_session(record.session_id)
        logger.info(f"Stored analysis {record.id} for session {record.session_id}")
        return record

    async def get_analysis(self, analysis_id: int) -> Optional[AnalysisRecord]:
        return self._analyses.get(analysis_id)

    async def latest_analysis(self, session_id: str) -> Optional[AnalysisRecord]:
        candidates = [a for a in self._analyses.values() if a.session_id == session_id]
        return max(candidates, key=lambda a: a.id) if candidates else None

    async def mark_downloaded(self, analysis_id: int) -> AnalysisRecord:
        record = self._analyses.get(analysis_id)
        if record is None:
            raise RecordNotFoundError("Analysis not found")
        record = record.model_copy(update={"downloaded": True})
        self._analyses[analysis_id] = record
        return record

    async def create_message(self, session_id: str, role: str, content: str,
                             analysis_id: Optional[int] = None) -> MessageRecord:
        message = MessageRecord(
            id=self._next_message_id,
            session_id=session_id,
            analysis_id=analysis_id,
            role=role,
            content=content,
        )
        self._next_message_id += 1
        self._messages.setdefault(session_id, []).append(message)
        self._touch_session(session_id)
        return message

    async def get_messages(self, session_id: str) -> List[MessageRecord]:
        return list(self._messages.get(session_id, []))

    async def list_sessions(self) -> List[SessionRecord]:
        return sorted(self._sessions.values(), key=lambda s: s.updated_at, reverse=True)

    async def clear_session(self, session_id: str) -> None:
        self._analyses = {k: v for k, v in self._analyses.items() if v.session_id != session_id}
        self._messages.pop(session_id, None)
        self._sessions.pop(session_id, None)
        logger.info(f"Cleared session {session_id}")

    async def rename_session(self, session_id: str, name: str) -> SessionRecord:
        session = self._sessions.get(session_id) or SessionRecord(session_id=session_id)
        session = session.model_copy(update={"name": name, "updated_at": utcnow()})
        self._sessions[session_id] = session
        return session


class RedisAnalysisStore(AnalysisStore):
    """Redis store (JSON documents, per-session index lists)"""

    def __init__(self, redis_url: Optional[str] = None, prefix: Optional[str] = None, client=None):
        """
        Initialize Redis store

        Args:
            redis_url: Redis connection URL (uses config if None)
            prefix: Key prefix (uses config if None)
            client: Pre-built redis.asyncio client
        """
        self.prefix = prefix or settings.REDIS_KEY_PREFIX
        self.client = client or aioredis.from_url(redis_url or settings.redis_url_resolved, decode_responses=True)
        logger.info(f"RedisAnalysisStore initialized (prefix={self.prefix})")

    def _key(self, *parts) -> str:
        return ":".join([self.prefix, *map(str, parts)])

    async def _load_session(self, session_id: str) -> Optional[SessionRecord]:
        raw = await self.client.hget(self._key("sessions"), session_id)
        return SessionRecord.model_validate_json(raw) if raw else None

    async def _save_session(self, session: SessionRecord) -> None:
        await self.client.hset(self._key("sessions"), session.session_id, session.model_dump_json())

    async def _touch_session(self, session_id: str) -> None:
        session = await self._load_session(session_id) or SessionRecord(session_id=session_id)
        await self._save_session(session.model_copy(update={"updated_at": utcnow()}))

    async def create_analysis(self, analysis: NewAnalysis) -> AnalysisRecord:
        try:
            analysis_id = await self.client.incr(self._key("seq", "analysis"))
            record = AnalysisRecord(id=analysis_id, **analysis.model_dump())
            await self.client.set(self._key("analysis", record.id), record.model_dump_json())
            await self.client.rpush(self._key("session", record.session_id, "analyses"), record.id)
            await self._touch_session(record.session_id)
        except aioredis.RedisError as e:
            logger.error(f"Redis create_analysis error: {e}")
            raise StorageError(f"Failed to store analysis: {e}")
        logger.info(f"Stored analysis {record.id} for session {record.session_id}")
        return record

    async def get_analysis(self, analysis_id: int) -> Optional[AnalysisRecord]:
        raw = await self.client.get(self._key("analysis", analysis_id))
        return AnalysisRecord.model_validate_json(raw) if raw else None

    async def latest_analysis(self, session_id: str) -> Optional[AnalysisRecord]:
        last = await self.client.lindex(self._key("session", session_id, "analyses"), -1)
        return await self.get_analysis(int(last)) if last is not None else None

    async def mark_downloaded(self, analysis_id: int) -> AnalysisRecord:
        record = await self.get_analysis(analysis_id)
        if record is None:
            raise RecordNotFoundError("Analysis not found")
        record = record.model_copy(update={"downloaded": True})
        await self.client.set(self._key("analysis", analysis_id), record.model_dump_json())
        return record

    async def create_message(self, session_id: str, role: str, content: str,
                             analysis_id: Optional[int] = None) -> MessageRecord:
        try:
            message = MessageRecord(
                id=await self.client.incr(self._key("seq", "message")),
                session_id=session_id,
                analysis_id=analysis_id,
                role=role,
                content=content,
            )
            await self.client.rpush(self._key("session", session_id, "messages"), message.model_dump_json())
            await self._touch_session(session_id)
        except aioredis.RedisError as e:
            logger.error(f"Redis create_message error: {e}")
            raise StorageError(f"Failed to store message: {e}")
        return message

    async def get_messages(self, session_id: str) -> List[MessageRecord]:
        raw = await self.client.lrange(self._key("session", session_id, "messages"), 0, -1)
        return [MessageRecord.model_validate_json(item) for item in raw]

    async def list_sessions(self) -> List[SessionRecord]:
        raw = await self.client.hvals(self._key("sessions"))
        sessions = [SessionRecord.model_validate_json(item) for item in raw]
        return sorted(sessions, key=lambda s: s.updated_at, reverse=True)

    async def clear_session(self, session_id: str) -> None:
        ids = await self.client.lrange(self._key("session", session_id, "analyses"), 0, -1)
        keys = [self._key("analysis", i) for i in ids]
        keys += [self._key("session", session_id, "analyses"), self._key("session", session_id, "messages")]
        await self.client.delete(*keys)
        await self.client.hdel(self._key("sessions"), session_id)
        logger.info(f"Cleared session {session_id}")

    async def rename_session(self, session_id: str, name: str) -> SessionRecord:
        session = await self._load_session(session_id) or SessionRecord(session_id=session_id)
        session = session.model_copy(update={"name": name, "updated_at": utcnow()})
        await self._save_session(session)
        return session


# Global store instance
_analysis_store: Optional[AnalysisStore] = None


def get_analysis_store() -> AnalysisStore:
    """Get record store instance (singleton, backend chosen by STORAGE_BACKEND)"""
    global _analysis_store
    if _analysis_store is None:
        if settings.STORAGE_BACKEND == "redis":
            _analysis_store = RedisAnalysisStore()
        else:
            _analysis_store = MemoryAnalysisStore()
    return _analysis_store
