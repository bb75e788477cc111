"""
In-memory store of active calls, keyed by the transport's call ID.

A record is created on the first turn of a call and dropped when the call
reaches a terminal state. Turns for the same call are serialized by a
per-call ``asyncio.Lock``; the map itself is guarded by a
``threading.Lock`` so creation is safe from any thread.

After a call ends its final reply is kept in a bounded cache, so a turn
delivered again by the transport gets the same goodbye instead of a new
greeting and never re-runs side effects.
"""

import asyncio
import logging
import threading
from collections import OrderedDict
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Optional

from receptionist.conversation.record import CallRecord

logger = logging.getLogger(__name__)

DEFAULT_ENDED_CACHE_SIZE = 256


@dataclass(frozen=True)
class EndedCall:
    record: CallRecord
    farewell: str


class CallSessionStore:
    """Keyed store of ``CallRecord`` objects with per-call turn locks."""

    def __init__(self, ended_cache_size: int = DEFAULT_ENDED_CACHE_SIZE) -> None:
        self._lock = threading.Lock()
        self._records: dict[str, CallRecord] = {}
        self._turn_locks: dict[str, asyncio.Lock] = {}
        self._ended: OrderedDict[str, EndedCall] = OrderedDict()
        self._ended_cache_size = ended_cache_size

    def _get_or_create(self, call_id: str) -> CallRecord:
        with self._lock:
            record = self._records.get(call_id)
            if record is None:
                record = CallRecord(call_id=call_id)
                self._records[call_id] = record
                logger.info("Session created (active calls: %d)", len(self._records))
        return record

    def _turn_lock(self, call_id: str) -> asyncio.Lock:
        with self._lock:
            return self._turn_locks.setdefault(call_id, asyncio.Lock())

    @asynccontextmanager
    async def session(self, call_id: str) -> AsyncIterator[Optional[CallRecord]]:
        """Hold the call's turn lock and yield its record.

        Yields ``None`` when the call has already ended; otherwise the
        record, created if this is the call's first turn.
        """
        async with self._turn_lock(call_id):
            if self.ended_reply(call_id) is not None:
                yield None
                return
            record = self._get_or_create(call_id)
            yield record

    def get(self, call_id: str) -> Optional[CallRecord]:
        with self._lock:
            return self._records.get(call_id)

    def discard(self, call_id: str, farewell: str) -> None:
        """Drop an ended call, remembering its last reply for duplicate turns."""
        with self._lock:
            record = self._records.pop(call_id, None)
            self._turn_locks.pop(call_id, None)
            if record is None:
                return
            self._ended[call_id] = EndedCall(record=record, farewell=farewell)
            while len(self._ended) > self._ended_cache_size:
                self._ended.popitem(last=False)
        logger.info("Session discarded (outcome: %s)", record.outcome.value if record.outcome else None)

    def ended_reply(self, call_id: str) -> Optional[str]:
        with self._lock:
            ended = self._ended.get(call_id)
        return ended.farewell if ended else None

    def ended_record(self, call_id: str) -> Optional[CallRecord]:
        with self._lock:
            ended = self._ended.get(call_id)
        return ended.record if ended else None

    def active_call_ids(self) -> list[str]:
        with self._lock:
            return list(self._records)

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def clear(self) -> None:
        with self._lock:
            self._records.clear()
            self._turn_locks.clear()
            self._ended.clear()
