from __future__ import annotations

import logging
import uuid
from collections import OrderedDict
from dataclasses import dataclass
from datetime import datetime, timezone
from threading import RLock

from fees_dashboard.application.use_cases.assemble_fee_series import AssembleFeeSeriesUseCase
from fees_dashboard.domain.services.series_cache import SeriesCache


logger = logging.getLogger(__name__)


@dataclass
class FeeSession:
    session_id: str
    protocol_id: str
    assembler: AssembleFeeSeriesUseCase
    created_at: datetime

    @property
    def cache(self) -> SeriesCache:
        return self.assembler.cache


class FeeSessionRegistry:
    """In-memory dashboard sessions, least recently used evicted first."""

    def __init__(self, max_entries: int):
        self._max_entries = max(1, max_entries)
        self._sessions: OrderedDict[str, FeeSession] = OrderedDict()
        self._lock = RLock()

    def create(self, *, protocol_id: str, assembler: AssembleFeeSeriesUseCase) -> FeeSession:
        session = FeeSession(
            session_id=uuid.uuid4().hex,
            protocol_id=protocol_id,
            assembler=assembler,
            created_at=datetime.now(timezone.utc),
        )
        with self._lock:
            self._sessions[session.session_id] = session
            while len(self._sessions) > self._max_entries:
                evicted_id, evicted = self._sessions.popitem(last=False)
                logger.info(
                    "fee_session_registry: evicted session=%s protocol=%s",
                    evicted_id,
                    evicted.protocol_id,
                )
        return session

    def get(self, session_id: str) -> FeeSession | None:
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                return None
            self._sessions.move_to_end(session_id)
            return session

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)
