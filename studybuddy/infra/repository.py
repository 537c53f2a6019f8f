from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.orm import sessionmaker

from .db import SessionLocal
from .models import SnapshotSlotModel

logger = logging.getLogger(__name__)

PROGRESS_SLOT = "task-progress"
ACHIEVEMENTS_SLOT = "task-achievements"
TASKS_SLOT = "task-list"


class SnapshotRepository:
    """Durable key-value slots holding serialized snapshots."""

    def __init__(self, session_factory: sessionmaker = SessionLocal) -> None:
        self._session_factory = session_factory

    def read(self, key: str) -> Optional[str]:
        with self._session_factory() as session:
            slot = session.get(SnapshotSlotModel, key)
            return slot.payload if slot else None

    def write(self, key: str, payload: str) -> None:
        with self._session_factory() as session:
            slot = session.get(SnapshotSlotModel, key)
            if slot is None:
                session.add(SnapshotSlotModel(key=key, payload=payload))
            else:
                slot.payload = payload
            session.commit()
        logger.debug("Snapshot slot %s written (%d bytes)", key, len(payload))
