"""PRD repository protocol and the in-memory implementation.

Epics are children of exactly one PRD. The repository keeps an
epic-id -> prd-id index so epic lookups never scan every record, and it
serializes all read-modify-write sequences under one asyncio lock. Records
handed out are deep copies; callers cannot mutate stored state.
"""

import asyncio
from datetime import datetime, timezone
from typing import Dict, List, Optional, Protocol, Tuple, runtime_checkable

from beanstalk.core.logging import storage_logger
from beanstalk.schemas.epic import Epic, UserStory
from beanstalk.schemas.prd import PrdCreate, PrdRecord, PrdUpdate


@runtime_checkable
class PrdRepository(Protocol):
    """Protocol for PRD storage."""

    async def list_all(self) -> List[PrdRecord]:
        """All PRDs, newest first."""
        ...

    async def get(self, prd_id: int) -> Optional[PrdRecord]:
        ...

    async def create(self, prd: PrdCreate) -> PrdRecord:
        ...

    async def update(self, prd_id: int, prd_update: PrdUpdate) -> Optional[PrdRecord]:
        """Apply the fields set on ``prd_update``. None if the PRD is missing."""
        ...

    async def delete(self, prd_id: int) -> bool:
        """Delete a PRD and its epics. Returns True if deleted."""
        ...

    async def replace_epics(self, prd_id: int, epics: List[Epic]) -> Optional[PrdRecord]:
        """Swap the whole epic batch of a PRD in one step."""
        ...

    async def find_epic(self, epic_id: str) -> Optional[Tuple[int, Epic]]:
        """(parent prd id, epic) or None."""
        ...

    async def append_story(self, epic_id: str, story: UserStory) -> Optional[Epic]:
        ...

    async def delete_epic(self, epic_id: str) -> bool:
        ...

    async def count(self) -> int:
        ...


def _now() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryPrdRepository:
    """Process-local PRD store. Contents are lost on restart."""

    def __init__(self):
        self._prds: Dict[int, PrdRecord] = {}
        self._epic_index: Dict[str, int] = {}
        self._next_id = 1
        self._lock = asyncio.Lock()

    async def list_all(self) -> List[PrdRecord]:
        records = sorted(self._prds.values(), key=lambda prd: (prd.created_at, prd.id), reverse=True)
        return [record.model_copy(deep=True) for record in records]

    async def get(self, prd_id: int) -> Optional[PrdRecord]:
        record = self._prds.get(prd_id)
        return record.model_copy(deep=True) if record else None

    async def create(self, prd: PrdCreate) -> PrdRecord:
        async with self._lock:
            now = _now()
            record = PrdRecord(
                id=self._next_id,
                created_at=now,
                updated_at=now,
                epics=[],
                **prd.model_dump(),
            )
            self._prds[record.id] = record
            self._next_id += 1
            storage_logger.info("PRD stored", prd_id=record.id, title=record.title)
            return record.model_copy(deep=True)

    async def update(self, prd_id: int, prd_update: PrdUpdate) -> Optional[PrdRecord]:
        async with self._lock:
            existing = self._prds.get(prd_id)
            if not existing:
                return None

            changes = prd_update.model_dump(exclude_unset=True)
            if prd_update.content is not None:
                changes["content"] = prd_update.content.model_copy(deep=True)
            updated = existing.model_copy(update={**changes, "updated_at": _now()}, deep=True)
            self._prds[prd_id] = updated
            storage_logger.info("PRD updated", prd_id=prd_id, fields=sorted(changes))
            return updated.model_copy(deep=True)

    async def delete(self, prd_id: int) -> bool:
        async with self._lock:
            record = self._prds.pop(prd_id, None)
            if not record:
                return False
            for epic in record.epics:
                self._epic_index.pop(epic.id, None)
            storage_logger.info("PRD deleted", prd_id=prd_id, epics_removed=len(record.epics))
            return True

    async def replace_epics(self, prd_id: int, epics: List[Epic]) -> Optional[PrdRecord]:
        async with self._lock:
            existing = self._prds.get(prd_id)
            if not existing:
                return None

            new_epics = [epic.model_copy(deep=True) for epic in epics]
            for epic in existing.epics:
                self._epic_index.pop(epic.id, None)
            for epic in new_epics:
                self._epic_index[epic.id] = prd_id

            updated = existing.model_copy(update={"epics": new_epics, "updated_at": _now()})
            self._prds[prd_id] = updated
            storage_logger.info(
                "Epic batch replaced",
                prd_id=prd_id,
                previous=len(existing.epics),
                current=len(new_epics),
            )
            return updated.model_copy(deep=True)

    async def find_epic(self, epic_id: str) -> Optional[Tuple[int, Epic]]:
        prd_id = self._epic_index.get(epic_id)
        if prd_id is None:
            return None
        for epic in self._prds[prd_id].epics:
            if epic.id == epic_id:
                return prd_id, epic.model_copy(deep=True)
        return None

    async def append_story(self, epic_id: str, story: UserStory) -> Optional[Epic]:
        async with self._lock:
            prd_id = self._epic_index.get(epic_id)
            if prd_id is None:
                return None

            record = self._prds[prd_id]
            epics = []
            appended = None
            for epic in record.epics:
                if epic.id == epic_id:
                    epic = epic.model_copy(
                        update={"user_stories": [*epic.user_stories, story.model_copy(deep=True)]}
                    )
                    appended = epic
                epics.append(epic)

            self._prds[prd_id] = record.model_copy(update={"epics": epics, "updated_at": _now()})
            storage_logger.info("Story appended", prd_id=prd_id, epic_id=epic_id, story_id=story.id)
            return appended.model_copy(deep=True)

    async def delete_epic(self, epic_id: str) -> bool:
        async with self._lock:
            prd_id = self._epic_index.pop(epic_id, None)
            if prd_id is None:
                return False

            record = self._prds[prd_id]
            epics = [epic for epic in record.epics if epic.id != epic_id]
            self._prds[prd_id] = record.model_copy(update={"epics": epics, "updated_at": _now()})
            storage_logger.info("Epic deleted", prd_id=prd_id, epic_id=epic_id)
            return True

    async def count(self) -> int:
        return len(self._prds)
