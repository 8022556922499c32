"""Local offline cache.

The cache is a single JSON document stored under a fixed key. It is only
ever read and written whole; every mutation is load, modify, save. The
document layout is:

    {
        "userRoadmaps": [<Roadmap>, ...],
        "shadowItems": {"<item id>": {"roadmapId": ..., "completed": ...}},
        "preferences": {<UserPreferences>}
    }

``shadowItems`` records completion writes for items the cache has not seen
yet. They are applied when the owning roadmap is read or stored.
"""

import asyncio
import json
import os
import uuid
import weakref
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from app.core.errors import PersistenceError
from app.core.logging import get_logger
from app.schemas.preferences import UserPreferences
from app.schemas.roadmap import Roadmap

logger = get_logger(__name__)

ROADMAPS_KEY = "userRoadmaps"
SHADOW_KEY = "shadowItems"
PREFERENCES_KEY = "preferences"

# Held strongly by the caches using them; dropped with the last one
_locks: "weakref.WeakValueDictionary[Path, asyncio.Lock]" = weakref.WeakValueDictionary()


def _lock_for(path: Path) -> asyncio.Lock:
    lock = _locks.get(path)
    if lock is None:
        lock = asyncio.Lock()
        _locks[path] = lock
    return lock


def _empty_document() -> dict[str, Any]:
    return {ROADMAPS_KEY: [], SHADOW_KEY: {}, PREFERENCES_KEY: {}}


def _now() -> datetime:
    return datetime.now(UTC)


def _recency(roadmap: Roadmap) -> datetime:
    # Mirrored remote rows carry naive UTC timestamps
    stamp = roadmap.updated_at or datetime.min
    return stamp if stamp.tzinfo else stamp.replace(tzinfo=UTC)


class LocalCache:
    """Whole-document JSON store for one client namespace."""

    def __init__(self, directory: Path, key: str = "userData", namespace: str = "default") -> None:
        self.path = Path(directory) / namespace / f"{key}.json"
        self._lock = _lock_for(self.path.resolve())

    # ------------------------------------------------------------------
    # Whole-document primitives
    # ------------------------------------------------------------------

    def _read_sync(self) -> dict[str, Any]:
        if not self.path.exists():
            return _empty_document()
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(
                "Local cache unreadable, starting empty", path=str(self.path), error=str(e)
            )
            return _empty_document()
        if not isinstance(data, dict):
            return _empty_document()
        doc = _empty_document()
        doc.update(data)
        return doc

    def _write_sync(self, document: dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(".tmp")
        tmp.write_text(json.dumps(document, ensure_ascii=False, default=str), encoding="utf-8")
        os.replace(tmp, self.path)

    async def read_document(self) -> dict[str, Any]:
        return await asyncio.to_thread(self._read_sync)

    async def write_document(self, document: dict[str, Any]) -> None:
        try:
            await asyncio.to_thread(self._write_sync, document)
        except OSError as e:
            raise PersistenceError("Failed to write local cache", detail=str(e)) from e

    # ------------------------------------------------------------------
    # Roadmaps
    # ------------------------------------------------------------------

    @staticmethod
    def _parse_roadmaps(document: dict[str, Any]) -> list[Roadmap]:
        roadmaps = []
        for raw in document.get(ROADMAPS_KEY) or []:
            try:
                roadmaps.append(Roadmap.model_validate(raw))
            except ValidationError as e:
                logger.warning("Skipping malformed cached roadmap", error=str(e))
        return roadmaps

    @staticmethod
    def _apply_shadows(roadmap: Roadmap, shadows: dict[str, dict]) -> Roadmap:
        if not shadows:
            return roadmap
        items = [
            item.model_copy(update={"completed": bool(shadows[item.id]["completed"])})
            if item.id in shadows
            else item
            for item in roadmap.items
        ]
        return roadmap.model_copy(update={"items": items})

    async def list_roadmaps(self) -> list[Roadmap]:
        document = await self.read_document()
        shadows = document.get(SHADOW_KEY) or {}
        roadmaps = [self._apply_shadows(r, shadows) for r in self._parse_roadmaps(document)]
        roadmaps.sort(key=_recency, reverse=True)
        return roadmaps

    async def get_roadmap(self, roadmap_id: str) -> Roadmap | None:
        for roadmap in await self.list_roadmaps():
            if roadmap.id == roadmap_id:
                return roadmap
        return None

    async def put_roadmap(self, roadmap: Roadmap) -> Roadmap:
        """Insert or replace a roadmap, assigning local ids where missing."""
        roadmap_id = roadmap.id or f"local-{uuid.uuid4()}"
        items = [
            item.model_copy(
                update={
                    "id": item.id or f"local-{uuid.uuid4()}",
                    "roadmap_id": roadmap_id,
                }
            )
            for item in roadmap.items
        ]
        stored = roadmap.model_copy(
            update={"id": roadmap_id, "items": items, "updated_at": roadmap.updated_at or _now()}
        )

        async with self._lock:
            document = await self.read_document()
            shadows: dict[str, dict] = document.get(SHADOW_KEY) or {}
            stored = self._apply_shadows(stored, shadows)
            for item in stored.items:
                shadows.pop(item.id, None)

            raw_roadmaps = [
                r
                for r in document.get(ROADMAPS_KEY) or []
                if not (isinstance(r, dict) and r.get("id") == roadmap_id)
            ]
            raw_roadmaps.insert(0, stored.model_dump(mode="json"))
            document[ROADMAPS_KEY] = raw_roadmaps
            document[SHADOW_KEY] = shadows
            await self.write_document(document)

        return stored

    async def set_item_completed(
        self, item_id: str, completed: bool, roadmap_id: str | None = None
    ) -> bool:
        """Set one item's completion flag.

        Returns:
            True if the item was found, False if a shadow copy was created
        """
        async with self._lock:
            document = await self.read_document()
            for raw in document.get(ROADMAPS_KEY) or []:
                for item in raw.get("items") or []:
                    if item.get("id") == item_id:
                        item["completed"] = completed
                        raw["updated_at"] = _now().isoformat()
                        await self.write_document(document)
                        return True

            shadows = document.get(SHADOW_KEY) or {}
            shadows[item_id] = {"roadmapId": roadmap_id, "completed": completed}
            document[SHADOW_KEY] = shadows
            await self.write_document(document)

        logger.info("Created local shadow copy", item_id=item_id, roadmap_id=roadmap_id)
        return False

    async def reset_roadmap(self, roadmap_id: str) -> bool:
        async with self._lock:
            document = await self.read_document()
            for raw in document.get(ROADMAPS_KEY) or []:
                if raw.get("id") == roadmap_id:
                    for item in raw.get("items") or []:
                        item["completed"] = False
                    raw["updated_at"] = _now().isoformat()
                    shadows = document.get(SHADOW_KEY) or {}
                    document[SHADOW_KEY] = {
                        k: v for k, v in shadows.items() if v.get("roadmapId") != roadmap_id
                    }
                    await self.write_document(document)
                    return True
        return False

    async def delete_roadmap(self, roadmap_id: str) -> bool:
        async with self._lock:
            document = await self.read_document()
            before = document.get(ROADMAPS_KEY) or []
            after = [r for r in before if r.get("id") != roadmap_id]
            shadows = document.get(SHADOW_KEY) or {}
            document[ROADMAPS_KEY] = after
            document[SHADOW_KEY] = {
                k: v for k, v in shadows.items() if v.get("roadmapId") != roadmap_id
            }
            await self.write_document(document)
        return len(after) != len(before)

    # ------------------------------------------------------------------
    # Preferences
    # ------------------------------------------------------------------

    async def get_preferences(self) -> UserPreferences:
        document = await self.read_document()
        try:
            return UserPreferences.model_validate(document.get(PREFERENCES_KEY) or {})
        except ValidationError:
            return UserPreferences()

    async def put_preferences(self, preferences: UserPreferences) -> None:
        async with self._lock:
            document = await self.read_document()
            document[PREFERENCES_KEY] = preferences.model_dump()
            await self.write_document(document)
