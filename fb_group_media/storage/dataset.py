"""SQLite-backed dataset of scraped records."""

import json
from pathlib import Path
from typing import Any, Mapping, Optional

import structlog
from sqlalchemy import func, select

from .database import session_scope
from .models import DatasetItem
from ..privacy import PrivacyMask, apply_privacy_mask

logger = structlog.get_logger()


class Dataset:
    """Append-only store for output records."""

    def __init__(self, session_factory=None, include_personal_data: bool = False):
        self._session_factory = session_factory
        self.include_personal_data = include_personal_data

    def _scope(self):
        return session_scope(self._session_factory)

    def push_data(self, entry: Mapping[str, Any], privacy_mask: Optional[PrivacyMask] = None) -> dict[str, Any]:
        """Store one record, redacting personal fields unless they are allowed.

        Returns the record as stored.
        """
        record = dict(entry)
        if privacy_mask and not self.include_personal_data:
            record = apply_privacy_mask(record, privacy_mask)

        with self._scope() as session:
            item = DatasetItem(entity_type=record.get("type"), url=record.get("url"))
            item.data = record
            session.add(item)

        logger.debug("Pushed record", type=record.get("type"), url=record.get("url"))
        return record

    def items(self) -> list[dict[str, Any]]:
        """All records in insertion order."""
        with self._scope() as session:
            rows = session.scalars(select(DatasetItem).order_by(DatasetItem.id)).all()
            return [row.data for row in rows]

    def count(self) -> int:
        with self._scope() as session:
            return session.scalar(select(func.count()).select_from(DatasetItem))

    def export_json(self, path: Path) -> int:
        """Write all records to `path` as a JSON array. Returns the record count."""
        items = self.items()
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(items, f, ensure_ascii=False, indent=2)
        logger.info("Exported dataset", path=str(path), count=len(items))
        return len(items)
