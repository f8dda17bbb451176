"""SQLAlchemy models for the request queue and the dataset."""

from datetime import datetime
from typing import Any, Optional
import json

from sqlalchemy import DateTime, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


class Request(Base):
    """A page to visit. Requests are unique by normalized URL."""

    __tablename__ = "requests"

    # Primary key - hash of the normalized URL for deduplication
    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    url: Mapped[str] = mapped_column(String(2048))

    # 'pending', 'in_progress', 'handled', 'failed'
    status: Mapped[str] = mapped_column(String(20), default="pending", index=True)
    retry_count: Mapped[int] = mapped_column(Integer, default=0)
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    handled_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    def __repr__(self) -> str:
        return f"<Request {self.status} {self.url}>"


class DatasetItem(Base):
    """One scraped record (photo, video or album)."""

    __tablename__ = "dataset_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    entity_type: Mapped[Optional[str]] = mapped_column(String(20), nullable=True, index=True)
    url: Mapped[Optional[str]] = mapped_column(String(2048), nullable=True)

    # Record stored as JSON
    _data: Mapped[str] = mapped_column("data", Text)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    @property
    def data(self) -> dict[str, Any]:
        """Get the record as a dict."""
        return json.loads(self._data)

    @data.setter
    def data(self, value: dict[str, Any]):
        """Set the record from a dict."""
        self._data = json.dumps(value, ensure_ascii=False)

    def __repr__(self) -> str:
        return f"<DatasetItem {self.id} {self.entity_type}>"
