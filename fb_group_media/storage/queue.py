"""SQLite-backed request queue.

Adding a URL that is already queued (in any state) is a no-op, so handlers
can enqueue the same link many times.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Mapping, Optional, Union

import structlog
from sqlalchemy import func, select

from .database import session_scope
from .dedup import generate_request_key
from .models import Request

logger = structlog.get_logger()

RequestInput = Union[str, Mapping[str, str]]


@dataclass
class QueuedRequest:
    """Detached snapshot of a request handed to the crawler."""
    id: str
    url: str
    retry_count: int = 0


class RequestQueue:
    """Pending pages to visit, deduplicated by normalized URL."""

    def __init__(self, session_factory=None):
        self._session_factory = session_factory

    def _scope(self):
        return session_scope(self._session_factory)

    def add_requests(self, requests: Iterable[RequestInput]) -> int:
        """Queue `{url}` dicts (or plain URLs). Returns how many were new."""
        added = 0
        with self._scope() as session:
            batch_keys = set()
            for request in requests:
                url = request if isinstance(request, str) else request["url"]
                key = generate_request_key(url)
                if key in batch_keys or session.get(Request, key) is not None:
                    continue
                batch_keys.add(key)
                session.add(Request(id=key, url=url))
                added += 1
        logger.debug("Added requests", added=added)
        return added

    def fetch_next(self) -> Optional[QueuedRequest]:
        """Take the oldest pending request and mark it in progress."""
        with self._scope() as session:
            request = session.scalars(
                select(Request)
                .where(Request.status == "pending")
                .order_by(Request.created_at, Request.url)
                .limit(1)
            ).first()
            if request is None:
                return None
            request.status = "in_progress"
            return QueuedRequest(id=request.id, url=request.url, retry_count=request.retry_count)

    def mark_handled(self, request_id: str) -> None:
        with self._scope() as session:
            request = session.get(Request, request_id)
            if request:
                request.status = "handled"
                request.handled_at = datetime.utcnow()

    def reclaim(self, request_id: str, error: Optional[str] = None) -> None:
        """Put a failed request back in the queue for another attempt."""
        with self._scope() as session:
            request = session.get(Request, request_id)
            if request:
                request.status = "pending"
                request.retry_count += 1
                request.error_message = error

    def mark_failed(self, request_id: str, error: Optional[str] = None) -> None:
        """Give up on a request after its retries ran out."""
        with self._scope() as session:
            request = session.get(Request, request_id)
            if request:
                request.status = "failed"
                request.error_message = error
                request.handled_at = datetime.utcnow()

    def reset_in_progress(self) -> int:
        """Return requests left in progress by a crashed run to the queue."""
        with self._scope() as session:
            stale = session.scalars(select(Request).where(Request.status == "in_progress")).all()
            for request in stale:
                request.status = "pending"
            return len(stale)

    def counts(self) -> dict[str, int]:
        """Number of requests per status."""
        with self._scope() as session:
            rows = session.execute(
                select(Request.status, func.count()).group_by(Request.status)
            ).all()
        counts = {"pending": 0, "in_progress": 0, "handled": 0, "failed": 0}
        counts.update({status: count for status, count in rows})
        return counts

    def is_finished(self) -> bool:
        counts = self.counts()
        return counts["pending"] == 0 and counts["in_progress"] == 0

    def purge(self) -> None:
        """Forget all requests, so a new crawl revisits every page."""
        with self._scope() as session:
            session.query(Request).delete()
