"""
Unread tracking — per-(user, project) "last seen" watermarks.

Two interchangeable backends share one contract:

  ClientReadState    watermarks are owned by the browser (local storage,
                     key ``vpm:lastSeen:{user}:{project}``) and sent with
                     each request; the server only compares. Known
                     limitation: stale across devices.
  DatabaseReadState  watermarks live in ``message_read_markers``.

A message is unread for a user iff someone else sent it (system messages
count) and it is strictly newer than the watermark. No watermark means
unread; an unparseable timestamp means not unread.

Usage:
    store = get_read_state(user.id, request_json)
    count = unread_count(store, user.id, messages)
"""

import abc
import logging

from flask import current_app

from vpm.models import db
from vpm.models.message import MessageReadMarker
from vpm.utils.helpers import isoformat, parse_datetime

logger = logging.getLogger(__name__)

STORAGE_NAMESPACE = "vpm:lastSeen"
BACKENDS = ("client", "server")


def storage_key(user_id, project_id) -> str:
    return f"{STORAGE_NAMESPACE}:{user_id}:{project_id}"


class ReadStateStore(abc.ABC):
    """Watermark store contract."""

    @abc.abstractmethod
    def get_last_seen(self, user_id, project_id):
        """Return the stored watermark (datetime or ISO string) or None."""

    @abc.abstractmethod
    def set_last_seen(self, user_id, project_id, ts) -> None:
        """Record *ts* as the watermark for (user, project)."""


class ClientReadState(ReadStateStore):
    """Watermarks supplied by the client with the request.

    Accepts a mapping keyed either by project id or by the full storage key.
    Values are kept as received so a corrupt entry stays unparseable.
    """

    def __init__(self, watermarks: dict | None = None):
        self.watermarks = {str(k): v for k, v in (watermarks or {}).items()}
        self.updated: dict[str, str] = {}

    def get_last_seen(self, user_id, project_id):
        value = self.watermarks.get(str(project_id))
        if value is None:
            value = self.watermarks.get(storage_key(user_id, project_id))
        return value

    def set_last_seen(self, user_id, project_id, ts) -> None:
        value = isoformat(parse_datetime(ts))
        self.watermarks[str(project_id)] = value
        self.updated[str(project_id)] = value


class DatabaseReadState(ReadStateStore):
    """Server-synchronised watermarks (``message_read_markers``). Flushes only."""

    def get_last_seen(self, user_id, project_id):
        marker = MessageReadMarker.query.filter_by(
            user_id=user_id, project_id=project_id,
        ).first()
        return marker.last_seen_at if marker else None

    def set_last_seen(self, user_id, project_id, ts) -> None:
        seen = parse_datetime(ts)
        if seen is None:
            return
        marker = MessageReadMarker.query.filter_by(
            user_id=user_id, project_id=project_id,
        ).first()
        if marker is None:
            marker = MessageReadMarker(user_id=user_id, project_id=project_id, last_seen_at=seen)
            db.session.add(marker)
        else:
            marker.last_seen_at = seen
        db.session.flush()


def get_read_state(payload: dict | None = None) -> ReadStateStore:
    """Build the configured backend. *payload* carries ``last_seen`` for the client backend."""
    backend = current_app.config.get("READ_STATE_BACKEND", "client")
    if backend == "server":
        return DatabaseReadState()
    if backend != "client":
        logger.warning("Unknown READ_STATE_BACKEND %r, using client watermarks", backend)
    watermarks = (payload or {}).get("last_seen") or {}
    if not isinstance(watermarks, dict):
        watermarks = {}
    return ClientReadState(watermarks)


# ── Comparison contract ──────────────────────────────────────────────────────

def is_unread(store: ReadStateStore, user_id, message) -> bool:
    if message.sender_id is not None and message.sender_id == user_id:
        return False
    last_seen = store.get_last_seen(user_id, message.project_id)
    if last_seen is None or last_seen == "":
        return True
    seen = parse_datetime(last_seen)
    created = parse_datetime(message.created_at)
    if seen is None or created is None:
        return False
    return created > seen


def unread_count(store: ReadStateStore, user_id, messages) -> int:
    return sum(1 for m in messages if is_unread(store, user_id, m))


def mark_read(store: ReadStateStore, user_id, project_id, messages):
    """Move the watermark to the newest loaded message. Returns it (None if no messages)."""
    stamps = [parse_datetime(m.created_at) for m in messages or []]
    stamps = [s for s in stamps if s is not None]
    if not stamps:
        return None
    newest = max(stamps)
    store.set_last_seen(user_id, project_id, newest)
    return newest
