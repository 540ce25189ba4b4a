from __future__ import annotations

import asyncio
import json
import logging
import uuid
from dataclasses import asdict
from typing import Any, Awaitable, Callable

from surveyhub.cache import Cache, analytics_key
from surveyhub.database.repo import analytics_repo
from surveyhub.database.session import Database
from surveyhub.realtime.tasks import BackgroundTasks
from surveyhub.utils.dt import utcnow

log = logging.getLogger(__name__)

# client -> server
EVT_SUBSCRIBE = "subscribe:survey"
EVT_UNSUBSCRIBE = "unsubscribe:survey"
# server -> client
EVT_DATA = "survey:data"
EVT_UPDATE = "survey:update"
EVT_ERROR = "error"

SendFn = Callable[[dict[str, Any]], Awaitable[None]]


class Connection:
    """One live push connection. Rooms are survey ids."""

    def __init__(self, send: SendFn, conn_id: str | None = None) -> None:
        self.id = conn_id or uuid.uuid4().hex[:12]
        self._send = send
        self.rooms: set[int] = set()

    async def emit(self, event: str, data: Any) -> None:
        await self._send({"event": event, "data": data})

    def __repr__(self) -> str:
        return f"Connection(id={self.id!r}, rooms={sorted(self.rooms)})"


def _parse_survey_id(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    if isinstance(value, dict):
        return _parse_survey_id(value.get("survey_id"))
    return None


class BroadcastHub:
    """
    In-memory room membership (survey id -> connections) for a single process.
    Nothing is persisted; clients resubscribe after reconnecting.
    """

    def __init__(self, db: Database, cache: Cache, tasks: BackgroundTasks) -> None:
        self.db = db
        self.cache = cache
        self.tasks = tasks
        self.rooms: dict[int, set[Connection]] = {}

    # ---------- membership ----------

    async def subscribe(self, conn: Connection, survey_id: int) -> None:
        self.rooms.setdefault(survey_id, set()).add(conn)
        conn.rooms.add(survey_id)
        log.info("Client %s subscribed to survey %s", conn.id, survey_id)

        # initial snapshot, best effort
        snapshot = await self.cache.get_json(analytics_key(survey_id))
        if snapshot is None:
            return
        try:
            await conn.emit(EVT_DATA, snapshot)
        except Exception:
            log.warning("Failed to send initial data to %s", conn.id, exc_info=True)

    def unsubscribe(self, conn: Connection, survey_id: int) -> None:
        members = self.rooms.get(survey_id)
        if members is not None:
            members.discard(conn)
            if not members:
                del self.rooms[survey_id]
        if survey_id in conn.rooms:
            conn.rooms.discard(survey_id)
            log.info("Client %s unsubscribed from survey %s", conn.id, survey_id)

    def disconnect(self, conn: Connection) -> None:
        for survey_id in list(conn.rooms):
            self.unsubscribe(conn, survey_id)
        log.info("Client disconnected: %s", conn.id)

    def room_size(self, survey_id: int) -> int:
        return len(self.rooms.get(survey_id, ()))

    # ---------- inbound frames ----------

    async def handle_frame(self, conn: Connection, raw: str) -> None:
        try:
            msg = json.loads(raw)
        except ValueError:
            await conn.emit(EVT_ERROR, {"error": "invalid message"})
            return
        if not isinstance(msg, dict):
            await conn.emit(EVT_ERROR, {"error": "invalid message"})
            return

        event = msg.get("event")
        if event not in (EVT_SUBSCRIBE, EVT_UNSUBSCRIBE):
            await conn.emit(EVT_ERROR, {"error": f"unknown event: {event}"})
            return

        survey_id = _parse_survey_id(msg.get("data"))
        if survey_id is None:
            await conn.emit(EVT_ERROR, {"error": "invalid survey id"})
            return

        if event == EVT_SUBSCRIBE:
            await self.subscribe(conn, survey_id)
        else:
            self.unsubscribe(conn, survey_id)

    # ---------- outbound ----------

    async def emit_to_room(self, survey_id: int, event: str, data: Any) -> int:
        """Sends to every member; one failing socket does not stop the others."""
        members = list(self.rooms.get(survey_id, ()))
        if not members:
            return 0

        results = await asyncio.gather(*(c.emit(event, data) for c in members), return_exceptions=True)
        delivered = 0
        for conn, res in zip(members, results):
            if isinstance(res, BaseException):
                log.warning("Push to %s failed: %r", conn.id, res)
            else:
                delivered += 1
        return delivered

    async def broadcast_vote(self, survey_id: int, question_id: int) -> int:
        """
        Recompute the voted question and the survey total, drop the analytics
        snapshot, push survey:update to the whole room. Never raises.
        """
        try:
            async with self.db.session() as session:
                aggregate = await analytics_repo.question_aggregate(session, question_id)
                total = await analytics_repo.total_votes(session, survey_id)

            await self.cache.delete(analytics_key(survey_id))

            payload = {
                "question_id": question_id,
                "aggregate": [asdict(r) for r in aggregate],
                "total_votes": total,
                "timestamp": utcnow(),
            }
            return await self.emit_to_room(survey_id, EVT_UPDATE, payload)
        except Exception:
            log.exception("Error broadcasting vote update survey=%s question=%s", survey_id, question_id)
            return 0

    def notify_vote(self, survey_id: int, question_id: int) -> None:
        self.tasks.spawn(
            self.broadcast_vote(survey_id, question_id),
            name=f"broadcast:survey:{survey_id}:q{question_id}",
        )
