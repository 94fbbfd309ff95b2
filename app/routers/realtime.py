# File: app/routers/realtime.py
"""
Live feed over a WebSocket.

On connect the client receives a `snapshot` (session state plus page 0 of the
feed). Committed changes to the issues table then arrive as `update` (row
merged into the client's list), `refresh` (page 0 refetched after an insert
or delete) and `alert` (status change on one of the signed-in user's issues).

Client messages:
    {"type": "load_more"}
    {"type": "refresh"}
    {"type": "mode", "mode": "list" | "map"}
    {"type": "auth", "access_token": "..." | null}


Each unit of work runs in the threadpool on its own short-lived session, so an
open stream holds no database connection between messages.
"""

import asyncio
import logging
from typing import Callable, Optional

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from fastapi.encoders import jsonable_encoder
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from app.db.session import SessionLocal
from app.services.feed import FeedView, MAP, StatusWatcher
from app.services.realtime import UPDATE, broker
from app.services.session_gate import SessionGate, SIGNED_IN

router = APIRouter(tags=["realtime"])
logger = logging.getLogger(__name__)


def _with_session(work: Callable, *args):
    db = SessionLocal()
    try:
        return work(db, *args)
    finally:
        db.close()


def _snapshot_messages(db: Session, view: FeedView, gate: SessionGate, token: Optional[str]) -> list:
    session_state = gate.start(db, token)
    view.start(db)
    return [{"type": "snapshot", "session": session_state, **view.render()}]


def _change_messages(db: Session, view: FeedView, change: dict) -> list:
    update = view.apply_change(db, change)
    if update.kind == UPDATE:
        issue = next((i for i in view.items if i["id"] == update.issue_id), None)
        messages = [{"type": "update", "issue_id": update.issue_id, "issue": issue, "new": change.get("new")}]
        if update.alert:
            messages.append({"type": "alert", **update.alert.as_dict()})
        return messages
    if update.kind == "ignored":
        return []
    return [{"type": "refresh", "event": update.kind, **view.render()}]


def _client_messages(db: Session, view: FeedView, gate: SessionGate, msg: dict) -> list:
    kind = msg.get("type")
    if kind == "load_more":
        new_items = view.load_more(db)
        page = {"type": "page", "page": view.page, "total": view.total, "has_more": view.has_more}
        if view.mode == MAP:
            page["markers"] = [m for m in view.markers() if m["id"] in {i["id"] for i in new_items}]
        else:
            page["items"] = new_items
        return [page]
    if kind == "refresh":
        view.refresh(db)
        return [{"type": "refresh", "event": "manual", **view.render()}]
    if kind == "mode":
        try:
            view.set_mode(msg.get("mode"))
        except ValueError as e:
            return [{"type": "error", "detail": str(e)}]
        return [{"type": "refresh", "event": "mode", **view.render()}]
    if kind == "auth":
        state = gate.change(db, SIGNED_IN, msg.get("access_token"))
        view.watcher.seed(db)
        return [{"type": "session", **state}]
    return [{"type": "error", "detail": f"Unknown message type: {kind}"}]


@router.websocket("/issues/stream")
async def issue_stream(websocket: WebSocket, token: Optional[str] = None):
    await websocket.accept()

    gate = SessionGate()
    view = FeedView()
    # one unit of work at a time mutates the view
    work_lock = asyncio.Lock()

    def _follow_session(event: str, state: dict):
        # status alerts follow whoever is signed in; seeded by the caller
        view.watcher = StatusWatcher(state.get("user_id"))

    stop_following = gate.subscribe(_follow_session)

    async def run(work: Callable, *args) -> None:
        async with work_lock:
            messages = await run_in_threadpool(_with_session, work, *args)
        for message in messages:
            await websocket.send_json(jsonable_encoder(message))

    loop = asyncio.get_running_loop()
    queue: asyncio.Queue = asyncio.Queue()
    unsubscribe = broker.subscribe(lambda change: loop.call_soon_threadsafe(queue.put_nowait, change))

    async def pump_changes():
        while True:
            change = await queue.get()
            await run(_change_messages, view, change)

    async def read_client():
        while True:
            try:
                msg = await websocket.receive_json()
            except ValueError:
                await websocket.send_json({"type": "error", "detail": "Messages must be JSON objects"})
                continue
            if not isinstance(msg, dict):
                await websocket.send_json({"type": "error", "detail": "Messages must be JSON objects"})
                continue
            await run(_client_messages, view, gate, msg)

    tasks = []
    try:
        await run(_snapshot_messages, view, gate, token)
        tasks = [asyncio.create_task(pump_changes()), asyncio.create_task(read_client())]
        done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        for task in done:
            exc = task.exception()
            if exc and not isinstance(exc, WebSocketDisconnect):
                logger.error(f"Issue stream closed on error: {exc}", exc_info=exc)
    finally:
        for task in tasks:
            task.cancel()
        unsubscribe()
        stop_following()
