from __future__ import annotations

import logging

from aiohttp import WSMsgType, web

from surveyhub.realtime import Connection
from surveyhub.utils import jsonutil
from surveyhub.web.keys import HUB

log = logging.getLogger(__name__)

routes = web.RouteTableDef()


@routes.get("/ws")
async def websocket(request: web.Request) -> web.WebSocketResponse:
    """
    Push channel. Frames are JSON {"event": ..., "data": ...}.
    Clients send subscribe:survey / unsubscribe:survey with a survey id.
    """
    hub = request.app[HUB]
    ws = web.WebSocketResponse(heartbeat=30)
    await ws.prepare(request)

    async def send(message: dict) -> None:
        await ws.send_json(message, dumps=jsonutil.dumps)

    conn = Connection(send)
    log.info("Client connected: %s", conn.id)

    try:
        async for msg in ws:
            if msg.type == WSMsgType.TEXT:
                await hub.handle_frame(conn, msg.data)
            elif msg.type == WSMsgType.ERROR:
                log.warning("WebSocket %s closed with exception %r", conn.id, ws.exception())
    finally:
        hub.disconnect(conn)

    return ws
