# hrms_notify/api/websocket.py
import logging

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect, status

from hrms_notify.core.exceptions import Unauthenticated

router = APIRouter(tags=["websocket"])
logger = logging.getLogger(__name__)


@router.websocket("/ws/notifications")
async def websocket_notifications(websocket: WebSocket, token: str = Query("")):
    """
    Live notifications. The frontend connects with:
      ws://<host>/ws/notifications?token=<JWT>
    and is placed in the room of its own account.
    """
    services = websocket.app.state.services

    # 1. validate the token and resolve the account
    try:
        account = await services.auth_gate.resolve_token(token)
    except Unauthenticated as e:
        logger.info("rejected websocket: %s", e.message)
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    # 2. join the account's room
    conn = await services.bus.connect(account.id, websocket)

    try:
        # 3. keep the connection open; client messages are ignored
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        services.bus.disconnect(conn)
