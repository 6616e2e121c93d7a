import logging

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect, status
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies.auth import authenticate_token
from app.errors import AuthError
from app.services.notifier import ConnectionRegistry, get_notifier

logger = logging.getLogger(__name__)

router = APIRouter()


@router.websocket("/ws")
async def dashboard_events(
    websocket: WebSocket,
    db: Session = Depends(get_db),
    notifier: ConnectionRegistry = Depends(get_notifier),
):
    """
    Push PAYMENT_SUBMITTED / PAYMENT_APPROVED / PAYMENT_REJECTED events to
    admin dashboards. Authenticates with ?token=<admin jwt>; frames sent by
    the client are ignored.
    """
    try:
        authenticate_token(websocket.query_params.get("token"), db)
    except AuthError:
        logger.warning("Rejected dashboard websocket from %s", websocket.client.host if websocket.client else "unknown")
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    notifier.add(websocket)
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        notifier.remove(websocket)
