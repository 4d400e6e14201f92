from fastapi import APIRouter, WebSocket

router = APIRouter()


async def _wait_for_disconnect(websocket: WebSocket) -> None:
    # client messages are ignored; we only care about the close
    while True:
        message = await websocket.receive()
        if message["type"] == "websocket.disconnect":
            return


@router.websocket("/ws/live")
async def live_updates(websocket: WebSocket):
    await websocket.accept()
    channel = websocket.app.state.monitor.channel
    await channel.serve(websocket.send_json, until=lambda: _wait_for_disconnect(websocket))
