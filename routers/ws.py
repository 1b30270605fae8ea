"""WebSocket endpoint and ConnectionManager. Route: /ws (alerts, tone requests, notifications, log lines; accepts calibrate/reset commands)."""
import asyncio
import json
import logging
import time
from typing import Any, Dict, Optional, Set

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from app_state import AppState

logger = logging.getLogger(__name__)
router = APIRouter(tags=["ws"])


class ConnectionManager:
	def __init__(self) -> None:
		self._clients: Set[WebSocket] = set()
		self._lock = asyncio.Lock()

	@property
	def client_count(self) -> int:
		return len(self._clients)

	async def connect(self, websocket: WebSocket) -> None:
		await websocket.accept()
		async with self._lock:
			self._clients.add(websocket)
		logger.debug("[WS] client connected (%d total)", len(self._clients))

	async def disconnect(self, websocket: WebSocket) -> None:
		async with self._lock:
			self._clients.discard(websocket)

	async def broadcast_json(self, message: Dict[str, Any]) -> None:
		# With no listener an alert tone is simply not played.
		payload = json.dumps(message, separators=(",", ":"))
		async with self._lock:
			targets = list(self._clients)
		if targets:
			await asyncio.gather(*(self._send(ws, payload) for ws in targets), return_exceptions=True)

	async def _send(self, ws: WebSocket, payload: str) -> None:
		try:
			await ws.send_text(payload)
		except Exception as e:
			logger.debug("[WS] send failed, dropping client: %r", e)
			await self.disconnect(ws)


manager = ConnectionManager()


def handle_client_message(state: Optional[AppState], text: str) -> Optional[str]:
	"""
	Apply a command sent by a UI client. Returns the command name, or None
	when the message is not a known command.

	{"type": "calibrate"} queues a calibration for the next pose frame;
	{"type": "reset"} tears down the posture session.
	"""
	try:
		msg = json.loads(text)
	except ValueError:
		logger.debug("[WS] ignoring non-JSON message")
		return None
	if not isinstance(msg, dict) or state is None:
		return None
	kind = msg.get("type")
	if kind == "calibrate":
		state.pending_calibration.append(time.time())
		return kind
	if kind == "reset" and state.session is not None:
		state.session.reset()
		state.pending_calibration.clear()
		return kind
	return None


@router.websocket("/ws")
async def ws_endpoint(websocket: WebSocket):
	await manager.connect(websocket)
	state = getattr(websocket.app.state, "state", None)
	try:
		while True:
			kind = handle_client_message(state, await websocket.receive_text())
			if kind is not None:
				logger.info("[WS] client command: %s", kind)
	except WebSocketDisconnect:
		pass
	finally:
		await manager.disconnect(websocket)
