import asyncio
import logging
import os
from contextlib import asynccontextmanager
from typing import Any, Dict

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app_state import AppState
from modules import __version__
from modules.config import get_config, set_config_path
from modules.posture.session import PostureSession
from modules.posture.storage import JsonStateStore, load_ui_settings
from routers import posture, ws
from routers.ws import manager

logger = logging.getLogger(__name__)

# Optional override, e.g. POSTURE_CONFIG=/etc/posture/config.json
if os.getenv("POSTURE_CONFIG"):
	set_config_path(os.environ["POSTURE_CONFIG"])


def _broadcast(message: Dict[str, Any]) -> None:
	"""
	Send a JSON message to all connected WebSocket clients.
	Fire-and-forget; safe to call from non-async code.
	"""
	try:
		asyncio.get_running_loop().create_task(manager.broadcast_json(message))
	except RuntimeError:
		# No running loop yet; ignore
		pass


def _log_to_clients(message: str) -> None:
	_broadcast({"type": "log", "msg": message})


def build_state() -> AppState:
	cfg = get_config()
	state = AppState()
	state.cfg = cfg
	state.store = JsonStateStore(cfg.storage.state_path)
	state.session = PostureSession(cfg=cfg, settings=load_ui_settings(state.store), store=state.store)
	state.manager = manager
	state.broadcast = _broadcast
	state.log_to_clients = _log_to_clients
	return state


@asynccontextmanager
async def lifespan(app: FastAPI):
	state = build_state()
	app.state.state = state
	logger.info(
		"[Server] posture monitor %s ready (view=%s, state file=%s)",
		__version__,
		state.session.view_mode.value,
		state.store.path,
	)
	try:
		yield
	finally:
		if state.session is not None:
			state.session.reset()
		if state.pose_provider is not None:
			state.pose_provider.close()
			state.pose_provider = None


app = FastAPI(lifespan=lifespan)
app.add_middleware(
	CORSMiddleware,
	allow_origins=["*"],
	allow_credentials=True,
	allow_methods=["*"],
	allow_headers=["*"],
)
app.include_router(posture.router)
app.include_router(ws.router)


@app.get("/health")
async def health():
	return {"ok": True, "version": __version__}


if __name__ == "__main__":
	import uvicorn

	logging.basicConfig(level=logging.INFO, format="%(levelname)s:%(name)s:%(message)s")
	uvicorn.run(app, host=os.getenv("HOST", "127.0.0.1"), port=int(os.getenv("PORT", "8000")))
