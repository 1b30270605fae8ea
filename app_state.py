"""
Explicit app state: single source of truth for runtime lifecycle.
Created in lifespan, attached to app.state.state; injected into routes via Depends(get_state).
"""
import asyncio
from collections import deque
from typing import Any, Callable, Deque, Optional

from modules.config import AppConfig
from modules.pose.base import PoseProvider
from modules.posture.session import PostureSession
from modules.posture.storage import JsonStateStore


class AppState:
	"""
	Holds all runtime state for the app.
	Populated in server lifespan; routes receive this instance via Depends(get_state).
	"""
	# WebSocket manager (set at app load)
	manager: Any = None

	# Config and persistence
	cfg: Optional[AppConfig] = None
	store: Optional[JsonStateStore] = None

	# Posture pipeline (set in lifespan)
	session: Optional[PostureSession] = None

	# Commands queued by the UI and consumed by the next processed frame.
	pending_calibration: Deque[float]

	# Serializes inference + frame processing: one frame runs to completion before the next.
	frame_lock: asyncio.Lock

	# Optional landmark source for /posture/image (created lazily)
	pose_provider: Optional[PoseProvider] = None
	pose_provider_error: Optional[str] = None

	# Helpers (callables set in server after creation)
	log_to_clients: Optional[Callable[[str], None]] = None
	broadcast: Optional[Callable[[dict], None]] = None

	def __init__(self) -> None:
		self.pending_calibration = deque(maxlen=1)
		self.frame_lock = asyncio.Lock()

	def take_calibration(self) -> bool:
		if self.pending_calibration:
			self.pending_calibration.clear()
			return True
		return False
