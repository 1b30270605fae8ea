"""Posture pipeline routes. Routes: /posture/frame, /posture/image, /posture/calibrate, /posture/settings, /posture/pointer, /posture/offsets, /posture/snapshots*, /posture/reset, /posture/status."""
import asyncio
import base64
import binascii
import io
import logging
import time
from dataclasses import replace
from typing import Any, Dict, Optional, Tuple

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import Response

from app_state import AppState
from deps import get_session, get_state
from modules.pose.types import LANDMARK_COUNT, PoseFrame
from modules.posture.offsets import PointerPosition
from modules.posture.overlay import compose_snapshot
from modules.posture.session import FrameOutput, PostureSession
from modules.posture.storage import normalize_sound_config, ui_settings_to_blob, ViewMode
from schemas.requests import FramePayload, ImagePayload, PointerPayload, SettingsPayload
from schemas.responses import PointerResponse, SnapshotListResponse

logger = logging.getLogger(__name__)
router = APIRouter(tags=["posture"])


def _decode_image(image_b64: Optional[str]) -> Optional[bytes]:
	if not image_b64:
		return None
	data = image_b64.split(",", 1)[1] if image_b64.startswith("data:") else image_b64
	try:
		return base64.b64decode(data, validate=True)
	except (binascii.Error, ValueError) as e:
		raise HTTPException(status_code=400, detail=f"Invalid base64 image: {e}")


def _broadcast(state: AppState, message: Dict[str, Any]) -> None:
	if state.broadcast is not None:
		state.broadcast(message)


def _log(state: AppState, message: str) -> None:
	logger.info(message)
	if state.log_to_clients is not None:
		state.log_to_clients(message)


def _snapshot_jpeg(out: FrameOutput, image: Optional[bytes], quality: int) -> bytes:
	try:
		return compose_snapshot(out, image, quality=quality)
	except Exception as e:
		logger.warning("[Posture] snapshot with camera image failed (%r); using overlay only", e)
		return compose_snapshot(out, None, quality=quality)


async def _handle_output(
	state: AppState,
	session: PostureSession,
	out: FrameOutput,
	image: Optional[bytes],
	calibrated: bool = False,
) -> Dict[str, Any]:
	"""Run the alert side effects (snapshot, tone broadcast, notification) and serialize the frame."""
	body = out.to_dict()
	if out.alert is not None:
		quality = state.cfg.snapshots.jpeg_quality if state.cfg else 85
		jpeg = await asyncio.to_thread(_snapshot_jpeg, out, image, quality)
		snap = session.record_snapshot(jpeg, out.alert.fired_at)
		body["alert"]["snapshot_id"] = snap.id
		_broadcast(state, {"type": "alert", "alert": body["alert"]})
	if out.notification:
		_broadcast(state, {"type": "notification", "msg": out.notification})
	if calibrated:
		_log(state, f"[Posture] baseline captured ({out.view_mode.value} view, {out.side.value} side)")
	return body


def _process(
	state: AppState,
	session: PostureSession,
	frame: Optional[PoseFrame],
	t: float,
	calibrate_requested: bool,
) -> Tuple[FrameOutput, bool]:
	"""Feed one frame to the session, consuming a queued calibration. Caller holds `state.frame_lock`."""
	calibrate = bool(calibrate_requested) or state.take_calibration()
	out = session.process_frame(frame, now=t, calibrate=calibrate and frame is not None)
	if calibrate and frame is None:
		# Nothing to capture; keep the request for the next frame with a pose.
		state.pending_calibration.append(t)
	return out, calibrate and frame is not None


def _offsets_body(session: PostureSession) -> Dict[str, Dict[str, float]]:
	return {j.value: {"x": o.dx, "y": o.dy} for j, o in session.offsets.offsets.items()}


@router.post("/posture/frame")
async def posture_frame(
	payload: FramePayload,
	state: AppState = Depends(get_state),
	session: PostureSession = Depends(get_session),
):
	"""Process one detector result. Omit landmarks when no pose was detected."""
	image = _decode_image(payload.image_b64)
	frame: Optional[PoseFrame] = None
	if payload.landmarks:
		if len(payload.landmarks) != LANDMARK_COUNT:
			raise HTTPException(status_code=400, detail=f"Expected {LANDMARK_COUNT} landmarks, got {len(payload.landmarks)}")
		frame = PoseFrame.from_landmarks(
			[lm.model_dump() for lm in payload.landmarks],
			width=payload.width,
			height=payload.height,
			t_host=payload.t,
		)
	t = payload.t if payload.t is not None else time.time()
	async with state.frame_lock:
		out, calibrated = _process(state, session, frame, t, payload.calibrate)
		return await _handle_output(state, session, out, image, calibrated=calibrated)


def _get_provider(state: AppState):
	if state.pose_provider is not None:
		return state.pose_provider
	if state.pose_provider_error is not None:
		raise HTTPException(status_code=503, detail=state.pose_provider_error)
	from modules.pose.mediapipe_provider import MediaPipePoseProvider

	det = state.cfg.detection
	try:
		state.pose_provider = MediaPipePoseProvider(
			model_complexity=det.model_complexity,
			min_detection_confidence=det.min_detection_confidence,
			min_tracking_confidence=det.min_tracking_confidence,
		)
	except RuntimeError as e:
		state.pose_provider_error = str(e)
		raise HTTPException(status_code=503, detail=str(e))
	return state.pose_provider


@router.post("/posture/image")
async def posture_image(
	payload: ImagePayload,
	state: AppState = Depends(get_state),
	session: PostureSession = Depends(get_session),
):
	"""Run server-side pose detection on a camera frame, then process it like /posture/frame."""
	image = _decode_image(payload.image_b64)
	provider = _get_provider(state)
	try:
		import numpy as np
		from PIL import Image

		rgb = np.asarray(Image.open(io.BytesIO(image)).convert("RGB"))
	except Exception as e:
		raise HTTPException(status_code=400, detail=f"Could not decode image: {e!r}")
	t = payload.t if payload.t is not None else time.time()
	async with state.frame_lock:
		# The MediaPipe graph is not thread-safe and expects increasing timestamps.
		frame = await asyncio.to_thread(provider.infer_rgb, rgb, t)
		out, calibrated = _process(state, session, frame, t, payload.calibrate)
		return await _handle_output(state, session, out, image, calibrated=calibrated)


@router.post("/posture/calibrate")
async def posture_calibrate(state: AppState = Depends(get_state), session: PostureSession = Depends(get_session)):
	"""Queue a calibration; the next frame with a pose becomes the baseline."""
	state.pending_calibration.append(time.time())
	return {"detail": "Calibration queued for the next frame."}


@router.get("/posture/settings")
async def get_settings(session: PostureSession = Depends(get_session)):
	return ui_settings_to_blob(session.settings)


@router.put("/posture/settings")
async def put_settings(payload: SettingsPayload, session: PostureSession = Depends(get_session)):
	"""Update view mode and/or sound config. Changing the view mode resets the session."""
	settings = session.settings
	if payload.viewMode is not None:
		settings = replace(settings, view_mode=ViewMode(payload.viewMode))
	if payload.soundConfig is not None:
		settings = replace(settings, sound=normalize_sound_config(payload.soundConfig.model_dump()))
	session.update_settings(settings)
	return ui_settings_to_blob(session.settings)


@router.post("/posture/pointer", response_model=PointerResponse)
async def posture_pointer(payload: PointerPayload, session: PostureSession = Depends(get_session)):
	"""Drag a joint marker to correct its position. down/move need the display rect."""
	if payload.kind in ("up", "cancel"):
		session.pointer_up()
	else:
		if payload.rect is None:
			raise HTTPException(status_code=400, detail="Missing 'rect' for pointer down/move")
		pointer = PointerPosition.from_client(
			payload.client_x,
			payload.client_y,
			payload.rect.left,
			payload.rect.top,
			payload.rect.width,
			payload.rect.height,
		)
		if payload.kind == "down":
			session.pointer_down(pointer)
		else:
			session.pointer_move(pointer)
	active = session.offsets.active
	return {"dragging": active.value if active else None, "offsets": _offsets_body(session)}


@router.get("/posture/offsets")
async def get_offsets(session: PostureSession = Depends(get_session)):
	return {"offsets": _offsets_body(session)}


@router.delete("/posture/offsets")
async def reset_offsets(state: AppState = Depends(get_state), session: PostureSession = Depends(get_session)):
	session.offsets.reset()
	_log(state, "[Posture] point offsets reset")
	return {"offsets": _offsets_body(session)}


@router.get("/posture/snapshots", response_model=SnapshotListResponse)
async def list_snapshots(session: PostureSession = Depends(get_session)):
	"""Recent alert snapshots, most recent first."""
	items = session.snapshots.items()
	return {
		"snapshots": [
			{"id": s.id, "created_at": s.created_at, "url": f"/posture/snapshots/{s.id}.jpg"} for s in items
		]
	}


@router.get("/posture/snapshots/{snapshot_id}.jpg")
async def get_snapshot(snapshot_id: int, session: PostureSession = Depends(get_session)):
	snap = session.snapshots.get(snapshot_id)
	if snap is None:
		raise HTTPException(status_code=404, detail=f"Snapshot {snapshot_id} not found")
	return Response(content=snap.image, media_type=snap.content_type)


@router.delete("/posture/snapshots")
async def clear_snapshots(session: PostureSession = Depends(get_session)):
	session.snapshots.clear()
	return {"detail": "Snapshots cleared."}


@router.post("/posture/reset")
async def posture_reset(state: AppState = Depends(get_state), session: PostureSession = Depends(get_session)):
	"""Tear down the session (filters, baseline, alert timers). Offsets and settings are kept."""
	session.reset()
	state.pending_calibration.clear()
	_log(state, "[Posture] session reset")
	return {"detail": "Session reset."}


@router.get("/posture/status")
async def posture_status(state: AppState = Depends(get_state), session: PostureSession = Depends(get_session)):
	return {
		"calibrated": session.calibration.calibrated,
		"side": session.calibration.side.value,
		"tracking": session.tracking,
		"view_mode": session.view_mode.value,
		"sound": ui_settings_to_blob(session.settings)["soundConfig"],
		"calibration_pending": bool(state.pending_calibration),
		"snapshots": len(session.snapshots),
	}
