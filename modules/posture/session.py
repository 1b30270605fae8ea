from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, Optional

from modules.config import AppConfig, get_config
from modules.pose.types import Joint, Landmark, Point, PoseFrame, TrackedSide
from modules.posture import feedback as fb
from modules.posture.alerts import AlertEvent, AlertStateMachine
from modules.posture.angles import AngleTracker, joint_angle_deg, vertical_deviation_deg
from modules.posture.calibration import BaselineCalibration
from modules.posture.offsets import OffsetCalibrator, PointerPosition
from modules.posture.snapshots import Snapshot, SnapshotBuffer
from modules.posture.stabilizer import LandmarkStabilizer
from modules.posture.storage import JsonStateStore, SoundConfig, UiSettings, ViewMode, save_ui_settings

logger = logging.getLogger(__name__)

STABILIZED_JOINTS = (Joint.SHOULDER, Joint.ELBOW, Joint.WRIST)


class PostureStatus(str, Enum):
	OK = "ok"
	NO_POSE = "no_pose"
	# No pose acquired since the session started, for longer than the acquire timeout.
	STALLED = "stalled"


class PostureLabel(str, Enum):
	GOOD = "good"
	NEEDS_IMPROVEMENT = "needs_improvement"
	NOT_CALIBRATED = "not_calibrated"
	UNDETECTED = "undetected"


@dataclass(frozen=True)
class Confidence:
	side: TrackedSide
	ear: Optional[float] = None
	shoulder: Optional[float] = None


@dataclass(frozen=True)
class FrameOutput:
	"""Everything the renderer/UI needs for one processed frame."""

	t: float
	status: PostureStatus
	label: PostureLabel
	view_mode: ViewMode
	side: TrackedSide
	width: int = 0
	height: int = 0
	points: Dict[Joint, Point] = field(default_factory=dict)
	deviation_raw: Optional[float] = None
	deviation: Optional[float] = None
	displayed_angle: Optional[int] = None
	angle_text: str = ""
	elbow_angle: Optional[int] = None
	feedback: str = ""
	bad_posture: bool = False
	confidence: Optional[Confidence] = None
	calibrated: bool = False
	can_calibrate: bool = False
	front: Optional[fb.FrontChecks] = None
	alert: Optional[AlertEvent] = None
	notification: Optional[str] = None

	def to_dict(self) -> Dict[str, Any]:
		conf = self.confidence or Confidence(side=self.side)
		return {
			"t": self.t,
			"status": self.status.value,
			"label": self.label.value,
			"view_mode": self.view_mode.value,
			"side": self.side.value,
			"width": self.width,
			"height": self.height,
			"points": {j.value: {"x": p.x, "y": p.y} for j, p in self.points.items()},
			"deviation_raw": self.deviation_raw,
			"deviation": self.deviation,
			"displayed_angle": self.displayed_angle,
			"angle_text": self.angle_text,
			"elbow_angle": self.elbow_angle,
			"feedback": self.feedback,
			"bad_posture": self.bad_posture,
			"confidence": {"side": conf.side.value, "ear": conf.ear, "shoulder": conf.shoulder},
			"calibrated": self.calibrated,
			"can_calibrate": self.can_calibrate,
			"front": (
				{
					"shoulders_level": self.front.shoulders_level,
					"back_straight": self.front.back_straight,
					"head_up": self.front.head_up,
				}
				if self.front
				else None
			),
			"alert": self.alert.to_dict() if self.alert else None,
			"notification": self.notification,
		}


class PostureSession:
	"""
	Per-frame posture pipeline over explicit, single-owner session state.

	stabilize -> offset -> angle -> alert runs to completion inside
	`process_frame`; calibration arrives as an argument of that call rather
	than as shared state. `reset()` discards every transient value so nothing
	smoothed leaks into the next session's first frame.
	"""

	def __init__(
		self,
		cfg: Optional[AppConfig] = None,
		settings: Optional[UiSettings] = None,
		store: Optional[JsonStateStore] = None,
	) -> None:
		self.cfg = cfg or get_config()
		self.store = store
		self.settings = settings or UiSettings()
		self.stabilizer = LandmarkStabilizer(self.cfg.stabilizer)
		self.offsets = OffsetCalibrator(self.cfg.offsets, store)
		self.calibration = BaselineCalibration()
		self.deviation = AngleTracker(self.cfg.angles)
		self.elbow = AngleTracker(self.cfg.angles)
		self.alerts = AlertStateMachine(self.cfg.alerts)
		self.snapshots = SnapshotBuffer(self.cfg.snapshots.max_items)
		self.bad_posture_frames = 0
		self.started_at: Optional[float] = None
		self.pose_acquired = False
		self._tracking = False
		self._stabilized_side: Optional[TrackedSide] = None

	# ---------- settings ----------

	@property
	def view_mode(self) -> ViewMode:
		return self.settings.view_mode

	@property
	def sound(self) -> SoundConfig:
		return self.settings.sound

	@property
	def tracking(self) -> bool:
		return self._tracking

	def update_settings(self, settings: UiSettings) -> UiSettings:
		mode_changed = settings.view_mode != self.settings.view_mode
		self.settings = settings
		if mode_changed:
			logger.info("[Session] view mode -> %s", settings.view_mode.value)
			self.reset()
		if not settings.sound.enabled:
			self.alerts.clear_sustain()
		if self.store is not None:
			save_ui_settings(self.store, settings)
		return settings

	def set_view_mode(self, mode: ViewMode) -> UiSettings:
		return self.update_settings(replace(self.settings, view_mode=ViewMode(mode)))

	def set_sound_config(self, sound: SoundConfig) -> UiSettings:
		return self.update_settings(replace(self.settings, sound=sound))

	# ---------- lifecycle ----------

	def _lose_tracking(self) -> None:
		self.stabilizer.reset()
		self.deviation.reset()
		self.elbow.reset()
		self.alerts.clear_sustain()
		self.offsets.clear_observations()
		self._stabilized_side = None

	def reset(self) -> None:
		"""Tear down the session: filters, angles, baseline, counters and alert timers."""
		self._lose_tracking()
		self.calibration.reset()
		self.alerts.reset()
		self.bad_posture_frames = 0
		self.started_at = None
		self.pose_acquired = False
		self._tracking = False

	# ---------- pointer drag ----------

	def pointer_down(self, pointer: PointerPosition) -> Optional[Joint]:
		if self.view_mode != ViewMode.SIDE:
			return None
		return self.offsets.begin_drag(pointer)

	def pointer_move(self, pointer: PointerPosition) -> Optional[Joint]:
		if self.offsets.active is not None:
			self.offsets.update_drag(pointer)
		return self.offsets.active

	def pointer_up(self) -> None:
		self.offsets.end_drag()

	# ---------- snapshots ----------

	def record_snapshot(self, image: bytes, created_at: float) -> Snapshot:
		return self.snapshots.add(image, created_at)

	# ---------- frame pipeline ----------

	def _visible(self, lm: Optional[Landmark]) -> bool:
		if lm is None:
			return False
		if lm.visibility is None:
			return True
		return lm.visibility > self.cfg.detection.visibility_threshold

	def process_frame(self, frame: Optional[PoseFrame], now: Optional[float] = None, calibrate: bool = False) -> FrameOutput:
		t = float(now) if now is not None else time.time()
		if self.started_at is None:
			self.started_at = t

		if frame is None:
			return self._no_pose(t)

		if not self._tracking:
			logger.info("[Session] pose acquired")
		self._tracking = True
		self.pose_acquired = True

		if self.view_mode == ViewMode.SIDE:
			return self._process_side(frame, t, calibrate)
		return self._process_front(frame, t, calibrate)

	def _no_pose(self, t: float) -> FrameOutput:
		if self._tracking:
			logger.info("[Session] pose lost")
		self._tracking = False
		self._lose_tracking()
		status = PostureStatus.NO_POSE
		if not self.pose_acquired and t - float(self.started_at or t) >= self.cfg.detection.acquire_timeout_seconds:
			status = PostureStatus.STALLED
		side = self.calibration.side
		return FrameOutput(
			t=t,
			status=status,
			label=PostureLabel.UNDETECTED,
			view_mode=self.view_mode,
			side=side,
			confidence=Confidence(side=side),
			calibrated=self.calibration.calibrated,
		)

	def _apply_calibration(self, frame: PoseFrame) -> None:
		self.calibration.calibrate(frame)
		self.bad_posture_frames = 0

	def _count_bad_posture(self, bad: bool) -> Optional[str]:
		if not bad:
			self.bad_posture_frames = 0
			return None
		self.bad_posture_frames += 1
		if self.bad_posture_frames >= self.cfg.detection.notify_after_frames:
			self.bad_posture_frames = 0
			logger.info("[Session] sustained bad posture, notifying")
			return fb.FIX_POSTURE
		return None

	def _process_side(self, frame: PoseFrame, t: float, calibrate: bool) -> FrameOutput:
		w, h = frame.width, frame.height
		if calibrate:
			# Calibrating can re-choose the tracked side.
			self._apply_calibration(frame)
		side = self.calibration.side_for(frame)
		if self._stabilized_side is not None and side != self._stabilized_side:
			# Filter state belongs to the other side's joints.
			self._lose_tracking()
		self._stabilized_side = side

		raw = {j: frame.joint(side, j) for j in Joint}
		stable = {j: self.stabilizer.update(j, raw[j], w, h) for j in STABILIZED_JOINTS}
		ear = raw[Joint.EAR].point() if self._visible(raw[Joint.EAR]) else None

		points: Dict[Joint, Point] = {}
		for joint, base in [(Joint.EAR, ear)] + [(j, stable[j]) for j in STABILIZED_JOINTS]:
			adjusted = self.offsets.apply(base, joint)
			if adjusted is not None:
				points[joint] = adjusted
		self.offsets.observe(
			raw={j: raw[j].point() for j in Joint if self._visible(raw[j])},
			anchors=points,
		)

		deviation_raw: Optional[float] = None
		if Joint.EAR in points and Joint.SHOULDER in points:
			deviation_raw = vertical_deviation_deg(points[Joint.SHOULDER], points[Joint.EAR], w, h, self.cfg.angles.epsilon)
		self.deviation.update(deviation_raw)

		elbow_raw: Optional[float] = None
		if all(j in points for j in STABILIZED_JOINTS):
			elbow_raw = joint_angle_deg(points[Joint.SHOULDER], points[Joint.ELBOW], points[Joint.WRIST], w, h)
		self.elbow.update(elbow_raw)

		confidence = Confidence(side=side, ear=raw[Joint.EAR].visibility, shoulder=raw[Joint.SHOULDER].visibility)

		out = FrameOutput(
			t=t,
			status=PostureStatus.OK,
			label=PostureLabel.NOT_CALIBRATED,
			view_mode=ViewMode.SIDE,
			side=self.calibration.side,
			width=w,
			height=h,
			points=points,
			deviation_raw=deviation_raw,
			deviation=self.deviation.smoothed,
			displayed_angle=self.deviation.displayed,
			angle_text=self.deviation.text,
			elbow_angle=self.elbow.displayed,
			confidence=confidence,
			calibrated=self.calibration.calibrated,
			can_calibrate=True,
		)

		baseline = self.calibration.baseline
		if baseline is None:
			self.alerts.clear_sustain()
			return out

		tracked = self.calibration.side
		base_ear_lm = baseline.joint(tracked, Joint.EAR)
		base_sh_lm = baseline.joint(tracked, Joint.SHOULDER)
		base_ear = self.offsets.apply(base_ear_lm.point(), Joint.EAR) if self._visible(base_ear_lm) else None
		base_sh = self.offsets.apply(base_sh_lm.point(), Joint.SHOULDER) if self._visible(base_sh_lm) else None
		text = fb.side_feedback(points.get(Joint.EAR), points.get(Joint.SHOULDER), base_ear, base_sh)
		bad = not fb.is_good(text)

		alert = self.alerts.update(self.deviation.smoothed, self.sound, t)
		return replace(
			out,
			label=PostureLabel.NEEDS_IMPROVEMENT if bad else PostureLabel.GOOD,
			feedback=text,
			bad_posture=bad,
			alert=alert,
			notification=self._count_bad_posture(bad),
		)

	def _process_front(self, frame: PoseFrame, t: float, calibrate: bool) -> FrameOutput:
		# Sound alerts follow the side-view angle only.
		self.alerts.clear_sustain()
		self.offsets.clear_observations()
		if calibrate:
			self._apply_calibration(frame)

		side = self.calibration.side
		out = FrameOutput(
			t=t,
			status=PostureStatus.OK,
			label=PostureLabel.NOT_CALIBRATED,
			view_mode=ViewMode.FRONT,
			side=side,
			width=frame.width,
			height=frame.height,
			confidence=Confidence(side=side),
			calibrated=self.calibration.calibrated,
			can_calibrate=True,
		)
		baseline = self.calibration.baseline
		if baseline is None:
			return out

		text = fb.front_feedback(frame, baseline)
		bad = not fb.is_good(text)
		return replace(
			out,
			label=PostureLabel.NEEDS_IMPROVEMENT if bad else PostureLabel.GOOD,
			feedback=text,
			bad_posture=bad,
			front=fb.front_checks(frame, baseline),
			notification=self._count_bad_posture(bad),
		)
