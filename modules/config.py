from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class StorageConfig:
	# JSON file holding persisted blobs (point offsets, UI settings).
	state_path: str = str(Path("data") / "posture_state.json")


@dataclass(frozen=True)
class JointFilterConfig:
	"""
	Tuning for one stabilized joint.

	Displacements are measured in frame pixels. Below `deadzone_px` the previous
	point is held; below `soft_zone_px` the gentle `soft_alpha` factor is used,
	otherwise `fast_alpha`.
	"""

	min_visibility: float
	deadzone_px: float
	soft_zone_px: float
	soft_alpha: float
	fast_alpha: float


def _default_shoulder_filter() -> JointFilterConfig:
	return JointFilterConfig(min_visibility=0.6, deadzone_px=3.0, soft_zone_px=12.0, soft_alpha=0.12, fast_alpha=0.3)


def _default_elbow_filter() -> JointFilterConfig:
	return JointFilterConfig(min_visibility=0.5, deadzone_px=2.5, soft_zone_px=14.0, soft_alpha=0.18, fast_alpha=0.4)


def _default_wrist_filter() -> JointFilterConfig:
	return JointFilterConfig(min_visibility=0.5, deadzone_px=2.0, soft_zone_px=16.0, soft_alpha=0.25, fast_alpha=0.5)


@dataclass(frozen=True)
class StabilizerConfig:
	shoulder: JointFilterConfig = field(default_factory=_default_shoulder_filter)
	elbow: JointFilterConfig = field(default_factory=_default_elbow_filter)
	wrist: JointFilterConfig = field(default_factory=_default_wrist_filter)
	# Residual movement (px) after blending that is snapped back to the previous point.
	snap_px: float = 0.6


@dataclass(frozen=True)
class AngleConfig:
	smoothing_alpha: float = 0.25
	display_step: int = 2
	epsilon: float = 1e-4


@dataclass(frozen=True)
class AlertConfig:
	cooldown_seconds: float = 60.0
	# Degrees past the threshold at which severity saturates at 1.0.
	severity_span_deg: float = 20.0
	tone_base_hz: float = 420.0
	tone_span_hz: float = 260.0
	tone_base_volume: float = 0.04
	tone_span_volume: float = 0.05
	tone_duration_seconds: float = 0.22


@dataclass(frozen=True)
class OffsetConfig:
	limit: float = 0.2
	hit_radius_px: float = 20.0


@dataclass(frozen=True)
class SnapshotConfig:
	max_items: int = 8
	jpeg_quality: int = 85


@dataclass(frozen=True)
class DetectionConfig:
	visibility_threshold: float = 0.5
	# Without a first pose for this long, the frame status turns "stalled".
	acquire_timeout_seconds: float = 10.0
	# Consecutive bad-posture frames before a notification (~2 s at 30 fps).
	notify_after_frames: int = 60
	model_complexity: int = 1
	min_detection_confidence: float = 0.5
	min_tracking_confidence: float = 0.5


@dataclass(frozen=True)
class AppConfig:
	storage: StorageConfig = field(default_factory=StorageConfig)
	stabilizer: StabilizerConfig = field(default_factory=StabilizerConfig)
	angles: AngleConfig = field(default_factory=AngleConfig)
	alerts: AlertConfig = field(default_factory=AlertConfig)
	offsets: OffsetConfig = field(default_factory=OffsetConfig)
	snapshots: SnapshotConfig = field(default_factory=SnapshotConfig)
	detection: DetectionConfig = field(default_factory=DetectionConfig)


_CONFIG_PATH: Optional[Path] = None
_CONFIG_CACHE: Optional[AppConfig] = None


def _repo_root() -> Path:
	# modules/config.py -> repo root is one level up.
	return Path(__file__).resolve().parents[1]


def get_default_config_path() -> Path:
	return _repo_root() / "config.json"


def set_config_path(path: str | Path) -> None:
	"""
	Override the config path (must be called before first get_config()).
	Intended for tooling and tests; the server normally uses the default path.
	"""
	global _CONFIG_PATH
	global _CONFIG_CACHE
	_CONFIG_PATH = Path(path).expanduser().resolve()
	_CONFIG_CACHE = None


def _deep_get(d: Dict[str, Any], keys: list[str], default: Any = None) -> Any:
	cur: Any = d
	for k in keys:
		if not isinstance(cur, dict):
			return default
		cur = cur.get(k)
	return cur if cur is not None else default


def _as_int(v: Any, default: int) -> int:
	try:
		return int(v)
	except Exception:
		return int(default)


def _as_bool(v: Any, default: bool) -> bool:
	if isinstance(v, bool):
		return v
	if isinstance(v, (int, float)):
		return bool(v)
	if isinstance(v, str):
		return v.strip().lower() in ("1", "true", "yes", "on")
	return bool(default)


def _as_str(v: Any, default: str = "") -> str:
	return str(v) if v is not None else str(default)


def _as_float(v: Any, default: float) -> float:
	try:
		return float(v)
	except Exception:
		return float(default)


def _positive(v: float, default: float) -> float:
	return float(v) if float(v) > 0.0 else float(default)


def _unit(v: float, default: float) -> float:
	return float(v) if 0.0 <= float(v) <= 1.0 else float(default)


def _parse_joint_filter(obj: Any, default: JointFilterConfig) -> JointFilterConfig:
	if not isinstance(obj, dict):
		return default
	deadzone = _positive(_as_float(obj.get("deadzone_px"), default.deadzone_px), default.deadzone_px)
	soft_zone = _positive(_as_float(obj.get("soft_zone_px"), default.soft_zone_px), default.soft_zone_px)
	if soft_zone < deadzone:
		soft_zone = deadzone
	return JointFilterConfig(
		min_visibility=_unit(_as_float(obj.get("min_visibility"), default.min_visibility), default.min_visibility),
		deadzone_px=deadzone,
		soft_zone_px=soft_zone,
		soft_alpha=_unit(_as_float(obj.get("soft_alpha"), default.soft_alpha), default.soft_alpha),
		fast_alpha=_unit(_as_float(obj.get("fast_alpha"), default.fast_alpha), default.fast_alpha),
	)


def load_config(path: Optional[str | Path] = None) -> AppConfig:
	p = Path(path).expanduser().resolve() if path else (_CONFIG_PATH or get_default_config_path())
	if not p.exists():
		# Defaults-only config; app can still run.
		return AppConfig()
	try:
		raw = json.loads(p.read_text(encoding="utf-8"))
	except Exception:
		# If config is malformed, fail safe to defaults (but keep app running).
		return AppConfig()

	if not isinstance(raw, dict):
		return AppConfig()

	d = AppConfig()

	state_path = _as_str(_deep_get(raw, ["storage", "state_path"], d.storage.state_path), d.storage.state_path).strip()

	stab = d.stabilizer
	shoulder = _parse_joint_filter(_deep_get(raw, ["stabilizer", "shoulder"], {}), stab.shoulder)
	elbow = _parse_joint_filter(_deep_get(raw, ["stabilizer", "elbow"], {}), stab.elbow)
	wrist = _parse_joint_filter(_deep_get(raw, ["stabilizer", "wrist"], {}), stab.wrist)
	snap_px = _as_float(_deep_get(raw, ["stabilizer", "snap_px"], stab.snap_px), stab.snap_px)

	ang = d.angles
	angle_alpha = _as_float(_deep_get(raw, ["angles", "smoothing_alpha"], ang.smoothing_alpha), ang.smoothing_alpha)
	display_step = _as_int(_deep_get(raw, ["angles", "display_step"], ang.display_step), ang.display_step)
	epsilon = _as_float(_deep_get(raw, ["angles", "epsilon"], ang.epsilon), ang.epsilon)

	al = d.alerts
	cooldown = _as_float(_deep_get(raw, ["alerts", "cooldown_seconds"], al.cooldown_seconds), al.cooldown_seconds)
	span_deg = _as_float(_deep_get(raw, ["alerts", "severity_span_deg"], al.severity_span_deg), al.severity_span_deg)
	tone_base_hz = _as_float(_deep_get(raw, ["alerts", "tone_base_hz"], al.tone_base_hz), al.tone_base_hz)
	tone_span_hz = _as_float(_deep_get(raw, ["alerts", "tone_span_hz"], al.tone_span_hz), al.tone_span_hz)
	tone_base_vol = _as_float(_deep_get(raw, ["alerts", "tone_base_volume"], al.tone_base_volume), al.tone_base_volume)
	tone_span_vol = _as_float(_deep_get(raw, ["alerts", "tone_span_volume"], al.tone_span_volume), al.tone_span_volume)
	tone_dur = _as_float(_deep_get(raw, ["alerts", "tone_duration_seconds"], al.tone_duration_seconds), al.tone_duration_seconds)

	off = d.offsets
	limit = _as_float(_deep_get(raw, ["offsets", "limit"], off.limit), off.limit)
	hit_radius = _as_float(_deep_get(raw, ["offsets", "hit_radius_px"], off.hit_radius_px), off.hit_radius_px)

	snaps = d.snapshots
	max_items = _as_int(_deep_get(raw, ["snapshots", "max_items"], snaps.max_items), snaps.max_items)
	jpeg_quality = _as_int(_deep_get(raw, ["snapshots", "jpeg_quality"], snaps.jpeg_quality), snaps.jpeg_quality)

	det = d.detection
	vis_thr = _as_float(_deep_get(raw, ["detection", "visibility_threshold"], det.visibility_threshold), det.visibility_threshold)
	acquire_timeout = _as_float(
		_deep_get(raw, ["detection", "acquire_timeout_seconds"], det.acquire_timeout_seconds), det.acquire_timeout_seconds
	)
	notify_after = _as_int(_deep_get(raw, ["detection", "notify_after_frames"], det.notify_after_frames), det.notify_after_frames)
	model_complexity = _as_int(_deep_get(raw, ["detection", "model_complexity"], det.model_complexity), det.model_complexity)
	min_det = _as_float(
		_deep_get(raw, ["detection", "min_detection_confidence"], det.min_detection_confidence), det.min_detection_confidence
	)
	min_trk = _as_float(
		_deep_get(raw, ["detection", "min_tracking_confidence"], det.min_tracking_confidence), det.min_tracking_confidence
	)

	return AppConfig(
		storage=StorageConfig(state_path=state_path or d.storage.state_path),
		stabilizer=StabilizerConfig(
			shoulder=shoulder,
			elbow=elbow,
			wrist=wrist,
			snap_px=float(snap_px) if float(snap_px) >= 0.0 else stab.snap_px,
		),
		angles=AngleConfig(
			smoothing_alpha=_unit(angle_alpha, ang.smoothing_alpha),
			display_step=int(display_step) if int(display_step) > 0 else ang.display_step,
			epsilon=_positive(epsilon, ang.epsilon),
		),
		alerts=AlertConfig(
			cooldown_seconds=float(cooldown) if float(cooldown) >= 0.0 else al.cooldown_seconds,
			severity_span_deg=_positive(span_deg, al.severity_span_deg),
			tone_base_hz=_positive(tone_base_hz, al.tone_base_hz),
			tone_span_hz=float(tone_span_hz),
			tone_base_volume=_unit(tone_base_vol, al.tone_base_volume),
			tone_span_volume=_unit(tone_span_vol, al.tone_span_volume),
			tone_duration_seconds=_positive(tone_dur, al.tone_duration_seconds),
		),
		offsets=OffsetConfig(
			limit=float(limit) if 0.0 <= float(limit) <= 1.0 else off.limit,
			hit_radius_px=_positive(hit_radius, off.hit_radius_px),
		),
		snapshots=SnapshotConfig(
			max_items=int(max_items) if int(max_items) > 0 else snaps.max_items,
			jpeg_quality=int(jpeg_quality) if 1 <= int(jpeg_quality) <= 95 else snaps.jpeg_quality,
		),
		detection=DetectionConfig(
			visibility_threshold=_unit(vis_thr, det.visibility_threshold),
			acquire_timeout_seconds=_positive(acquire_timeout, det.acquire_timeout_seconds),
			notify_after_frames=int(notify_after) if int(notify_after) > 0 else det.notify_after_frames,
			model_complexity=int(model_complexity) if int(model_complexity) in (0, 1, 2) else det.model_complexity,
			min_detection_confidence=_unit(min_det, det.min_detection_confidence),
			min_tracking_confidence=_unit(min_trk, det.min_tracking_confidence),
		),
	)


def get_config() -> AppConfig:
	global _CONFIG_CACHE
	if _CONFIG_CACHE is None:
		_CONFIG_CACHE = load_config()
	return _CONFIG_CACHE
