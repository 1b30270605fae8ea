from __future__ import annotations

import json
import logging
import math
import os
import tempfile
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict

from modules.config import _as_bool, _as_float
from modules.pose.types import Joint

logger = logging.getLogger(__name__)

OFFSETS_KEY = "pointOffsets"
UI_SETTINGS_KEY = "uiSettings"


class JsonStateStore:
	"""
	Key -> JSON blob store backed by a single file.

	Reads never raise: a missing, unreadable or malformed file reads as empty.
	Writes are atomic (temp file + replace) and best-effort; failures are
	logged and swallowed so the frame pipeline never sees them.
	"""

	def __init__(self, path: str | Path) -> None:
		self.path = Path(path).expanduser()

	def _read_all(self) -> Dict[str, Any]:
		try:
			if not self.path.exists():
				return {}
			raw = json.loads(self.path.read_text(encoding="utf-8"))
		except Exception as e:
			logger.warning("[Storage] read failed for %s: %r", self.path, e)
			return {}
		return raw if isinstance(raw, dict) else {}

	def read(self, key: str) -> Any:
		return self._read_all().get(key)

	def write(self, key: str, value: Any) -> bool:
		try:
			data = self._read_all()
			data[key] = value
			self.path.parent.mkdir(parents=True, exist_ok=True)
			fd, tmp = tempfile.mkstemp(prefix=".state-", suffix=".json", dir=str(self.path.parent))
			try:
				with os.fdopen(fd, "w", encoding="utf-8") as fh:
					json.dump(data, fh, indent=2)
				os.replace(tmp, self.path)
			finally:
				if os.path.exists(tmp):
					os.unlink(tmp)
			return True
		except Exception as e:
			logger.warning("[Storage] write of %r failed: %r", key, e)
			return False


# ---------- Point offsets ----------

@dataclass(frozen=True)
class PointOffset:
	dx: float = 0.0
	dy: float = 0.0


def _clamp(v: float, lo: float, hi: float) -> float:
	return max(lo, min(hi, float(v)))


def _finite(v: Any, default: float = 0.0) -> float:
	f = _as_float(v, default)
	return f if math.isfinite(f) else float(default)


def zero_offsets() -> Dict[Joint, PointOffset]:
	return {j: PointOffset() for j in Joint}


def normalize_offsets(raw: Any, limit: float) -> Dict[Joint, PointOffset]:
	"""
	Turn a persisted `{ear: {x, y}, ...}` blob into a full, clamped offset map.

	Any joint that is missing or malformed becomes a zero offset.
	"""
	out = zero_offsets()
	if not isinstance(raw, dict):
		return out
	for joint in Joint:
		entry = raw.get(joint.value)
		if not isinstance(entry, dict):
			continue
		out[joint] = PointOffset(
			dx=_clamp(_finite(entry.get("x")), -limit, limit),
			dy=_clamp(_finite(entry.get("y")), -limit, limit),
		)
	return out


def offsets_to_blob(offsets: Dict[Joint, PointOffset]) -> Dict[str, Dict[str, float]]:
	return {j.value: {"x": float(o.dx), "y": float(o.dy)} for j, o in offsets.items()}


def load_offsets(store: JsonStateStore, limit: float) -> Dict[Joint, PointOffset]:
	return normalize_offsets(store.read(OFFSETS_KEY), limit)


def save_offsets(store: JsonStateStore, offsets: Dict[Joint, PointOffset]) -> bool:
	return store.write(OFFSETS_KEY, offsets_to_blob(offsets))


# ---------- UI settings ----------

class ViewMode(str, Enum):
	SIDE = "side"
	FRONT = "front"


ANGLE_THRESHOLD_RANGE = (5.0, 90.0)
DURATION_SECONDS_RANGE = (1.0, 60.0)


@dataclass(frozen=True)
class SoundConfig:
	enabled: bool = True
	angle_threshold: float = 18.0
	duration_seconds: float = 2.0


@dataclass(frozen=True)
class UiSettings:
	view_mode: ViewMode = ViewMode.SIDE
	sound: SoundConfig = field(default_factory=SoundConfig)


def normalize_sound_config(raw: Any) -> SoundConfig:
	d = SoundConfig()
	if not isinstance(raw, dict):
		return d
	threshold = _finite(raw.get("angleThreshold"), d.angle_threshold)
	duration = _finite(raw.get("durationSeconds"), d.duration_seconds)
	return SoundConfig(
		enabled=_as_bool(raw.get("enabled"), d.enabled) if "enabled" in raw else d.enabled,
		angle_threshold=_clamp(threshold, *ANGLE_THRESHOLD_RANGE),
		duration_seconds=_clamp(duration, *DURATION_SECONDS_RANGE),
	)


def normalize_ui_settings(raw: Any) -> UiSettings:
	if not isinstance(raw, dict):
		return UiSettings()
	try:
		view_mode = ViewMode(str(raw.get("viewMode", ViewMode.SIDE.value)).strip().lower())
	except ValueError:
		view_mode = ViewMode.SIDE
	return UiSettings(view_mode=view_mode, sound=normalize_sound_config(raw.get("soundConfig")))


def ui_settings_to_blob(settings: UiSettings) -> Dict[str, Any]:
	return {
		"viewMode": settings.view_mode.value,
		"soundConfig": {
			"enabled": bool(settings.sound.enabled),
			"angleThreshold": float(settings.sound.angle_threshold),
			"durationSeconds": float(settings.sound.duration_seconds),
		},
	}


def load_ui_settings(store: JsonStateStore) -> UiSettings:
	return normalize_ui_settings(store.read(UI_SETTINGS_KEY))


def save_ui_settings(store: JsonStateStore, settings: UiSettings) -> bool:
	return store.write(UI_SETTINGS_KEY, ui_settings_to_blob(settings))

