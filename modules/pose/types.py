from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any, Dict, Iterable, Optional, Sequence, Tuple


class PoseLandmark(IntEnum):
	"""MediaPipe Pose (BlazePose) 33-landmark topology."""

	NOSE = 0
	LEFT_EYE_INNER = 1
	LEFT_EYE = 2
	LEFT_EYE_OUTER = 3
	RIGHT_EYE_INNER = 4
	RIGHT_EYE = 5
	RIGHT_EYE_OUTER = 6
	LEFT_EAR = 7
	RIGHT_EAR = 8
	MOUTH_LEFT = 9
	MOUTH_RIGHT = 10
	LEFT_SHOULDER = 11
	RIGHT_SHOULDER = 12
	LEFT_ELBOW = 13
	RIGHT_ELBOW = 14
	LEFT_WRIST = 15
	RIGHT_WRIST = 16
	LEFT_PINKY = 17
	RIGHT_PINKY = 18
	LEFT_INDEX = 19
	RIGHT_INDEX = 20
	LEFT_THUMB = 21
	RIGHT_THUMB = 22
	LEFT_HIP = 23
	RIGHT_HIP = 24
	LEFT_KNEE = 25
	RIGHT_KNEE = 26
	LEFT_ANKLE = 27
	RIGHT_ANKLE = 28
	LEFT_HEEL = 29
	RIGHT_HEEL = 30
	LEFT_FOOT_INDEX = 31
	RIGHT_FOOT_INDEX = 32


LANDMARK_COUNT = len(PoseLandmark)


class TrackedSide(str, Enum):
	LEFT = "left"
	RIGHT = "right"


class Joint(str, Enum):
	EAR = "ear"
	SHOULDER = "shoulder"
	ELBOW = "elbow"
	WRIST = "wrist"


SIDE_LANDMARKS: Dict[TrackedSide, Dict[Joint, PoseLandmark]] = {
	TrackedSide.LEFT: {
		Joint.EAR: PoseLandmark.LEFT_EAR,
		Joint.SHOULDER: PoseLandmark.LEFT_SHOULDER,
		Joint.ELBOW: PoseLandmark.LEFT_ELBOW,
		Joint.WRIST: PoseLandmark.LEFT_WRIST,
	},
	TrackedSide.RIGHT: {
		Joint.EAR: PoseLandmark.RIGHT_EAR,
		Joint.SHOULDER: PoseLandmark.RIGHT_SHOULDER,
		Joint.ELBOW: PoseLandmark.RIGHT_ELBOW,
		Joint.WRIST: PoseLandmark.RIGHT_WRIST,
	},
}


@dataclass(frozen=True)
class Point:
	"""A 2D point in normalized frame coordinates."""

	x: float
	y: float

	def to_px(self, width: float, height: float) -> Tuple[float, float]:
		return (self.x * float(width), self.y * float(height))


@dataclass(frozen=True)
class Landmark:
	"""
	A single normalized keypoint as produced by the detector.

	`x`/`y` are in [0, 1] relative to the frame; `visibility` is the detector's
	confidence in [0, 1], or None when the detector does not report one.
	"""

	x: float
	y: float
	visibility: Optional[float] = None

	def point(self) -> Point:
		return Point(self.x, self.y)

	def visibility_or(self, default: float) -> float:
		return float(self.visibility) if self.visibility is not None else float(default)


@dataclass(frozen=True)
class PoseFrame:
	"""
	Model-agnostic pose output for a single video frame.

	- `landmarks` always holds LANDMARK_COUNT entries in PoseLandmark order.
	- Coordinates stay normalized; `width`/`height` give the pixel scale for
	  anything measured in pixels downstream.
	- `t_host` is optional epoch seconds supplied by the caller.
	"""

	landmarks: Tuple[Landmark, ...]
	width: int
	height: int
	backend: str = "external"
	t_host: Optional[float] = None
	meta: Dict[str, Any] = field(default_factory=dict)

	def __post_init__(self) -> None:
		if len(self.landmarks) != LANDMARK_COUNT:
			raise ValueError(f"PoseFrame needs {LANDMARK_COUNT} landmarks, got {len(self.landmarks)}")

	def get(self, idx: PoseLandmark | int) -> Landmark:
		return self.landmarks[int(idx)]

	def joint(self, side: TrackedSide, joint: Joint) -> Landmark:
		return self.get(SIDE_LANDMARKS[side][joint])

	@classmethod
	def from_landmarks(
		cls,
		landmarks: Iterable[Landmark | Sequence[float] | Dict[str, Any]],
		width: int,
		height: int,
		**kwargs: Any,
	) -> "PoseFrame":
		"""Build a frame from Landmark objects, (x, y[, vis]) tuples or {x, y, visibility} dicts."""
		out = []
		for lm in landmarks:
			if isinstance(lm, Landmark):
				out.append(lm)
			elif isinstance(lm, dict):
				vis = lm.get("visibility")
				out.append(Landmark(float(lm["x"]), float(lm["y"]), float(vis) if vis is not None else None))
			else:
				vals = list(lm)
				out.append(Landmark(float(vals[0]), float(vals[1]), float(vals[2]) if len(vals) > 2 else None))
		return cls(landmarks=tuple(out), width=int(width), height=int(height), **kwargs)
