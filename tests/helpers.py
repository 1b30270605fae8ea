"""Frame builders shared by the test modules."""
from typing import Dict, List, Optional, Tuple

from modules.pose.types import LANDMARK_COUNT, PoseFrame, PoseLandmark as PL

# A seated person facing the camera, slightly turned; every landmark visible.
BASE_POSE: Dict[PL, Tuple[float, float]] = {
	PL.NOSE: (0.50, 0.30),
	PL.LEFT_EAR: (0.50, 0.40),
	PL.RIGHT_EAR: (0.45, 0.30),
	PL.LEFT_SHOULDER: (0.50, 0.60),
	PL.RIGHT_SHOULDER: (0.40, 0.60),
	PL.LEFT_ELBOW: (0.50, 0.75),
	PL.RIGHT_ELBOW: (0.38, 0.75),
	PL.LEFT_WRIST: (0.60, 0.80),
	PL.RIGHT_WRIST: (0.40, 0.85),
	PL.LEFT_HIP: (0.48, 0.90),
	PL.RIGHT_HIP: (0.42, 0.90),
	PL.LEFT_KNEE: (0.48, 0.99),
	PL.RIGHT_KNEE: (0.42, 0.99),
}


def landmark_dicts(
	overrides: Optional[Dict[PL, tuple]] = None,
	visibility: Optional[float] = 0.9,
) -> List[dict]:
	"""33 `{x, y, visibility}` dicts; overrides are (x, y) or (x, y, visibility)."""
	out = []
	overrides = overrides or {}
	for idx in range(LANDMARK_COUNT):
		lm = PL(idx)
		vals = overrides.get(lm, BASE_POSE.get(lm, (0.5, 0.5)))
		x, y = vals[0], vals[1]
		vis = vals[2] if len(vals) > 2 else visibility
		out.append({"x": x, "y": y, "visibility": vis})
	return out


def make_frame(
	overrides: Optional[Dict[PL, tuple]] = None,
	width: int = 640,
	height: int = 480,
	visibility: Optional[float] = 0.9,
) -> PoseFrame:
	return PoseFrame.from_landmarks(landmark_dicts(overrides, visibility), width=width, height=height)
