from __future__ import annotations

from typing import Optional

from modules.pose.base import PoseProvider
from modules.pose.types import LANDMARK_COUNT, Landmark, PoseFrame


class MediaPipePoseProvider(PoseProvider):
	"""
	MediaPipe Pose provider that outputs the full 33-landmark set.

	Notes:
	- Coordinates are kept normalized, as MediaPipe reports them.
	- `visibility` is passed through unchanged (None if the field is missing).
	"""

	def __init__(
		self,
		model_complexity: int = 1,
		min_detection_confidence: float = 0.5,
		min_tracking_confidence: float = 0.5,
	) -> None:
		try:
			import mediapipe as mp  # type: ignore
		except Exception as e:
			raise RuntimeError(
				"MediaPipe is not installed. Install pose deps with: pip install -e .[pose]"
			) from e

		self._mp = mp
		self._pose = mp.solutions.pose.Pose(
			static_image_mode=False,
			model_complexity=int(model_complexity),
			enable_segmentation=False,
			smooth_landmarks=True,
			min_detection_confidence=float(min_detection_confidence),
			min_tracking_confidence=float(min_tracking_confidence),
		)

	def name(self) -> str:
		return "mediapipe_pose"

	def infer_rgb(self, rgb, t_host: Optional[float] = None) -> Optional[PoseFrame]:
		# rgb: HxWx3
		h, w = int(rgb.shape[0]), int(rgb.shape[1])
		res = self._pose.process(rgb)
		if not res or not getattr(res, "pose_landmarks", None):
			return None

		lm = res.pose_landmarks.landmark
		if len(lm) < LANDMARK_COUNT:
			return None
		landmarks = []
		for p in list(lm)[:LANDMARK_COUNT]:
			vis = getattr(p, "visibility", None)
			landmarks.append(Landmark(x=float(p.x), y=float(p.y), visibility=float(vis) if vis is not None else None))
		return PoseFrame(landmarks=tuple(landmarks), width=w, height=h, backend=self.name(), t_host=t_host)

	def close(self) -> None:
		try:
			if self._pose:
				self._pose.close()
		except Exception:
			pass
