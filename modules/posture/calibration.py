from __future__ import annotations

import logging
from typing import Optional

from modules.pose.types import Joint, PoseFrame, TrackedSide

logger = logging.getLogger(__name__)

# Visibility assumed for landmarks the detector reports without a score.
NEUTRAL_VISIBILITY = 0.5


def side_score(frame: PoseFrame, side: TrackedSide) -> float:
	return sum(frame.joint(side, j).visibility_or(NEUTRAL_VISIBILITY) for j in (Joint.SHOULDER, Joint.EAR))


def choose_side(frame: PoseFrame) -> TrackedSide:
	"""Pick the side whose shoulder+ear are more visible; ties go to the left."""
	if side_score(frame, TrackedSide.LEFT) >= side_score(frame, TrackedSide.RIGHT):
		return TrackedSide.LEFT
	return TrackedSide.RIGHT


class BaselineCalibration:
	"""
	Tracked side plus the reference pose captured on "calibrate".

	Until a baseline exists the side is re-chosen every frame; afterwards it is
	sticky until the next calibration.
	"""

	def __init__(self) -> None:
		self.baseline: Optional[PoseFrame] = None
		self.side: TrackedSide = TrackedSide.LEFT

	@property
	def calibrated(self) -> bool:
		return self.baseline is not None

	def side_for(self, frame: PoseFrame) -> TrackedSide:
		if self.baseline is None:
			self.side = choose_side(frame)
		return self.side

	def calibrate(self, frame: PoseFrame) -> TrackedSide:
		# PoseFrame and Landmark are frozen, so a fresh tuple is a full copy.
		self.baseline = PoseFrame(
			landmarks=tuple(frame.landmarks),
			width=frame.width,
			height=frame.height,
			backend=frame.backend,
			t_host=frame.t_host,
			meta=dict(frame.meta),
		)
		self.side = choose_side(frame)
		logger.info("[Calibration] baseline captured, tracking %s side", self.side.value)
		return self.side

	def reset(self) -> None:
		self.baseline = None
