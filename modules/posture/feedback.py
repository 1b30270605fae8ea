"""
Posture feedback text relative to the calibrated baseline.

Side view compares the tracked ear/shoulder with their baseline positions.
Front view compares head height, shoulder level, back angle, lean and neck
length. All thresholds are in normalized frame units (or radians for angles).
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List, Optional

from modules.pose.types import PoseFrame, PoseLandmark as PL, Point
from modules.posture.angles import joint_angle_deg

GOOD_POSTURE = "Great posture, keep it up!"
RAISE_HEAD = "Raise your head slightly"
LOWER_HEAD = "Lower your head slightly"
HEAD_OVER_SHOULDERS = "Bring your head back in line with your shoulders"
RAISE_LEFT_SHOULDER = "Level your shoulders by raising your left shoulder"
RAISE_RIGHT_SHOULDER = "Level your shoulders by raising your right shoulder"
SIT_STRAIGHTER = "Straighten your back by sitting up taller"
RELAX_BACK = "Relax your back slightly"
LEANING_FORWARD = "Sit back a little, you are leaning too far forward"
LEANING_BACKWARD = "Sit forward a little, you are leaning too far back"
HUNCHED = "Relax your shoulders and lengthen your neck"
FIX_POSTURE = "Fix your posture"

HEAD_Y_TOLERANCE = 0.03
HEAD_FORWARD_TOLERANCE = 0.04
SHOULDER_LEVEL_TOLERANCE = 0.02
BACK_ANGLE_TOLERANCE = 0.1
NECK_RATIO_MIN = 0.95
BACK_STRAIGHT_MIN_DEG = 160.0


def join_feedback(items: List[str]) -> str:
	return ". ".join(items or [GOOD_POSTURE])


def is_good(feedback: str) -> bool:
	return GOOD_POSTURE in feedback


def side_feedback(
	ear: Optional[Point],
	shoulder: Optional[Point],
	base_ear: Optional[Point],
	base_shoulder: Optional[Point],
) -> str:
	"""Points are offset-corrected; None means "not visible"."""
	out: List[str] = []
	if ear is not None and base_ear is not None:
		head_dy = ear.y - base_ear.y
		if head_dy > HEAD_Y_TOLERANCE:
			out.append(RAISE_HEAD)
		elif head_dy < -HEAD_Y_TOLERANCE:
			out.append(LOWER_HEAD)
	if None not in (ear, shoulder, base_ear, base_shoulder):
		forward = abs(ear.x - shoulder.x)
		base_forward = abs(base_ear.x - base_shoulder.x)
		if forward - base_forward > HEAD_FORWARD_TOLERANCE:
			out.append(HEAD_OVER_SHOULDERS)
	return join_feedback(out)


def _mid(frame: PoseFrame, a: PL, b: PL) -> Point:
	la, lb = frame.get(a), frame.get(b)
	return Point((la.x + lb.x) / 2.0, (la.y + lb.y) / 2.0)


def _trunk_angle(frame: PoseFrame) -> float:
	sh = _mid(frame, PL.LEFT_SHOULDER, PL.RIGHT_SHOULDER)
	hip = _mid(frame, PL.LEFT_HIP, PL.RIGHT_HIP)
	return math.atan2(hip.y - sh.y, hip.x - sh.x)


def _neck_length(frame: PoseFrame) -> float:
	nose = frame.get(PL.NOSE)
	sh = _mid(frame, PL.LEFT_SHOULDER, PL.RIGHT_SHOULDER)
	return math.hypot(nose.x - sh.x, nose.y - sh.y)


def shoulders_level(frame: PoseFrame) -> bool:
	return abs(frame.get(PL.LEFT_SHOULDER).y - frame.get(PL.RIGHT_SHOULDER).y) <= SHOULDER_LEVEL_TOLERANCE


def back_straight(frame: PoseFrame) -> bool:
	sh = _mid(frame, PL.LEFT_SHOULDER, PL.RIGHT_SHOULDER)
	hip = _mid(frame, PL.LEFT_HIP, PL.RIGHT_HIP)
	knee = _mid(frame, PL.LEFT_KNEE, PL.RIGHT_KNEE)
	ang = joint_angle_deg(sh, hip, knee, frame.width, frame.height)
	return ang is None or ang >= BACK_STRAIGHT_MIN_DEG


def head_up(frame: PoseFrame, baseline: PoseFrame) -> bool:
	return frame.get(PL.NOSE).y < baseline.get(PL.NOSE).y


@dataclass(frozen=True)
class FrontChecks:
	shoulders_level: bool
	back_straight: bool
	head_up: bool


def front_checks(frame: PoseFrame, baseline: PoseFrame) -> FrontChecks:
	return FrontChecks(
		shoulders_level=shoulders_level(frame),
		back_straight=back_straight(frame),
		head_up=head_up(frame, baseline),
	)


def front_feedback(frame: PoseFrame, baseline: PoseFrame) -> str:
	out: List[str] = []

	head_dy = frame.get(PL.NOSE).y - baseline.get(PL.NOSE).y
	if head_dy > HEAD_Y_TOLERANCE:
		out.append(RAISE_HEAD)
	elif head_dy < -HEAD_Y_TOLERANCE:
		out.append(LOWER_HEAD)

	left_y = frame.get(PL.LEFT_SHOULDER).y
	right_y = frame.get(PL.RIGHT_SHOULDER).y
	if abs(left_y - right_y) > SHOULDER_LEVEL_TOLERANCE:
		# Larger y is lower in the image.
		out.append(RAISE_LEFT_SHOULDER if left_y > right_y else RAISE_RIGHT_SHOULDER)

	back = _trunk_angle(frame)
	base_back = _trunk_angle(baseline)
	if abs(back - base_back) > BACK_ANGLE_TOLERANCE:
		out.append(SIT_STRAIGHTER if back > base_back else RELAX_BACK)
	if back - base_back > BACK_ANGLE_TOLERANCE:
		out.append(LEANING_FORWARD)
	elif base_back - back > BACK_ANGLE_TOLERANCE:
		out.append(LEANING_BACKWARD)

	if _neck_length(frame) < _neck_length(baseline) * NECK_RATIO_MIN:
		out.append(HUNCHED)

	return join_feedback(out)
