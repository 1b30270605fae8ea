from helpers import make_frame

from modules.pose.types import PoseLandmark as PL, TrackedSide
from modules.posture.calibration import BaselineCalibration, choose_side


def test_ties_favor_left():
	assert choose_side(make_frame()) == TrackedSide.LEFT


def test_more_visible_side_wins():
	frame = make_frame({PL.LEFT_EAR: (0.5, 0.4, 0.2), PL.LEFT_SHOULDER: (0.5, 0.6, 0.3)})
	assert choose_side(frame) == TrackedSide.RIGHT


def test_missing_visibility_scores_as_neutral():
	# Left: 0.5 + 0.5 (unknown) vs right: 0.45 + 0.5
	frame = make_frame(
		{
			PL.LEFT_EAR: (0.5, 0.4, None),
			PL.LEFT_SHOULDER: (0.5, 0.6, None),
			PL.RIGHT_EAR: (0.45, 0.3, 0.45),
			PL.RIGHT_SHOULDER: (0.4, 0.6, 0.5),
		}
	)
	assert choose_side(frame) == TrackedSide.LEFT
	frame = make_frame(
		{
			PL.LEFT_EAR: (0.5, 0.4, None),
			PL.LEFT_SHOULDER: (0.5, 0.6, None),
			PL.RIGHT_EAR: (0.45, 0.3, 0.7),
			PL.RIGHT_SHOULDER: (0.4, 0.6, 0.5),
		}
	)
	assert choose_side(frame) == TrackedSide.RIGHT


def test_side_is_chosen_each_frame_until_calibrated_then_sticky():
	cal = BaselineCalibration()
	right_frame = make_frame({PL.LEFT_EAR: (0.5, 0.4, 0.1)})
	assert cal.side_for(right_frame) == TrackedSide.RIGHT
	assert cal.side_for(make_frame()) == TrackedSide.LEFT

	cal.calibrate(right_frame)
	assert cal.calibrated
	assert cal.side == TrackedSide.RIGHT
	assert cal.side_for(make_frame()) == TrackedSide.RIGHT

	cal.calibrate(make_frame())
	assert cal.side_for(right_frame) == TrackedSide.LEFT


def test_baseline_is_an_independent_copy():
	frame = make_frame()
	cal = BaselineCalibration()
	cal.calibrate(frame)
	assert cal.baseline is not frame
	assert cal.baseline.landmarks == frame.landmarks
	assert cal.baseline.meta is not frame.meta
