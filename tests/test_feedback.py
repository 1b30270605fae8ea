from helpers import make_frame

from modules.pose.types import Point, PoseLandmark as PL
from modules.posture import feedback as fb

BASE_EAR = Point(0.50, 0.40)
BASE_SHOULDER = Point(0.50, 0.60)


def test_side_matches_baseline():
	assert fb.side_feedback(BASE_EAR, BASE_SHOULDER, BASE_EAR, BASE_SHOULDER) == fb.GOOD_POSTURE


def test_side_head_dropped_and_pushed_forward():
	text = fb.side_feedback(Point(0.56, 0.45), BASE_SHOULDER, BASE_EAR, BASE_SHOULDER)
	assert fb.RAISE_HEAD in text
	assert fb.HEAD_OVER_SHOULDERS in text
	assert not fb.is_good(text)


def test_side_head_raised():
	text = fb.side_feedback(Point(0.50, 0.35), BASE_SHOULDER, BASE_EAR, BASE_SHOULDER)
	assert text == fb.LOWER_HEAD


def test_side_hidden_ear_gives_no_head_advice():
	assert fb.side_feedback(None, BASE_SHOULDER, BASE_EAR, BASE_SHOULDER) == fb.GOOD_POSTURE


def test_front_matches_baseline():
	frame = make_frame()
	assert fb.front_feedback(frame, make_frame()) == fb.GOOD_POSTURE
	checks = fb.front_checks(frame, make_frame())
	assert checks.shoulders_level and checks.back_straight
	assert not checks.head_up


def test_front_uneven_shoulders():
	frame = make_frame({PL.LEFT_SHOULDER: (0.50, 0.65)})
	text = fb.front_feedback(frame, make_frame())
	assert fb.RAISE_LEFT_SHOULDER in text
	assert not fb.front_checks(frame, make_frame()).shoulders_level

	frame = make_frame({PL.RIGHT_SHOULDER: (0.40, 0.65)})
	assert fb.RAISE_RIGHT_SHOULDER in fb.front_feedback(frame, make_frame())


def test_front_hunched_neck():
	frame = make_frame({PL.NOSE: (0.45, 0.40)})
	text = fb.front_feedback(frame, make_frame())
	assert fb.HUNCHED in text
	assert fb.RAISE_HEAD in text


def test_front_head_up_check():
	frame = make_frame({PL.NOSE: (0.50, 0.28)})
	assert fb.front_checks(frame, make_frame()).head_up


def test_front_bent_back():
	baseline = make_frame()
	frame = make_frame(
		{
			PL.LEFT_HIP: (0.30, 0.75),
			PL.RIGHT_HIP: (0.24, 0.75),
		}
	)
	assert not fb.back_straight(frame)
	text = fb.front_feedback(frame, baseline)
	assert fb.GOOD_POSTURE not in text
