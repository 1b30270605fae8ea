import json

import pytest
from helpers import make_frame

from modules.pose.types import Joint, PoseLandmark as PL, TrackedSide
from modules.posture import feedback as fb
from modules.posture.offsets import PointerPosition
from modules.posture.session import PostureLabel, PostureSession, PostureStatus
from modules.posture.storage import SoundConfig, ViewMode, load_offsets, load_ui_settings

FPS = 30
# Ear pushed 0.08 forward of the shoulder: about 28 degrees off vertical at 640x480.
FORWARD_HEAD = {PL.LEFT_EAR: (0.58, 0.40)}


def _feed(session, frame, seconds, start=0.0, calibrate_first=False):
	outputs = []
	for i in range(int(seconds * FPS)):
		outputs.append(session.process_frame(frame, now=start + i / FPS, calibrate=calibrate_first and i == 0))
	return outputs


def test_no_pose_then_stalled(session):
	assert session.process_frame(None, now=0.0).status == PostureStatus.NO_POSE
	out = session.process_frame(None, now=10.5)
	assert out.status == PostureStatus.STALLED
	assert out.label == PostureLabel.UNDETECTED


def test_lost_pose_after_acquisition_is_not_stalled(session):
	session.process_frame(make_frame(), now=0.0)
	assert session.tracking
	out = session.process_frame(None, now=60.0)
	assert out.status == PostureStatus.NO_POSE
	assert not session.tracking


def test_uncalibrated_side_view_reports_angle_but_never_alerts(session):
	outputs = _feed(session, make_frame(FORWARD_HEAD), 5)
	last = outputs[-1]
	assert last.label == PostureLabel.NOT_CALIBRATED
	assert last.can_calibrate and not last.calibrated
	assert last.deviation == pytest.approx(28.07, abs=0.05)
	assert last.angle_text == "28°"
	assert last.elbow_angle is not None
	assert all(o.alert is None for o in outputs)
	assert session.alerts.sustained_since is None


def test_calibration_applies_on_the_same_frame(session):
	out = session.process_frame(make_frame(), now=0.0, calibrate=True)
	assert out.calibrated
	assert out.label == PostureLabel.GOOD
	assert out.feedback == fb.GOOD_POSTURE
	assert out.side == TrackedSide.LEFT
	assert out.confidence.ear == pytest.approx(0.9)


def test_forward_head_fires_exactly_one_alert_in_three_seconds(session):
	outputs = _feed(session, make_frame(FORWARD_HEAD), 3, calibrate_first=True)
	alerts = [o.alert for o in outputs if o.alert is not None]
	assert len(alerts) == 1
	assert alerts[0].fired_at == pytest.approx(2.0, abs=1.0 / FPS)
	assert alerts[0].deviation > 18.0


def test_disabled_sound_suppresses_alerts(session):
	session.set_sound_config(SoundConfig(enabled=False))
	outputs = _feed(session, make_frame(FORWARD_HEAD), 4, calibrate_first=True)
	assert all(o.alert is None for o in outputs)


def test_bad_posture_notification_after_sustained_frames(session):
	session.process_frame(make_frame(), now=0.0, calibrate=True)
	bent = make_frame({PL.LEFT_EAR: (0.56, 0.45)})
	notes = []
	for i in range(1, 61):
		out = session.process_frame(bent, now=i / FPS)
		assert out.label == PostureLabel.NEEDS_IMPROVEMENT
		assert fb.RAISE_HEAD in out.feedback
		notes.append(out.notification)
	assert notes[:-1] == [None] * 59
	assert notes[-1] == fb.FIX_POSTURE


def test_view_mode_change_resets_session(session):
	session.process_frame(make_frame(), now=0.0, calibrate=True)
	session.set_view_mode(ViewMode.FRONT)
	assert not session.calibration.calibrated
	assert session.deviation.smoothed is None

	out = session.process_frame(make_frame(), now=1.0)
	assert out.view_mode == ViewMode.FRONT
	assert out.label == PostureLabel.NOT_CALIBRATED

	out = session.process_frame(make_frame(), now=1.1, calibrate=True)
	assert out.label == PostureLabel.GOOD
	assert out.front.shoulders_level

	out = session.process_frame(make_frame({PL.LEFT_SHOULDER: (0.5, 0.66)}), now=1.2)
	assert fb.RAISE_LEFT_SHOULDER in out.feedback
	assert out.alert is None


def test_tracking_loss_resets_filters(session):
	session.process_frame(make_frame(), now=0.0)
	assert session.stabilizer.get(Joint.SHOULDER) is not None
	session.process_frame(None, now=0.1)
	assert session.stabilizer.get(Joint.SHOULDER) is None
	assert session.deviation.smoothed is None


def test_reset_discards_everything(session):
	_feed(session, make_frame(FORWARD_HEAD), 3, calibrate_first=True)
	session.reset()
	assert not session.calibration.calibrated
	assert session.alerts.last_fired is None
	assert session.stabilizer.get(Joint.SHOULDER) is None
	assert session.bad_posture_frames == 0


def test_pointer_drag_moves_joint_and_persists(cfg, store):
	session = PostureSession(cfg=cfg, store=store)
	session.process_frame(make_frame(), now=0.0)

	# Shoulder is drawn at (320, 288) on a 640x480 display.
	assert session.pointer_down(PointerPosition(322, 290, 640, 480)) == Joint.SHOULDER
	assert session.pointer_move(PointerPosition(352, 288, 640, 480)) == Joint.SHOULDER
	session.pointer_up()
	assert session.offsets.active is None
	assert session.offsets.offset(Joint.SHOULDER).dx == pytest.approx(0.05)

	out = session.process_frame(make_frame(), now=0.1)
	assert out.points[Joint.SHOULDER].x == pytest.approx(0.55)
	assert load_offsets(store, cfg.offsets.limit)[Joint.SHOULDER].dx == pytest.approx(0.05)


def test_pointer_far_from_any_joint_is_ignored(session):
	session.process_frame(make_frame(), now=0.0)
	assert session.pointer_down(PointerPosition(20, 20, 640, 480)) is None


def test_pointer_is_ignored_in_front_view(session):
	session.set_view_mode(ViewMode.FRONT)
	session.process_frame(make_frame(), now=0.0)
	assert session.pointer_down(PointerPosition(320, 288, 640, 480)) is None


def test_settings_are_persisted(cfg, store):
	session = PostureSession(cfg=cfg, store=store)
	session.set_sound_config(SoundConfig(enabled=True, angle_threshold=30.0, duration_seconds=4.0))
	assert load_ui_settings(store).sound.angle_threshold == 30.0


def test_frame_output_is_json_serializable(session):
	outputs = _feed(session, make_frame(FORWARD_HEAD), 3, calibrate_first=True)
	fired = next(o for o in outputs if o.alert is not None)
	body = json.loads(json.dumps(fired.to_dict()))
	assert body["alert"]["tone"]["waveform"] == "sine"
	assert body["points"]["ear"]["x"] == pytest.approx(0.58)


def test_recalibration_on_other_side_is_good_on_that_frame(session):
	session.process_frame(make_frame(), now=0.0, calibrate=True)
	for i in range(1, 5):
		session.process_frame(make_frame(), now=i / FPS)

	right_visible = make_frame({PL.LEFT_EAR: (0.50, 0.40, 0.55), PL.LEFT_SHOULDER: (0.50, 0.60, 0.65)})
	out = session.process_frame(right_visible, now=5 / FPS, calibrate=True)
	assert out.side == TrackedSide.RIGHT
	assert out.confidence.side == TrackedSide.RIGHT
	assert out.label == PostureLabel.GOOD
	assert out.feedback == fb.GOOD_POSTURE
	assert not out.bad_posture
	assert session.bad_posture_frames == 0
	assert out.points[Joint.SHOULDER].x == pytest.approx(0.40)


def test_same_side_recalibration_keeps_filters_and_clears_bad_count(cfg):
	calibrated = PostureSession(cfg=cfg)
	control = PostureSession(cfg=cfg)
	bent = make_frame({PL.LEFT_EAR: (0.56, 0.45)})
	for s in (calibrated, control):
		s.process_frame(make_frame(), now=0.0, calibrate=True)
		for i in range(1, 6):
			s.process_frame(bent, now=i / FPS)
	assert calibrated.bad_posture_frames == 5

	calibrated.process_frame(bent, now=6 / FPS, calibrate=True)
	control.process_frame(bent, now=6 / FPS)

	assert calibrated.bad_posture_frames == 0
	assert control.bad_posture_frames == 6
	assert calibrated.stabilizer.get(Joint.SHOULDER) == control.stabilizer.get(Joint.SHOULDER)
	assert calibrated.deviation.smoothed == pytest.approx(control.deviation.smoothed)
	assert calibrated.deviation.smoothed is not None
