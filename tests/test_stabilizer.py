import pytest

from modules.config import StabilizerConfig
from modules.pose.types import Joint, Landmark, Point
from modules.posture.stabilizer import LandmarkStabilizer, stabilize_point

CFG = StabilizerConfig()
W, H = 640, 480


def test_first_visible_sample_is_adopted():
	out = stabilize_point(None, Landmark(0.3, 0.4, 0.9), W, H, CFG.shoulder)
	assert out == Point(0.3, 0.4)


def test_low_visibility_sample_is_ignored():
	assert stabilize_point(None, Landmark(0.3, 0.4, 0.2), W, H, CFG.shoulder) is None
	prev = Point(0.5, 0.5)
	assert stabilize_point(prev, Landmark(0.9, 0.9, 0.59), W, H, CFG.shoulder) is prev


def test_absent_sample_keeps_previous_point():
	prev = Point(0.5, 0.5)
	assert stabilize_point(prev, None, W, H, CFG.wrist) is prev


def test_missing_visibility_counts_as_visible():
	assert stabilize_point(None, Landmark(0.2, 0.2), W, H, CFG.shoulder) == Point(0.2, 0.2)


def test_jitter_inside_deadzone_is_held_exactly():
	prev = Point(0.50, 0.50)
	out = stabilize_point(prev, Landmark(0.501, 0.502, 0.9), W, H, CFG.shoulder)
	assert out == prev


@pytest.mark.parametrize("joint_cfg", [CFG.shoulder, CFG.elbow, CFG.wrist])
def test_any_displacement_below_deadzone_never_drifts(joint_cfg):
	prev = Point(0.4, 0.6)
	limit = joint_cfg.deadzone_px * 0.99
	for fx, fy in [(1, 0), (0, 1), (-0.7, 0.7), (0.6, -0.8), (-1, 0)]:
		raw = Landmark(prev.x + fx * limit / W, prev.y + fy * limit / H, 0.95)
		assert stabilize_point(prev, raw, W, H, joint_cfg) == prev


def test_soft_zone_uses_gentle_factor():
	prev = Point(0.5, 0.5)
	# 10 px to the right: past the 3 px deadzone, inside the 12 px soft zone.
	raw = Landmark(0.5 + 10 / W, 0.5, 0.9)
	out = stabilize_point(prev, raw, W, H, CFG.shoulder)
	assert out.x == pytest.approx(0.5 + CFG.shoulder.soft_alpha * 10 / W)
	assert out.y == pytest.approx(0.5)


def test_large_move_uses_fast_factor():
	prev = Point(0.5, 0.5)
	raw = Landmark(0.6, 0.5, 0.9)
	out = stabilize_point(prev, raw, W, H, CFG.shoulder)
	assert out.x == pytest.approx(0.5 + CFG.shoulder.fast_alpha * 0.1)


def test_sub_pixel_residual_snaps_back():
	prev = Point(0.5, 0.5)
	# 3.5 px * 0.12 = 0.42 px of movement, below the 0.6 px snap threshold.
	raw = Landmark(0.5 + 3.5 / W, 0.5, 0.9)
	assert stabilize_point(prev, raw, W, H, CFG.shoulder) == prev


def test_wrist_responds_faster_than_shoulder():
	stab = LandmarkStabilizer(CFG)
	start = Landmark(0.5, 0.5, 0.9)
	moved = Landmark(0.6, 0.5, 0.9)
	for joint in (Joint.SHOULDER, Joint.WRIST):
		stab.update(joint, start, W, H)
		stab.update(joint, moved, W, H)
	assert stab.get(Joint.WRIST).x > stab.get(Joint.SHOULDER).x


def test_converges_toward_a_held_target():
	stab = LandmarkStabilizer(CFG)
	stab.update(Joint.SHOULDER, Landmark(0.5, 0.5, 0.9), W, H)
	target = Landmark(0.7, 0.5, 0.9)
	for _ in range(60):
		stab.update(Joint.SHOULDER, target, W, H)
	settled = stab.get(Joint.SHOULDER)
	# Settles close to the target and then stops moving instead of creeping forever.
	assert abs(settled.x - 0.7) * W <= max(CFG.shoulder.deadzone_px, CFG.snap_px / CFG.shoulder.soft_alpha)
	assert stab.update(Joint.SHOULDER, target, W, H) == settled


def test_reset_clears_every_joint():
	stab = LandmarkStabilizer(CFG)
	for joint in stab.joints:
		stab.update(joint, Landmark(0.5, 0.5, 0.9), W, H)
	stab.reset()
	assert all(stab.get(j) is None for j in stab.joints)
