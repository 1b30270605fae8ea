from __future__ import annotations

import math
from typing import Dict, Optional

from modules.config import JointFilterConfig, StabilizerConfig
from modules.pose.types import Joint, Landmark, Point


def stabilize_point(
	prev: Optional[Point],
	raw: Optional[Landmark],
	width: float,
	height: float,
	cfg: JointFilterConfig,
	snap_px: float = 0.6,
) -> Optional[Point]:
	"""
	Advance one joint's stable point by a single raw sample.

	Low-visibility or absent samples leave `prev` untouched. Movement inside the
	deadzone is held exactly; beyond it a two-tier EMA is applied (gentle inside
	the soft zone, faster outside), and a sub-pixel residual after blending is
	snapped back to `prev` so the point does not creep forever.
	"""
	if raw is None:
		return prev
	if raw.visibility_or(1.0) < cfg.min_visibility:
		return prev
	if prev is None:
		return raw.point()

	w = float(width)
	h = float(height)
	delta_px = math.hypot((raw.x - prev.x) * w, (raw.y - prev.y) * h)
	if delta_px < cfg.deadzone_px:
		return prev

	alpha = cfg.soft_alpha if delta_px < cfg.soft_zone_px else cfg.fast_alpha
	nxt = Point(
		prev.x + alpha * (raw.x - prev.x),
		prev.y + alpha * (raw.y - prev.y),
	)
	moved_px = math.hypot((nxt.x - prev.x) * w, (nxt.y - prev.y) * h)
	if moved_px < snap_px:
		return prev
	return nxt


class LandmarkStabilizer:
	"""Owns one filter state per monitored joint (shoulder, elbow, wrist)."""

	def __init__(self, cfg: Optional[StabilizerConfig] = None) -> None:
		self.cfg = cfg or StabilizerConfig()
		self._profiles: Dict[Joint, JointFilterConfig] = {
			Joint.SHOULDER: self.cfg.shoulder,
			Joint.ELBOW: self.cfg.elbow,
			Joint.WRIST: self.cfg.wrist,
		}
		self._state: Dict[Joint, Optional[Point]] = {j: None for j in self._profiles}

	@property
	def joints(self):
		return tuple(self._profiles)

	def get(self, joint: Joint) -> Optional[Point]:
		return self._state.get(joint)

	def update(self, joint: Joint, raw: Optional[Landmark], width: float, height: float) -> Optional[Point]:
		profile = self._profiles[joint]
		nxt = stabilize_point(self._state[joint], raw, width, height, profile, self.cfg.snap_px)
		self._state[joint] = nxt
		return nxt

	def reset(self) -> None:
		for j in self._state:
			self._state[j] = None
