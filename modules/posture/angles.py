from __future__ import annotations

import math
from typing import Optional

from modules.config import AngleConfig
from modules.pose.types import Point


def vertical_deviation_deg(shoulder: Point, ear: Point, width: float, height: float, eps: float = 1e-4) -> float:
	"""
	Angle (deg) between the shoulder->ear segment and the vertical, in pixel space.

	0 means the ear sits straight above the shoulder.
	"""
	dx = (ear.x - shoulder.x) * float(width)
	dy = (shoulder.y - ear.y) * float(height)
	return math.degrees(math.atan2(abs(dx), max(abs(dy), eps)))


def joint_angle_deg(a: Point, b: Point, c: Point, width: float = 1.0, height: float = 1.0) -> Optional[float]:
	"""Interior angle ABC (deg), or None if either arm is degenerate."""
	bax = (a.x - b.x) * float(width)
	bay = (a.y - b.y) * float(height)
	bcx = (c.x - b.x) * float(width)
	bcy = (c.y - b.y) * float(height)
	nba = math.hypot(bax, bay)
	nbc = math.hypot(bcx, bcy)
	if nba < 1e-9 or nbc < 1e-9:
		return None
	cosang = (bax * bcx + bay * bcy) / (nba * nbc)
	return math.degrees(math.acos(max(-1.0, min(1.0, cosang))))


def quantize(value: float, step: int) -> int:
	# Round half up onto the step grid (no banker's rounding).
	return int(math.floor(value / step + 0.5)) * step


class AngleTracker:
	"""
	Secondary smoothing + display hysteresis for an angle readout.

	`smoothed` keeps full precision for decisions; `displayed` only moves onto
	a new `display_step` grid value when it differs from the current one by at
	least one step.
	"""

	def __init__(self, cfg: Optional[AngleConfig] = None) -> None:
		self.cfg = cfg or AngleConfig()
		self.smoothed: Optional[float] = None
		self.displayed: Optional[int] = None

	def update(self, raw: Optional[float]) -> Optional[float]:
		if raw is None:
			self.reset()
			return None
		if self.smoothed is None:
			self.smoothed = float(raw)
		else:
			self.smoothed = self.smoothed + self.cfg.smoothing_alpha * (float(raw) - self.smoothed)
		self.displayed = self.display(self.smoothed)
		return self.smoothed

	def display(self, smoothed: float) -> int:
		step = max(1, int(self.cfg.display_step))
		candidate = quantize(smoothed, step)
		if self.displayed is None or abs(candidate - self.displayed) >= step:
			return candidate
		return self.displayed

	@property
	def text(self) -> str:
		return f"{self.displayed}°" if self.displayed is not None else ""

	def reset(self) -> None:
		self.smoothed = None
		self.displayed = None
