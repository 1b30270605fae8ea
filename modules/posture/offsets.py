from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Dict, Mapping, Optional

from modules.config import OffsetConfig
from modules.pose.types import Joint, Point
from modules.posture.storage import JsonStateStore, PointOffset, load_offsets, save_offsets, zero_offsets

logger = logging.getLogger(__name__)


def clamp(value: float, lo: float, hi: float) -> float:
	return min(hi, max(lo, float(value)))


def apply_offset(point: Optional[Point], offset: Optional[PointOffset]) -> Optional[Point]:
	"""Translate `point` by `offset`, clamping each axis to [0, 1]."""
	if point is None:
		return None
	if offset is None:
		return point
	return Point(clamp(point.x + offset.dx, 0.0, 1.0), clamp(point.y + offset.dy, 0.0, 1.0))


@dataclass(frozen=True)
class PointerPosition:
	"""
	A pointer position relative to the displayed frame.

	`x`/`y` are pixels from the top-left of the display surface and
	`width`/`height` its size on screen.
	"""

	x: float
	y: float
	width: float
	height: float

	@classmethod
	def from_client(cls, client_x: float, client_y: float, left: float, top: float, width: float, height: float) -> "PointerPosition":
		return cls(x=float(client_x) - float(left), y=float(client_y) - float(top), width=float(width), height=float(height))

	def normalized(self) -> Point:
		w = self.width if self.width > 0 else 1.0
		h = self.height if self.height > 0 else 1.0
		return Point(clamp(self.x / w, 0.0, 1.0), clamp(self.y / h, 0.0, 1.0))


class OffsetCalibrator:
	"""
	Per-joint manual correction vectors, edited by dragging a joint on screen.

	The frame pipeline reports each frame's raw landmark positions and the
	drawn anchor positions through `observe()`. Offsets are stored relative to
	the raw landmark, so a drag result does not depend on filter lag.
	"""

	def __init__(self, cfg: Optional[OffsetConfig] = None, store: Optional[JsonStateStore] = None) -> None:
		self.cfg = cfg or OffsetConfig()
		self.store = store
		self._offsets: Dict[Joint, PointOffset] = (
			load_offsets(store, self.cfg.limit) if store is not None else zero_offsets()
		)
		self._raw: Dict[Joint, Point] = {}
		self._anchors: Dict[Joint, Point] = {}
		self.active: Optional[Joint] = None

	@property
	def offsets(self) -> Dict[Joint, PointOffset]:
		return dict(self._offsets)

	def offset(self, joint: Joint) -> PointOffset:
		return self._offsets.get(joint, PointOffset())

	def apply(self, point: Optional[Point], joint: Joint) -> Optional[Point]:
		return apply_offset(point, self._offsets.get(joint))

	def observe(self, raw: Mapping[Joint, Optional[Point]], anchors: Mapping[Joint, Optional[Point]]) -> None:
		"""Record this frame's raw landmarks and drawn (visible, offset-applied) anchors."""
		self._raw = {j: p for j, p in raw.items() if p is not None}
		self._anchors = {j: p for j, p in anchors.items() if p is not None}

	def clear_observations(self) -> None:
		self._raw = {}
		self._anchors = {}
		self.active = None

	def begin_drag(self, pointer: PointerPosition) -> Optional[Joint]:
		"""Start dragging the anchor nearest to `pointer` if it lies within the hit radius."""
		nearest: Optional[Joint] = None
		nearest_dist = math.inf
		for joint, anchor in self._anchors.items():
			ax, ay = anchor.to_px(pointer.width, pointer.height)
			d = math.hypot(pointer.x - ax, pointer.y - ay)
			if d < nearest_dist:
				nearest, nearest_dist = joint, d
		if nearest is None or nearest_dist > self.cfg.hit_radius_px:
			return None
		self.active = nearest
		logger.info("[Offsets] drag start: %s (%.1f px from pointer)", nearest.value, nearest_dist)
		self.update_drag(pointer)
		return nearest

	def update_drag(self, pointer: PointerPosition) -> Optional[PointOffset]:
		joint = self.active
		if joint is None:
			return None
		base = self._raw.get(joint)
		if base is None:
			return None
		target = pointer.normalized()
		limit = self.cfg.limit
		new = PointOffset(
			dx=clamp(target.x - base.x, -limit, limit),
			dy=clamp(target.y - base.y, -limit, limit),
		)
		self._offsets[joint] = new
		self._persist()
		return new

	def end_drag(self) -> None:
		if self.active is not None:
			logger.info("[Offsets] drag end: %s -> %r", self.active.value, self._offsets[self.active])
		self.active = None

	def reset(self) -> None:
		self._offsets = zero_offsets()
		self.active = None
		self._persist()

	def _persist(self) -> None:
		if self.store is None:
			return
		save_offsets(self.store, self._offsets)
