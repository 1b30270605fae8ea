"""Pydantic response models for API docs (optional; routes may return dicts)."""
from typing import Dict, List, Optional

from pydantic import BaseModel


class OffsetValue(BaseModel):
	x: float
	y: float


class PointerResponse(BaseModel):
	"""Response from POST /posture/pointer."""

	dragging: Optional[str] = None
	offsets: Dict[str, OffsetValue]


class SnapshotInfo(BaseModel):
	id: int
	created_at: float
	url: str


class SnapshotListResponse(BaseModel):
	"""Response from GET /posture/snapshots (most recent first)."""

	snapshots: List[SnapshotInfo]
