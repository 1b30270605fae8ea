from __future__ import annotations

import itertools
from collections import deque
from dataclasses import dataclass
from typing import Deque, List, Optional


@dataclass(frozen=True)
class Snapshot:
	id: int
	image: bytes
	created_at: float
	content_type: str = "image/jpeg"


class SnapshotBuffer:
	"""Most-recent-first, bounded, in-memory list of alert snapshots."""

	def __init__(self, max_items: int = 8) -> None:
		self.max_items = max(1, int(max_items))
		self._items: Deque[Snapshot] = deque(maxlen=self.max_items)
		self._ids = itertools.count(1)

	def push(self, snapshot: Snapshot) -> Snapshot:
		# appendleft on a bounded deque drops from the right (the oldest).
		self._items.appendleft(snapshot)
		return snapshot

	def add(self, image: bytes, created_at: float, content_type: str = "image/jpeg") -> Snapshot:
		return self.push(Snapshot(id=next(self._ids), image=image, created_at=float(created_at), content_type=content_type))

	def get(self, snapshot_id: int) -> Optional[Snapshot]:
		return next((s for s in self._items if s.id == snapshot_id), None)

	def items(self) -> List[Snapshot]:
		return list(self._items)

	def clear(self) -> None:
		self._items.clear()

	def __len__(self) -> int:
		return len(self._items)
