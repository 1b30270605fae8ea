from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from modules.pose.types import PoseFrame


class PoseProvider(ABC):
	"""
	Landmark source interface.

	Implementations take an RGB image (H,W,3 uint8) and return a PoseFrame, or
	None when no pose is detected in the image.
	"""

	@abstractmethod
	def name(self) -> str: ...

	@abstractmethod
	def infer_rgb(self, rgb, t_host: Optional[float] = None) -> Optional[PoseFrame]: ...

	@abstractmethod
	def close(self) -> None: ...
