"""Pydantic request body models for the posture endpoints."""
from typing import List, Literal, Optional

from pydantic import BaseModel, Field


class LandmarkPayload(BaseModel):
	"""One normalized landmark as produced by the detector."""

	x: float
	y: float
	visibility: Optional[float] = Field(None, ge=0.0, le=1.0, description="Detector confidence; omit if unknown")


class FramePayload(BaseModel):
	"""Request body for POST /posture/frame. Empty/omitted landmarks mean 'no pose detected'."""

	landmarks: Optional[List[LandmarkPayload]] = Field(None, description="33 landmarks in MediaPipe Pose order")
	width: int = Field(..., gt=0, description="Frame width in pixels")
	height: int = Field(..., gt=0, description="Frame height in pixels")
	t: Optional[float] = Field(None, description="Frame timestamp (epoch seconds); server time if omitted")
	calibrate: bool = Field(False, description="Capture this frame as the baseline pose")
	image_b64: Optional[str] = Field(None, description="Base64 JPEG of the frame, used for alert snapshots")


class ImagePayload(BaseModel):
	"""Request body for POST /posture/image. The server runs pose detection itself."""

	image_b64: str = Field(..., min_length=1, description="Base64 JPEG/PNG frame")
	t: Optional[float] = None
	calibrate: bool = False


class SoundConfigPayload(BaseModel):
	enabled: bool = True
	angleThreshold: float = Field(18.0, ge=5.0, le=90.0)
	durationSeconds: float = Field(2.0, ge=1.0, le=60.0)


class SettingsPayload(BaseModel):
	"""Request body for PUT /posture/settings. Omitted fields keep their current value."""

	viewMode: Optional[Literal["side", "front"]] = None
	soundConfig: Optional[SoundConfigPayload] = None


class RectPayload(BaseModel):
	left: float = 0.0
	top: float = 0.0
	width: float = Field(..., gt=0)
	height: float = Field(..., gt=0)


class PointerPayload(BaseModel):
	"""Request body for POST /posture/pointer. Client coordinates plus the display rect."""

	kind: Literal["down", "move", "up", "cancel"]
	client_x: float = 0.0
	client_y: float = 0.0
	rect: Optional[RectPayload] = None
