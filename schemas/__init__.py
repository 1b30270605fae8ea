"""Pydantic request/response models for API validation and docs."""
from schemas.requests import (
	FramePayload,
	ImagePayload,
	LandmarkPayload,
	PointerPayload,
	SettingsPayload,
	SoundConfigPayload,
)

__all__ = [
	"FramePayload",
	"ImagePayload",
	"LandmarkPayload",
	"PointerPayload",
	"SettingsPayload",
	"SoundConfigPayload",
]
