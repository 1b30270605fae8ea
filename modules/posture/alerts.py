from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional

from modules.config import AlertConfig
from modules.posture.storage import SoundConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ToneRequest:
	frequency_hz: float
	volume: float
	duration_s: float
	waveform: str = "sine"


@dataclass(frozen=True)
class AlertEvent:
	fired_at: float
	deviation: float
	severity: float
	tone: ToneRequest
	capture_snapshot: bool = True

	def to_dict(self) -> Dict[str, Any]:
		return asdict(self)


def severity_for(deviation: float, threshold: float, span_deg: float = 20.0) -> float:
	"""Linear 0..1 ramp of overshoot past `threshold`, saturating `span_deg` beyond it."""
	return max(0.0, min(1.0, (float(deviation) - float(threshold)) / float(span_deg)))


def tone_for(severity: float, cfg: Optional[AlertConfig] = None) -> ToneRequest:
	c = cfg or AlertConfig()
	s = max(0.0, min(1.0, float(severity)))
	return ToneRequest(
		frequency_hz=c.tone_base_hz + s * c.tone_span_hz,
		volume=c.tone_base_volume + s * c.tone_span_volume,
		duration_s=c.tone_duration_seconds,
	)


class AlertStateMachine:
	"""
	Sustained-threshold alerting with a cooldown.

	The sustain timer and the last-fired time are independent: an alert can
	only fire once the deviation has stayed above threshold for the configured
	duration AND the cooldown since the previous alert has elapsed. Any frame
	at or below threshold (or with alerting off / no deviation) restarts the
	sustain timer.
	"""

	def __init__(self, cfg: Optional[AlertConfig] = None) -> None:
		self.cfg = cfg or AlertConfig()
		self.sustained_since: Optional[float] = None
		self.last_fired: Optional[float] = None

	def update(self, deviation: Optional[float], sound: SoundConfig, now: float) -> Optional[AlertEvent]:
		if deviation is None or not sound.enabled:
			self.sustained_since = None
			return None

		if deviation <= sound.angle_threshold:
			self.sustained_since = None
			return None

		if self.sustained_since is None:
			self.sustained_since = now

		sustained = now - self.sustained_since
		cooled = self.last_fired is None or now - self.last_fired >= self.cfg.cooldown_seconds
		if sustained < sound.duration_seconds or not cooled:
			return None

		severity = severity_for(deviation, sound.angle_threshold, self.cfg.severity_span_deg)
		self.last_fired = now
		event = AlertEvent(
			fired_at=now,
			deviation=float(deviation),
			severity=severity,
			tone=tone_for(severity, self.cfg),
		)
		logger.info(
			"[Alert] deviation %.1f° > %.1f° for %.1fs, severity=%.2f",
			deviation,
			sound.angle_threshold,
			sustained,
			severity,
		)
		return event

	def clear_sustain(self) -> None:
		self.sustained_since = None

	def reset(self) -> None:
		self.sustained_since = None
		self.last_fired = None
