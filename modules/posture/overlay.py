from __future__ import annotations

import io
from typing import Optional, Tuple

from PIL import Image, ImageDraw

from modules.pose.types import Joint

LANDMARK_COLORS = {
	Joint.EAR: "#ffd166",
	Joint.SHOULDER: "#7bffb2",
	Joint.ELBOW: "#66c2ff",
	Joint.WRIST: "#ff8fab",
}
POINT_RADIUS = {Joint.EAR: 3, Joint.SHOULDER: 4, Joint.ELBOW: 4, Joint.WRIST: 4}
ANGLE_LINE_COLOR = "#f8f9fa"
ANGLE_TEXT_COLOR = "#f8f9fa"


def _base_image(image: Optional[bytes], size: Tuple[int, int]) -> Image.Image:
	if image:
		img = Image.open(io.BytesIO(image))
		return img.convert("RGB")
	w = max(1, int(size[0]))
	h = max(1, int(size[1]))
	return Image.new("RGB", (w, h), (0, 0, 0))


def compose_snapshot(output, image: Optional[bytes] = None, quality: int = 85) -> bytes:
	"""
	Draw the frame's tracked points, ear-shoulder line and angle text onto
	`image` (a JPEG/PNG payload) and return JPEG bytes.

	Without an image the overlay is drawn onto a black canvas of the frame size.
	"""
	img = _base_image(image, (output.width, output.height))
	w, h = img.size
	draw = ImageDraw.Draw(img)

	ear = output.points.get(Joint.EAR)
	shoulder = output.points.get(Joint.SHOULDER)
	if ear is not None and shoulder is not None:
		ex, ey = ear.to_px(w, h)
		sx, sy = shoulder.to_px(w, h)
		draw.line([(sx, sy), (ex, ey)], fill=ANGLE_LINE_COLOR, width=2)
		if output.angle_text:
			draw.text(((sx + ex) / 2 + 8, (sy + ey) / 2 - 8), output.angle_text, fill=ANGLE_TEXT_COLOR)

	for joint, point in output.points.items():
		x, y = point.to_px(w, h)
		r = POINT_RADIUS.get(joint, 4)
		draw.ellipse([x - r, y - r, x + r, y + r], fill=LANDMARK_COLORS.get(joint, "#ffffff"))

	buf = io.BytesIO()
	img.save(buf, format="JPEG", quality=int(quality))
	return buf.getvalue()
