"""Signature codec: raw capture -> SignatureData -> resolution-independent drawing.

Drawn payloads are stored as compact JSON arrays of strokes. Normalization is
strict (invalid input raises EmptySignatureError); rendering is lenient and
falls back to a neutral placeholder instead of raising.
"""

import json
import logging
import math
import re
from dataclasses import dataclass, field
from typing import Any

from pydantic import ValidationError

from backend.esign.models.common import SignatureKind
from backend.esign.models.signature import (
    DrawnSignatureInput,
    SignatureData,
    SignaturePoint,
    TypedSignatureInput,
)
from backend.esign.signing.errors import EmptySignatureError

logger = logging.getLogger(__name__)

DEFAULT_FONT_FAMILY = "Dancing Script, cursive"
DEFAULT_COLOR = "#000000"
PLACEHOLDER_TEXT = "Chưa ký"
PLACEHOLDER_COLOR = "#9ca3af"
PLACEHOLDER_FONT_FAMILY = "sans-serif"

FIT_RATIO = 0.8
STROKE_WIDTH = 2.0
DOT_RADIUS = 2.0
TYPED_FONT_SIZE = 32.0
PLACEHOLDER_FONT_SIZE = 14.0

# Capture surfaces are a few thousand px; larger coordinates are garbage
MAX_COORDINATE = 1e6


@dataclass(frozen=True)
class StrokePath:
    """Straight-segment polyline through ``points`` (top-left origin)."""

    points: tuple[tuple[float, float], ...]
    color: str
    width: float = STROKE_WIDTH


@dataclass(frozen=True)
class Dot:
    x: float
    y: float
    color: str
    radius: float = DOT_RADIUS


@dataclass(frozen=True)
class TextLabel:
    """Text centered on (x, y)."""

    text: str
    x: float
    y: float
    font_family: str
    font_size: float
    color: str


DrawOp = StrokePath | Dot | TextLabel


@dataclass(frozen=True)
class SignatureDrawing:
    """Drawing sized to a target box; renderers only replay ``ops``."""

    width: float
    height: float
    ops: tuple[DrawOp, ...] = field(default_factory=tuple)
    is_placeholder: bool = False


# ---------------------------------------------------------------------------
# Normalization
# ---------------------------------------------------------------------------


def _finite(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    value = float(value)
    return value if math.isfinite(value) else None


def _coordinate(value: Any) -> float | None:
    value = _finite(value)
    if value is None or abs(value) > MAX_COORDINATE:
        return None
    return value


def _clean_point(raw: Any) -> dict[str, Any] | None:
    if isinstance(raw, SignaturePoint):
        raw = {"x": raw.x, "y": raw.y, "t": raw.t, "color": raw.color}
    if not isinstance(raw, dict):
        return None

    x = _coordinate(raw.get("x"))
    y = _coordinate(raw.get("y"))
    if x is None or y is None:
        return None

    point: dict[str, Any] = {"x": x, "y": y}
    t = _finite(raw.get("t", raw.get("time")))
    if t is not None:
        point["t"] = t
    color = raw.get("color")
    if isinstance(color, str) and color.strip():
        point["color"] = color.strip()
    return point


def _clean_strokes(raw_strokes: Any) -> list[list[dict[str, Any]]]:
    """Drop non-finite or out-of-range points and empty strokes, preserving order.

    A flat list of points is treated as a single stroke.
    """
    if not isinstance(raw_strokes, list):
        return []
    if raw_strokes and all(isinstance(p, (dict, SignaturePoint)) for p in raw_strokes):
        raw_strokes = [raw_strokes]

    strokes: list[list[dict[str, Any]]] = []
    for raw_stroke in raw_strokes:
        if not isinstance(raw_stroke, list):
            continue
        stroke = [p for p in (_clean_point(raw) for raw in raw_stroke) if p is not None]
        if stroke:
            strokes.append(stroke)
    return strokes


def _decode_payload(payload: str) -> Any:
    try:
        return json.loads(payload)
    except (json.JSONDecodeError, TypeError):
        return None


def _encode_strokes(strokes: list[list[dict[str, Any]]]) -> str:
    return json.dumps(strokes, separators=(",", ":"), ensure_ascii=False)


def _coerce(raw: Any) -> SignatureData | DrawnSignatureInput | TypedSignatureInput:
    if isinstance(raw, (SignatureData, DrawnSignatureInput, TypedSignatureInput)):
        return raw
    if not isinstance(raw, dict):
        raise EmptySignatureError(f"Unsupported signature input: {type(raw).__name__}")

    try:
        if "strokes" in raw:
            return DrawnSignatureInput.model_validate(raw)
        if "text" in raw:
            return TypedSignatureInput.model_validate(raw)
        # Legacy wire shape uses type/data instead of kind/payload
        data = dict(raw)
        if "kind" not in data and "type" in data:
            data["kind"] = data.pop("type")
        if "payload" not in data and "data" in data:
            data["payload"] = data.pop("data")
        return SignatureData.model_validate(data)
    except ValidationError as e:
        raise EmptySignatureError(f"Malformed signature: {e.errors()[0]['msg']}") from e


def normalize(raw: Any) -> SignatureData:
    """Validate raw capture and convert it to canonical SignatureData.

    Args:
        raw: SignatureData, DrawnSignatureInput, TypedSignatureInput, or a dict
            in any of their wire shapes (including legacy ``{type, data}``)

    Returns:
        Canonical SignatureData; normalizing its output again is a no-op

    Raises:
        EmptySignatureError: If nothing drawable or readable remains
    """
    value = _coerce(raw)

    if isinstance(value, TypedSignatureInput):
        value = SignatureData(
            kind=SignatureKind.typed,
            payload=value.text,
            font_family=value.font_family,
            color=value.color,
        )
    elif isinstance(value, DrawnSignatureInput):
        strokes = _clean_strokes(value.strokes)
        if not strokes:
            raise EmptySignatureError("Signature has no drawable strokes")
        return SignatureData(
            kind=SignatureKind.draw,
            payload=_encode_strokes(strokes),
            color=value.color,
        )

    if value.kind == SignatureKind.typed:
        text = value.payload.strip()
        if not text:
            raise EmptySignatureError("Typed signature is blank")
        return SignatureData(
            kind=SignatureKind.typed,
            payload=text,
            font_family=value.font_family,
            color=value.color,
        )

    strokes = _clean_strokes(_decode_payload(value.payload))
    if not strokes:
        raise EmptySignatureError("Signature has no drawable strokes")
    return SignatureData(
        kind=SignatureKind.draw,
        payload=_encode_strokes(strokes),
        font_family=value.font_family,
        color=value.color,
    )


def is_valid(raw: Any) -> bool:
    """Check whether ``raw`` would normalize without error."""
    try:
        normalize(raw)
    except EmptySignatureError:
        return False
    return True


def decode_strokes(signature: SignatureData) -> list[list[dict[str, Any]]]:
    """Return cleaned strokes of a draw signature (empty for typed or malformed)."""
    if signature.kind != SignatureKind.draw:
        return []
    return _clean_strokes(_decode_payload(signature.payload))


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------


def placeholder(width: float, height: float) -> SignatureDrawing:
    """Neutral "not signed" drawing."""
    label = TextLabel(
        text=PLACEHOLDER_TEXT,
        x=width / 2,
        y=height / 2,
        font_family=PLACEHOLDER_FONT_FAMILY,
        font_size=min(PLACEHOLDER_FONT_SIZE, height * 0.3),
        color=PLACEHOLDER_COLOR,
    )
    return SignatureDrawing(width=width, height=height, ops=(label,), is_placeholder=True)


def _render_typed(signature: SignatureData, width: float, height: float) -> SignatureDrawing:
    text = signature.payload.strip()
    if not text:
        return placeholder(width, height)
    label = TextLabel(
        text=text,
        x=width / 2,
        y=height / 2,
        font_family=signature.font_family or DEFAULT_FONT_FAMILY,
        font_size=min(TYPED_FONT_SIZE, height * 0.4),
        color=signature.color or DEFAULT_COLOR,
    )
    return SignatureDrawing(width=width, height=height, ops=(label,))


def _render_drawn(signature: SignatureData, width: float, height: float) -> SignatureDrawing:
    strokes = decode_strokes(signature)
    if not strokes:
        return placeholder(width, height)

    xs = [p["x"] for stroke in strokes for p in stroke]
    ys = [p["y"] for stroke in strokes for p in stroke]
    min_x, max_x = min(xs), max(xs)
    min_y, max_y = min(ys), max(ys)
    box_w = max_x - min_x
    box_h = max_y - min_y
    base_color = signature.color or DEFAULT_COLOR

    if box_w == 0 and box_h == 0:
        dot = Dot(x=width / 2, y=height / 2, color=strokes[0][0].get("color", base_color))
        return SignatureDrawing(width=width, height=height, ops=(dot,))

    # Zero extent on one axis scales by the other
    scales = []
    if box_w > 0:
        scales.append(width * FIT_RATIO / box_w)
    if box_h > 0:
        scales.append(height * FIT_RATIO / box_h)
    scale = min(scales)

    offset_x = (width - box_w * scale) / 2 - min_x * scale
    offset_y = (height - box_h * scale) / 2 - min_y * scale
    if not all(math.isfinite(v) for v in (box_w, box_h, scale, offset_x, offset_y)):
        return placeholder(width, height)

    ops: list[DrawOp] = []
    for stroke in strokes:
        color = stroke[0].get("color", base_color)
        points = tuple((p["x"] * scale + offset_x, p["y"] * scale + offset_y) for p in stroke)
        if len(points) == 1:
            ops.append(Dot(x=points[0][0], y=points[0][1], color=color))
        else:
            ops.append(StrokePath(points=points, color=color))
    return SignatureDrawing(width=width, height=height, ops=tuple(ops))


def render(
    signature: SignatureData | None, target_width: float = 200, target_height: float = 80
) -> SignatureDrawing:
    """Lay a signature out inside a target box.

    Never raises: missing, empty or malformed signatures render as the
    placeholder.

    Args:
        signature: Stored signature, or None for an unsigned slot
        target_width: Box width in output units
        target_height: Box height in output units

    Returns:
        SignatureDrawing with coordinates relative to the box's top-left corner
    """
    if signature is None:
        return placeholder(target_width, target_height)
    if signature.kind == SignatureKind.typed:
        return _render_typed(signature, target_width, target_height)
    drawing = _render_drawn(signature, target_width, target_height)
    if drawing.is_placeholder:
        logger.debug("[codec] draw payload had no finite points, rendering placeholder")
    return drawing


# ---------------------------------------------------------------------------
# Colors
# ---------------------------------------------------------------------------

_HEX_RE = re.compile(r"^#([0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")
_RGB_RE = re.compile(r"^rgba?\(\s*(\d{1,3})\s*,\s*(\d{1,3})\s*,\s*(\d{1,3})\s*(?:,\s*[\d.]+\s*)?\)$")


def parse_color(value: str | None) -> tuple[int, int, int]:
    """Parse ``#rgb``, ``#rrggbb`` or ``rgb(r, g, b)``; anything else is black."""
    if not value:
        return (0, 0, 0)
    value = value.strip()

    match = _HEX_RE.match(value)
    if match:
        digits = match.group(1)
        if len(digits) == 3:
            digits = "".join(c * 2 for c in digits)
        return (int(digits[0:2], 16), int(digits[2:4], 16), int(digits[4:6], 16))

    match = _RGB_RE.match(value)
    if match:
        r, g, b = (min(255, int(part)) for part in match.groups())
        return (r, g, b)

    return (0, 0, 0)
