"""Tests for signature normalization and rendering."""

import json
import math

import pytest

from backend.esign.models.common import SignatureKind
from backend.esign.models.signature import SignatureData
from backend.esign.signatures import codec
from backend.esign.signatures.codec import Dot, StrokePath, TextLabel
from backend.esign.signing.errors import EmptySignatureError


class TestNormalize:
    """Test codec.normalize."""

    def test_drawn_strokes_preserve_order(self) -> None:
        sig = codec.normalize(
            {"strokes": [[{"x": 1, "y": 2, "t": 0}, {"x": 3, "y": 4, "t": 5}], [{"x": 9, "y": 9}]]}
        )

        assert sig.kind == SignatureKind.draw
        assert json.loads(sig.payload) == [
            [{"x": 1.0, "y": 2.0, "t": 0.0}, {"x": 3.0, "y": 4.0, "t": 5.0}],
            [{"x": 9.0, "y": 9.0}],
        ]

    def test_time_alias_accepted(self) -> None:
        sig = codec.normalize({"strokes": [[{"x": 1, "y": 2, "time": 42}]]})

        assert json.loads(sig.payload)[0][0]["t"] == 42.0

    def test_normalize_is_idempotent(self) -> None:
        once = codec.normalize({"strokes": [[{"x": 1, "y": 2}, {"x": 5, "y": 6}]], "color": "#123"})
        twice = codec.normalize(once)

        assert twice == once
        assert codec.normalize(once.to_wire()) == once

    def test_one_empty_stroke_rejected(self) -> None:
        with pytest.raises(EmptySignatureError):
            codec.normalize({"kind": "draw", "payload": "[[]]"})

    def test_no_strokes_rejected(self) -> None:
        with pytest.raises(EmptySignatureError):
            codec.normalize({"strokes": []})

    def test_non_finite_points_dropped(self) -> None:
        sig = codec.normalize(
            {"kind": "draw", "payload": '[[{"x": 1, "y": 1}, {"x": "NaN", "y": 2}], [{"x": null, "y": 3}]]'}
        )

        assert json.loads(sig.payload) == [[{"x": 1.0, "y": 1.0}]]

    def test_all_non_finite_rejected(self) -> None:
        with pytest.raises(EmptySignatureError):
            codec.normalize(SignatureData(kind="draw", payload='[[{"x": "a", "y": 1}]]'))

    def test_out_of_range_points_dropped(self) -> None:
        sig = codec.normalize(
            {"strokes": [[{"x": -1e308, "y": 0}, {"x": 1e308, "y": 10}, {"x": 5, "y": 5}]]}
        )

        assert json.loads(sig.payload) == [[{"x": 5.0, "y": 5.0}]]

    def test_only_out_of_range_points_rejected(self) -> None:
        with pytest.raises(EmptySignatureError):
            codec.normalize({"strokes": [[{"x": -1e308, "y": 0}, {"x": 1e308, "y": 10}]]})

    def test_malformed_payload_rejected(self) -> None:
        with pytest.raises(EmptySignatureError):
            codec.normalize({"kind": "draw", "payload": "not json"})

    def test_typed_is_trimmed(self) -> None:
        sig = codec.normalize({"text": "  Nguyễn Văn A  "})

        assert sig.kind == SignatureKind.typed
        assert sig.payload == "Nguyễn Văn A"

    def test_blank_typed_rejected(self) -> None:
        with pytest.raises(EmptySignatureError):
            codec.normalize({"text": "   "})

    def test_legacy_type_data_shape(self) -> None:
        sig = codec.normalize({"type": "type", "data": "Trần B", "fontFamily": "Pacifico"})

        assert sig.kind == SignatureKind.typed
        assert sig.font_family == "Pacifico"

    def test_flat_point_list_is_one_stroke(self) -> None:
        sig = codec.normalize({"kind": "draw", "payload": '[{"x": 1, "y": 1}, {"x": 2, "y": 2}]'})

        assert len(json.loads(sig.payload)) == 1

    def test_unsupported_input_rejected(self) -> None:
        with pytest.raises(EmptySignatureError):
            codec.normalize("just a string")

    def test_is_valid(self) -> None:
        assert codec.is_valid({"text": "A"})
        assert not codec.is_valid({"text": ""})


class TestRender:
    """Test codec.render."""

    def test_none_renders_placeholder(self) -> None:
        drawing = codec.render(None, 200, 80)

        assert drawing.is_placeholder
        (label,) = drawing.ops
        assert isinstance(label, TextLabel)
        assert label.text == codec.PLACEHOLDER_TEXT

    def test_malformed_draw_renders_placeholder(self) -> None:
        drawing = codec.render(SignatureData(kind="draw", payload="{broken"), 200, 80)

        assert drawing.is_placeholder

    def test_stored_extreme_coordinates_render_placeholder(self) -> None:
        stored = SignatureData(kind="draw", payload='[[{"x": -1e308, "y": 0}, {"x": 1e308, "y": 10}]]')

        drawing = codec.render(stored, 200, 80)

        assert drawing.is_placeholder

    def test_overflowing_box_renders_placeholder(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(codec, "MAX_COORDINATE", math.inf)
        stored = SignatureData(kind="draw", payload='[[{"x": -1e308, "y": 0}, {"x": 1e308, "y": 10}]]')

        drawing = codec.render(stored, 200, 80)

        assert drawing.is_placeholder
        for op in drawing.ops:
            assert math.isfinite(op.x) and math.isfinite(op.y)

    def test_drawing_fits_eighty_percent_and_is_centered(self) -> None:
        sig = codec.normalize({"strokes": [[{"x": 0, "y": 0}, {"x": 100, "y": 10}]]})

        drawing = codec.render(sig, 200, 80)

        (path,) = drawing.ops
        assert isinstance(path, StrokePath)
        xs = [p[0] for p in path.points]
        ys = [p[1] for p in path.points]
        assert math.isclose(max(xs) - min(xs), 160)
        assert math.isclose((min(xs) + max(xs)) / 2, 100)
        assert math.isclose((min(ys) + max(ys)) / 2, 40)

    def test_single_point_box_renders_center_dot(self) -> None:
        sig = codec.normalize({"strokes": [[{"x": 5, "y": 5}], [{"x": 5, "y": 5}]]})

        drawing = codec.render(sig, 200, 80)

        (dot,) = drawing.ops
        assert isinstance(dot, Dot)
        assert (dot.x, dot.y) == (100, 40)

    def test_zero_height_scales_by_width(self) -> None:
        sig = codec.normalize({"strokes": [[{"x": 0, "y": 7}, {"x": 50, "y": 7}]]})

        drawing = codec.render(sig, 200, 80)

        (path,) = drawing.ops
        assert math.isclose(path.points[1][0] - path.points[0][0], 160)
        assert math.isclose(path.points[0][1], 40)

    def test_single_point_stroke_renders_dot(self) -> None:
        sig = codec.normalize(
            {"strokes": [[{"x": 0, "y": 0}, {"x": 10, "y": 10}], [{"x": 5, "y": 5}]]}
        )

        drawing = codec.render(sig, 200, 80)

        assert isinstance(drawing.ops[0], StrokePath)
        assert isinstance(drawing.ops[1], Dot)

    def test_typed_uses_fallbacks(self) -> None:
        drawing = codec.render(SignatureData(kind="typed", payload="An"), 200, 80)

        (label,) = drawing.ops
        assert label.font_family == codec.DEFAULT_FONT_FAMILY
        assert label.color == codec.DEFAULT_COLOR
        assert (label.x, label.y) == (100, 40)

    def test_point_color_overrides_signature_color(self) -> None:
        sig = codec.normalize(
            {"strokes": [[{"x": 0, "y": 0, "color": "#ff0000"}, {"x": 1, "y": 1}]], "color": "#0000ff"}
        )

        (path,) = codec.render(sig).ops

        assert path.color == "#ff0000"


@pytest.mark.parametrize(
    "value,expected",
    [
        ("#fff", (255, 255, 255)),
        ("#1a2B3c", (26, 43, 60)),
        ("rgb(10, 20, 30)", (10, 20, 30)),
        ("rgba(1,2,3,0.5)", (1, 2, 3)),
        ("blue", (0, 0, 0)),
        (None, (0, 0, 0)),
    ],
)
def test_parse_color(value: str | None, expected: tuple[int, int, int]) -> None:
    assert codec.parse_color(value) == expected
