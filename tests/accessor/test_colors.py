from __future__ import annotations

from openpyxl.styles.colors import Color
import pytest

from workbook_recovery.accessor.colors import AUTO_COLOR, color_from_text, color_to_text
from workbook_recovery.errors import InvalidStateError


def test_color_to_text_encodings() -> None:
    assert color_to_text(Color(rgb="FF1F4E79")) == "#1F4E79"
    assert color_to_text(Color(theme=4)) == "theme:4"
    assert color_to_text(Color(theme=4, tint=0.4)) == "theme:4:0.4"
    assert color_to_text(Color(indexed=10)) == "indexed:10"
    assert color_to_text(None) == AUTO_COLOR


def test_color_from_text_decodes_each_encoding() -> None:
    rgb = color_from_text("#1f4e79")
    assert rgb is not None
    assert rgb.rgb == "FF1F4E79"
    theme = color_from_text("theme:4:0.4")
    assert theme is not None
    assert (theme.theme, theme.tint) == (4, 0.4)
    indexed = color_from_text("indexed:10")
    assert indexed is not None
    assert indexed.indexed == 10
    assert color_from_text("auto") is None
    assert color_from_text(None) is None


def test_color_from_text_rejects_garbage() -> None:
    with pytest.raises(InvalidStateError, match="Invalid color value"):
        color_from_text("blue")
    with pytest.raises(InvalidStateError, match="Invalid color value"):
        color_from_text("theme:x")
