"""Tests for asset catalog generation."""

import json

import pytest

from xctargets.details.errors import IOWarning
from xctargets.generators.xcode.assets import (
    copy_user_assets,
    create_assets_root,
    create_colorset,
    create_imageset,
    parse_color,
)


def contents(path):
    with open(path / "Contents.json") as f:
        return json.load(f)


class TestParseColor:
    @pytest.mark.parametrize(
        "color, expected",
        [
            ("#ff0000", (1.0, 0.0, 0.0, 1.0)),
            ("#f00", (1.0, 0.0, 0.0, 1.0)),
            ("#00ff0080", (0.0, 1.0, 0.0, 128 / 255)),
            ("white", (1.0, 1.0, 1.0, 1.0)),
            ("rgb(0, 0, 255)", (0.0, 0.0, 1.0, 1.0)),
            ("rgba(255, 255, 255, 0.5)", (1.0, 1.0, 1.0, 0.5)),
        ],
    )
    def test_valid(self, color, expected):
        assert parse_color(color) == pytest.approx(expected)

    @pytest.mark.parametrize("color", ["ff0000", "#12345", "#gggggg", "chartreuse-ish"])
    def test_invalid(self, color):
        with pytest.raises(ValueError):
            parse_color(color)


class TestColorset:
    def test_single_color(self, temp_dir):
        colorset = temp_dir / "$accent.colorset"
        create_colorset(colorset, "#ff0000")
        data = contents(colorset)
        assert data["info"] == {"author": "xcode", "version": 1}
        (entry,) = data["colors"]
        assert entry["idiom"] == "universal"
        assert entry["color"]["components"] == {
            "red": "1.000",
            "green": "0.000",
            "blue": "0.000",
            "alpha": "1.000",
        }

    def test_dark_appearance(self, temp_dir):
        colorset = temp_dir / "$widgetBackground.colorset"
        create_colorset(colorset, "white", dark_color="black")
        light, dark = contents(colorset)["colors"]
        assert "appearances" not in light
        assert dark["appearances"] == [{"appearance": "luminosity", "value": "dark"}]
        assert dark["color"]["components"]["red"] == "0.000"

    def test_invalid_color_warns(self, temp_dir):
        with pytest.raises(IOWarning, match="invalid color"):
            create_colorset(temp_dir / "bad.colorset", "not-a-color")


class TestCatalog:
    def test_assets_root(self, temp_dir):
        create_assets_root(temp_dir / "Assets.xcassets")
        assert contents(temp_dir / "Assets.xcassets") == {
            "info": {"author": "xcode", "version": 1}
        }

    def test_imageset_with_source(self, temp_dir):
        source = temp_dir / "logo.png"
        source.write_bytes(b"png")
        imageset = temp_dir / "Assets.xcassets" / "logo.imageset"
        create_imageset(imageset, source)
        assert (imageset / "logo.png").read_bytes() == b"png"
        assert contents(imageset)["images"][0]["filename"] == "logo.png"

    def test_imageset_missing_source(self, temp_dir):
        with pytest.raises(IOWarning, match="image not found"):
            create_imageset(temp_dir / "logo.imageset", temp_dir / "missing.png")

    def test_copy_user_assets(self, temp_dir):
        source = temp_dir / "ios" / "Assets.xcassets"
        (source / "AppIcon.appiconset").mkdir(parents=True)
        (source / "Contents.json").write_text("{}")
        destination = temp_dir / "ios" / "build" / "Assets.xcassets"
        assert copy_user_assets(source, destination)
        assert (destination / "AppIcon.appiconset").is_dir()
        # copying over an existing catalog merges
        assert copy_user_assets(source, destination)

    def test_copy_without_user_assets(self, temp_dir):
        assert not copy_user_assets(temp_dir / "missing", temp_dir / "out")
