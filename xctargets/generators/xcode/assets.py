# Asset catalog generation: colorsets, imagesets and the catalog root.
#
# All operations are best effort. Failures raise IOWarning, the caller logs
# them and continues since a missing asset only breaks the target's build.

import json
import re
import shutil
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from xctargets.details.errors import IOWarning

XCODE_INFO = {"author": "xcode", "version": 1}

NAMED_COLORS: Dict[str, str] = {
    "black": "#000000",
    "white": "#ffffff",
    "red": "#ff0000",
    "green": "#008000",
    "blue": "#0000ff",
    "yellow": "#ffff00",
    "orange": "#ffa500",
    "purple": "#800080",
    "gray": "#808080",
    "grey": "#808080",
    "transparent": "#00000000",
}

_RGB_FUNCTION = re.compile(
    r"rgba?\(\s*(\d+)\s*,\s*(\d+)\s*,\s*(\d+)\s*(?:,\s*([\d.]+)\s*)?\)"
)

Components = Tuple[float, float, float, float]


def parse_color(color: str) -> Components:
    """Parse a CSS style color into (red, green, blue, alpha) in 0..1."""
    value = NAMED_COLORS.get(color.strip().lower(), color.strip())
    match = _RGB_FUNCTION.fullmatch(value)
    if match:
        red, green, blue = (int(match.group(i)) / 255 for i in (1, 2, 3))
        alpha = float(match.group(4)) if match.group(4) is not None else 1.0
        return red, green, blue, alpha
    if not value.startswith("#"):
        raise ValueError(f"invalid color: {color}")
    digits = value[1:]
    if len(digits) in (3, 4):
        digits = "".join(d * 2 for d in digits)
    if len(digits) == 6:
        digits += "ff"
    if len(digits) != 8 or not re.fullmatch(r"[0-9a-fA-F]{8}", digits):
        raise ValueError(f"invalid color: {color}")
    red, green, blue, alpha = (int(digits[i : i + 2], 16) / 255 for i in range(0, 8, 2))
    return red, green, blue, alpha


def _color_entry(color: str) -> Dict[str, Any]:
    red, green, blue, alpha = parse_color(color)
    return {
        "color-space": "srgb",
        "components": {
            "red": f"{red:.3f}",
            "green": f"{green:.3f}",
            "blue": f"{blue:.3f}",
            "alpha": f"{alpha:.3f}",
        },
    }


def _write_contents(directory: Path, contents: Dict[str, Any]) -> None:
    directory.mkdir(parents=True, exist_ok=True)
    with open(directory / "Contents.json", "w") as f:
        json.dump(contents, f, indent=2)


def create_assets_root(assets_path: Path) -> None:
    try:
        _write_contents(assets_path, {"info": XCODE_INFO})
    except OSError as e:
        raise IOWarning(f"failed to create {assets_path}: {e}") from e


def create_colorset(colorset_path: Path, color: str, dark_color: Optional[str] = None) -> None:
    try:
        colors = [{"color": _color_entry(color), "idiom": "universal"}]
        if dark_color:
            colors.append(
                {
                    "appearances": [{"appearance": "luminosity", "value": "dark"}],
                    "color": _color_entry(dark_color),
                    "idiom": "universal",
                }
            )
        _write_contents(colorset_path, {"colors": colors, "info": XCODE_INFO})
    except ValueError as e:
        raise IOWarning(f"{colorset_path.name}: {e}") from e
    except OSError as e:
        raise IOWarning(f"failed to create {colorset_path}: {e}") from e


def create_imageset(imageset_path: Path, source: Optional[Path] = None) -> None:
    images: list = [
        {"idiom": "universal", "scale": "1x"},
        {"idiom": "universal", "scale": "2x"},
        {"idiom": "universal", "scale": "3x"},
    ]
    try:
        if source is not None:
            if not source.is_file():
                raise IOWarning(f"image not found: {source}")
            imageset_path.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(source, imageset_path / source.name)
            images[0]["filename"] = source.name
        _write_contents(imageset_path, {"images": images, "info": XCODE_INFO})
    except OSError as e:
        raise IOWarning(f"failed to create {imageset_path}: {e}") from e


def copy_user_assets(source: Path, destination: Path) -> bool:
    """Copy a user asset catalog into the build directory.

    Returns False when the target has no catalog of its own.
    """
    if not source.is_dir():
        return False
    try:
        shutil.copytree(source, destination, dirs_exist_ok=True)
    except (OSError, shutil.Error) as e:
        raise IOWarning(f"failed to copy {source}: {e}") from e
    return True
