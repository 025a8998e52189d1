"""
Scene model and loader for the scene data asset.

A scene is an ordered list of (light id, light state) pairs. Scenes are read
from ``data/scenes.json``:

    {
      "ordinary": [{"id": 1, "ct": 447, "brightness": 100}, ...],
      "dim": [...],
      "countries": {"SPAIN": [{"id": 13, "rgb": [170, 21, 27], "brightness": 100}, ...]}
    }

Colour keys per light (at most one): ``ct`` (mirek), ``hue`` with optional
``sat``, ``xy`` ([x, y]) or ``rgb`` ([r, g, b], converted to xy on load).
"""

import json
import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from .errors import SceneTableError

_LOGGER = logging.getLogger(__name__)

DEFAULT_SCENES_FILE = Path(__file__).parent / "data" / "scenes.json"

ORDINARY_SCENE = "ordinary"
DIM_SCENE = "dim"

_COLOR_KEYS = ("ct", "hue", "xy", "rgb")


class ColorMode(Enum):
    COLOR_TEMPERATURE = "ct"
    HUE_SATURATION = "hs"
    XY_CHROMATICITY = "xy"


def rgb_to_xy(red: int, green: int, blue: int) -> Tuple[float, float]:
    """
    Convert an 8-bit sRGB colour to CIE xy chromaticity.

    Uses the Wide RGB D65 conversion recommended for Hue lights. Black has no
    chromaticity and maps to the D65 white point.
    """
    def gamma(value):
        value = value / 255.0
        if value > 0.04045:
            return ((value + 0.055) / (1.0 + 0.055)) ** 2.4
        return value / 12.92

    r, g, b = gamma(red), gamma(green), gamma(blue)

    X = r * 0.649926 + g * 0.103455 + b * 0.197109
    Y = r * 0.234327 + g * 0.743075 + b * 0.022598
    Z = r * 0.000000 + g * 0.053077 + b * 1.035763

    total = X + Y + Z
    if total == 0:
        return (0.3127, 0.329)
    return (round(X / total, 4), round(Y / total, 4))


def brightness_to_bri(percent: int) -> int:
    """Map 0-100 % brightness to the bridge's 1-254 ``bri`` range."""
    return max(1, min(254, round(percent * 254 / 100)))


@dataclass(frozen=True)
class LightState:
    """Desired state of one light."""

    on: bool = True
    color_mode: Optional[ColorMode] = None
    color_value: Any = None
    brightness: Optional[int] = None

    def to_bridge_state(self) -> Dict[str, Any]:
        """Return the keyword arguments for a bridge ``set_state`` call."""
        if not self.on:
            return {"on": False}

        state: Dict[str, Any] = {"on": True}
        if self.brightness is not None:
            state["bri"] = brightness_to_bri(self.brightness)

        if self.color_mode is ColorMode.COLOR_TEMPERATURE:
            state["ct"] = self.color_value
        elif self.color_mode is ColorMode.HUE_SATURATION:
            hue, sat = self.color_value
            state["hue"] = hue
            if sat is not None:
                state["sat"] = sat
        elif self.color_mode is ColorMode.XY_CHROMATICITY:
            state["xy"] = list(self.color_value)
        return state


@dataclass(frozen=True)
class SceneStep:
    light_id: int
    state: LightState


@dataclass(frozen=True)
class Scene:
    name: str
    steps: Tuple[SceneStep, ...]

    def __len__(self):
        return len(self.steps)

    @property
    def light_ids(self) -> List[int]:
        return [step.light_id for step in self.steps]


@dataclass(frozen=True)
class SceneBook:
    """The reserved scenes plus the ordered country table."""

    ordinary: Scene
    dim: Scene
    countries: Dict[str, Scene]


def _parse_state(name: str, entry: Dict[str, Any]) -> LightState:
    color_keys = [key for key in _COLOR_KEYS if key in entry]
    if len(color_keys) > 1:
        raise SceneTableError(f"Scene {name}: light {entry.get('id')} has several colours {color_keys}")

    brightness = entry.get("brightness")
    if brightness is not None and (not isinstance(brightness, int) or not 0 <= brightness <= 100):
        raise SceneTableError(f"Scene {name}: brightness {brightness!r} is not in 0-100")

    color_mode = None
    color_value = None
    if "ct" in entry:
        color_mode, color_value = ColorMode.COLOR_TEMPERATURE, int(entry["ct"])
    elif "hue" in entry:
        sat = entry.get("sat")
        color_mode, color_value = ColorMode.HUE_SATURATION, (int(entry["hue"]), sat)
    elif "xy" in entry:
        x, y = entry["xy"]
        color_mode, color_value = ColorMode.XY_CHROMATICITY, (float(x), float(y))
    elif "rgb" in entry:
        color_mode, color_value = ColorMode.XY_CHROMATICITY, rgb_to_xy(*entry["rgb"])

    return LightState(
        on=bool(entry.get("on", True)),
        color_mode=color_mode,
        color_value=color_value,
        brightness=brightness,
    )


def parse_scene(name: str, entries: Any) -> Scene:
    """Build a Scene from its list of light entries."""
    if not isinstance(entries, list):
        raise SceneTableError(f"Scene {name} must be a list of lights")

    steps = []
    for entry in entries:
        light_id = entry.get("id") if isinstance(entry, dict) else None
        if not isinstance(light_id, int) or isinstance(light_id, bool):
            raise SceneTableError(f"Scene {name}: light id {light_id!r} is not an integer")
        try:
            state = _parse_state(name, entry)
        except (TypeError, ValueError) as e:
            raise SceneTableError(f"Scene {name}: invalid light {light_id}: {e}") from e
        steps.append(SceneStep(light_id, state))
    return Scene(name, tuple(steps))


def _reject_duplicates(pairs):
    result = {}
    for key, value in pairs:
        if key in result:
            raise SceneTableError(f"Duplicate key in scene file: {key}")
        result[key] = value
    return result


def load_scene_book(path=None) -> SceneBook:
    """
    Load the scene data asset.

    Args:
        path: JSON file to read, defaults to the bundled ``data/scenes.json``

    Returns:
        SceneBook: ordinary and dim scenes plus the country table in file order

    Raises:
        SceneTableError: If the file is missing, not JSON, or malformed.
    """
    path = Path(path) if path else DEFAULT_SCENES_FILE
    try:
        with open(path, "r") as f:
            data = json.load(f, object_pairs_hook=_reject_duplicates)
    except OSError as e:
        raise SceneTableError(f"Cannot read scene file {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise SceneTableError(f"Invalid JSON in scene file {path}: {e}") from e

    for reserved in (ORDINARY_SCENE, DIM_SCENE, "countries"):
        if reserved not in data:
            raise SceneTableError(f"Scene file {path} has no '{reserved}' entry")

    if not isinstance(data["countries"], dict):
        raise SceneTableError("'countries' must map names to scenes")

    countries = {}
    for name, entries in data["countries"].items():
        if not name or name != name.upper():
            raise SceneTableError(f"Country name {name!r} must be uppercase")
        countries[name] = parse_scene(name, entries)

    book = SceneBook(
        ordinary=parse_scene(ORDINARY_SCENE, data[ORDINARY_SCENE]),
        dim=parse_scene(DIM_SCENE, data[DIM_SCENE]),
        countries=countries,
    )
    _LOGGER.debug("Loaded %d country scenes from %s", len(countries), path)
    return book
