"""Parse JSON dumps of serialized Unity materials.

Material dumps mirror the layout Unity uses inside a .mat file, but as JSON
instead of YAML. Only the name and the saved property groups are read; the
shader reference in a dump is ignored because the target shader is chosen
by the user.

The module provides:
- Color: Dataclass for RGBA colors (supports HDR values)
- TextureBinding: Dataclass for texture slots with tiling, offset and name
- SavedProperties: The three independent property groups
- MaterialDescription: Parsed material name and properties
- parse_material_json(): Main entry point for parsing dump content
- load_material_json(): Convenience wrapper reading a file
- material_to_json(): Dump a restored material back to the same format

JSON Material Structure:
    {
      "m_Name": "Hair_Mat",
      "m_SavedProperties": {
        "m_Floats": {"_Cutoff": 0.5, "_Metallic": 0.0},
        "m_Colors": {"_Color": {"r": 1, "g": 0.5, "b": 0.25, "a": 1}},
        "m_TexEnvs": {
          "_MainTex": {
            "m_Texture": {"Name": "Hair_Albedo"},
            "m_Scale": {"X": 1, "Y": 1},
            "m_Offset": {"X": 0, "Y": 0}
          }
        }
      }
    }

Only the top-level document is strict. A group or entry that is missing or
malformed is skipped, so a partially broken dump still restores whatever
can be read.

Example:
    >>> from material_json import parse_material_json
    >>> material = parse_material_json(Path("Hair_Mat.json").read_text())
    >>> print(material.name)
    'Hair_Mat'
    >>> print(material.saved_properties.floats.get("_Cutoff"))
    0.5
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Any

    from property_restorer import TargetMaterial

logger = logging.getLogger(__name__)


class MaterialJsonError(ValueError):
    """Raised when a material dump cannot be read as a JSON object."""


@dataclass
class Color:
    """RGBA color from the m_Colors group.

    Components are kept exactly as dumped. Values above 1.0 are legal for
    HDR colors (emission, rim glow) and are not clamped.

    Attributes:
        r: Red component.
        g: Green component.
        b: Blue component.
        a: Alpha component.

    Example:
        >>> color = Color(r=2.5, g=1.0, b=0.0, a=1.0)
        >>> color.as_tuple()
        (2.5, 1.0, 0.0, 1.0)
    """

    r: float
    g: float
    b: float
    a: float

    def as_tuple(self) -> tuple[float, float, float, float]:
        """Return color as (r, g, b, a) tuple."""
        return (self.r, self.g, self.b, self.a)


@dataclass
class TextureBinding:
    """A texture slot from the m_TexEnvs group.

    Attributes:
        scale: Tiling as (x, y), or None when m_Scale is absent or malformed.
        offset: UV offset as (x, y), or None when m_Offset is absent or
            malformed.
        texture_name: Name of the texture asset that was bound to the slot,
            or None when the slot was empty.
    """

    scale: tuple[float, float] | None = None
    offset: tuple[float, float] | None = None
    texture_name: str | None = None

    def has_transform(self) -> bool:
        """True if both tiling and offset are present."""
        return self.scale is not None and self.offset is not None


@dataclass
class SavedProperties:
    """The three property groups of a material, keyed by property name."""

    floats: dict[str, float] = field(default_factory=dict)
    colors: dict[str, Color] = field(default_factory=dict)
    textures: dict[str, TextureBinding] = field(default_factory=dict)

    def is_empty(self) -> bool:
        return not (self.floats or self.colors or self.textures)


@dataclass
class MaterialDescription:
    """Parsed material dump.

    Attributes:
        name: Material name from m_Name, or None when absent or empty.
            Callers fall back to the input file name.
        saved_properties: Float, color and texture groups.
    """

    name: str | None
    saved_properties: SavedProperties = field(default_factory=SavedProperties)


# =============================================================================
# Value Parsing
# =============================================================================

def _to_float(value: Any) -> float | None:
    """Parse a JSON number or numeric string, None if it is neither.

    Booleans are rejected even though Python treats them as integers.

    Example:
        >>> _to_float(0.5), _to_float("1e-3"), _to_float(True), _to_float("abc")
        (0.5, 0.001, None, None)
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None


def _component(data: dict[str, Any], key: str) -> float | None:
    # Unity's YAML uses lowercase vector keys, dumps use uppercase
    if key in data:
        return _to_float(data[key])
    return _to_float(data.get(key.lower()))


def _parse_vector2(data: Any) -> tuple[float, float] | None:
    if not isinstance(data, dict):
        return None
    x = _component(data, "X")
    y = _component(data, "Y")
    if x is None or y is None:
        return None
    return (x, y)


def _group(saved: dict[str, Any], key: str) -> dict[str, Any]:
    """Return one property group, or an empty dict if missing or malformed."""
    group = saved.get(key)
    if group is None:
        return {}
    if not isinstance(group, dict):
        logger.debug("Ignoring %s: expected an object, got %s", key, type(group).__name__)
        return {}
    return group


# =============================================================================
# Group Parsing
# =============================================================================

def _parse_floats(group: dict[str, Any]) -> dict[str, float]:
    """Parse the m_Floats group.

    Example:
        >>> _parse_floats({"_Cutoff": 0.5, "_Broken": "n/a"})
        {'_Cutoff': 0.5}
    """
    floats: dict[str, float] = {}

    for prop_name, raw in group.items():
        value = _to_float(raw)
        if value is None:
            logger.debug("Skipping float %s: not a number (%r)", prop_name, raw)
            continue
        floats[prop_name] = value

    return floats


def _parse_colors(group: dict[str, Any]) -> dict[str, Color]:
    """Parse the m_Colors group.

    Every color needs all four r, g, b, a components; incomplete entries
    are skipped.

    Example:
        >>> colors = _parse_colors({"_Color": {"r": 1, "g": 0.5, "b": 0.25, "a": 1}})
        >>> colors["_Color"].as_tuple()
        (1.0, 0.5, 0.25, 1.0)
    """
    colors: dict[str, Color] = {}

    for prop_name, raw in group.items():
        if not isinstance(raw, dict):
            logger.debug("Skipping color %s: expected an object", prop_name)
            continue

        components = [_to_float(raw.get(key)) for key in ("r", "g", "b", "a")]
        if any(c is None for c in components):
            logger.debug("Skipping color %s: missing or invalid component", prop_name)
            continue

        r, g, b, a = components
        colors[prop_name] = Color(r=r, g=g, b=b, a=a)

    return colors


def _parse_textures(group: dict[str, Any]) -> dict[str, TextureBinding]:
    """Parse the m_TexEnvs group.

    Each entry has this structure, where every member is optional:

        "_MainTex": {
          "m_Texture": {"Name": "Hair_Albedo"},
          "m_Scale": {"X": 1, "Y": 1},
          "m_Offset": {"X": 0, "Y": 0}
        }

    Slots without a texture keep their tiling and offset; an empty or
    missing m_Texture.Name is stored as None.

    Example:
        >>> tex = _parse_textures({"_MainTex": {"m_Scale": {"X": 2, "Y": 2}}})
        >>> tex["_MainTex"].scale, tex["_MainTex"].offset
        ((2.0, 2.0), None)
    """
    textures: dict[str, TextureBinding] = {}

    for prop_name, raw in group.items():
        if not isinstance(raw, dict):
            logger.debug("Skipping texture %s: expected an object", prop_name)
            continue

        texture_name = None
        texture = raw.get("m_Texture")
        if isinstance(texture, dict):
            name = texture.get("Name")
            if isinstance(name, str) and name.strip():
                texture_name = name

        textures[prop_name] = TextureBinding(
            scale=_parse_vector2(raw.get("m_Scale")),
            offset=_parse_vector2(raw.get("m_Offset")),
            texture_name=texture_name,
        )

    return textures


# =============================================================================
# Public API
# =============================================================================

def parse_material_json(content: str) -> MaterialDescription:
    """Parse a JSON material dump into structured data.

    Args:
        content: Full content of the dump as a string.

    Returns:
        MaterialDescription with every readable property. A dump without
        m_SavedProperties produces empty groups.

    Raises:
        MaterialJsonError: If the content is not valid JSON or its root is
            not an object. This is the only failure that aborts a restore.

    Example:
        >>> desc = parse_material_json('{"m_Name": "Skin"}')
        >>> desc.name, desc.saved_properties.is_empty()
        ('Skin', True)
    """
    try:
        root = json.loads(content)
    except json.JSONDecodeError as e:
        raise MaterialJsonError(str(e)) from e
    except RecursionError as e:
        raise MaterialJsonError("JSON document is nested too deeply") from e

    if not isinstance(root, dict):
        raise MaterialJsonError(
            f"Expected a JSON object at top level, got {type(root).__name__}"
        )

    name = root.get("m_Name")
    if name is not None and not isinstance(name, str):
        name = str(name)
    if not name:
        name = None

    saved = root.get("m_SavedProperties")
    if not isinstance(saved, dict):
        if saved is not None:
            logger.debug("Ignoring m_SavedProperties: expected an object")
        saved = {}

    properties = SavedProperties(
        floats=_parse_floats(_group(saved, "m_Floats")),
        colors=_parse_colors(_group(saved, "m_Colors")),
        textures=_parse_textures(_group(saved, "m_TexEnvs")),
    )

    logger.debug(
        "Parsed material '%s': floats=%d, colors=%d, textures=%d",
        name or "<unnamed>",
        len(properties.floats),
        len(properties.colors),
        len(properties.textures),
    )

    return MaterialDescription(name=name, saved_properties=properties)


def load_material_json(path: Path) -> MaterialDescription:
    """Read and parse a material dump from disk.

    The file is decoded as UTF-8; a leading byte order mark is tolerated
    since dumps are often written by Windows tools.

    Raises:
        OSError: If the file cannot be read.
        MaterialJsonError: If the content is not valid UTF-8 or cannot be
            parsed.
    """
    try:
        text = path.read_text(encoding="utf-8-sig")
    except UnicodeDecodeError as e:
        raise MaterialJsonError(f"Not valid UTF-8: {e}") from e
    return parse_material_json(text)


def material_to_json(target: "TargetMaterial") -> dict[str, Any]:
    """Dump a restored material in the same format parse_material_json reads.

    Texture slots are written for every property that received tiling,
    offset or a texture binding.

    Example:
        >>> data = material_to_json(target)
        >>> json.dumps(data, indent=2)
    """
    tex_envs: dict[str, Any] = {}
    slot_names = set(target.texture_scales) | set(target.texture_offsets) | set(target.textures)

    for prop_name in sorted(slot_names):
        entry: dict[str, Any] = {}
        texture = target.textures.get(prop_name)
        if texture is not None:
            entry["m_Texture"] = {"Name": texture.name}
        if prop_name in target.texture_scales:
            x, y = target.texture_scales[prop_name]
            entry["m_Scale"] = {"X": x, "Y": y}
        if prop_name in target.texture_offsets:
            x, y = target.texture_offsets[prop_name]
            entry["m_Offset"] = {"X": x, "Y": y}
        tex_envs[prop_name] = entry

    return {
        "m_Name": target.name,
        "m_SavedProperties": {
            "m_Floats": dict(target.floats),
            "m_Colors": {
                prop_name: {"r": r, "g": g, "b": b, "a": a}
                for prop_name, (r, g, b, a) in target.colors.items()
            },
            "m_TexEnvs": tex_envs,
        },
    }


# CLI for testing
if __name__ == "__main__":
    import argparse
    import sys

    logging.basicConfig(
        level=logging.DEBUG,
        format="%(levelname)s: %(message)s",
    )

    parser = argparse.ArgumentParser(
        description="Parse a JSON material dump and display its contents."
    )
    parser.add_argument(
        "json_file",
        type=Path,
        help="Path to .json material dump",
    )
    args = parser.parse_args()

    if not args.json_file.exists():
        print(f"Error: File not found: {args.json_file}", file=sys.stderr)
        sys.exit(1)

    try:
        material = load_material_json(args.json_file)
    except (OSError, MaterialJsonError) as e:
        logger.error("Failed to parse material: %s", e)
        sys.exit(1)

    props = material.saved_properties
    print(f"\n{'='*60}")
    print(f"Material: {material.name or args.json_file.stem}")
    print(f"{'='*60}")

    if props.textures:
        print(f"\nTextures ({len(props.textures)}):")
        for prop, tex in sorted(props.textures.items()):
            print(f"  {prop}:")
            print(f"    Texture: {tex.texture_name or 'None'}")
            print(f"    Scale: {tex.scale}")
            print(f"    Offset: {tex.offset}")

    if props.floats:
        print(f"\nFloats ({len(props.floats)}):")
        for prop, value in sorted(props.floats.items()):
            print(f"  {prop}: {value}")

    if props.colors:
        print(f"\nColors ({len(props.colors)}):")
        for prop, color in sorted(props.colors.items()):
            print(f"  {prop}: r={color.r:.3f}, g={color.g:.3f}, b={color.b:.3f}, a={color.a:.3f}")

    print(f"{'='*60}\n")
