"""
Property Restorer for JSON Material Dumps.

Applies the properties of a parsed material dump to a new material built on
a chosen shader. This is the decision logic of the whole tool; parsing,
shader selection and writing are handled by the surrounding modules.

Restore Policy
--------------
Restoring is best-effort:

- A property is assigned only if the target shader declares it. Anything
  else is dropped without an error.
- The float, color and texture groups are handled independently, so an
  empty or broken group never prevents the others from restoring.
- Texture tiling/offset are applied whether or not the texture itself can
  be found in the project.
- A texture that cannot be found is skipped.

Values are copied unchanged: no clamping, no color space conversion.

Dropped properties and unresolved textures are collected in a RestoreReport
so callers can report them (the CLI does so in --strict mode).

Usage
-----
    >>> from material_json import load_material_json
    >>> from property_restorer import restore_properties
    >>>
    >>> description = load_material_json(Path("Hair_Mat.json"))
    >>> target, report = restore_properties(description, shader, host)
    >>> target.floats
    {'_Cutoff': 0.5}
    >>> report.unmatched
    ['floats:_OutlineWidth']
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from host_assets import HostCapabilities, ShaderHandle, TextureHandle
    from material_json import Color, MaterialDescription, TextureBinding

logger = logging.getLogger(__name__)

# Name used when neither the dump nor the caller provides one
DEFAULT_MATERIAL_NAME = "RestoredMaterial"


@dataclass
class TargetMaterial:
    """A material built on a shader, holding the restored assignments.

    All property names keep the Unity naming of the dump (e.g., "_MainTex").
    Only properties the shader declares are ever present.

    Attributes:
        name: Material name, also used as the output file name.
        shader: Shader the material is created with.
        floats: Float assignments.
        colors: Color assignments as (r, g, b, a) tuples.
        texture_scales: Texture tiling assignments as (x, y).
        texture_offsets: Texture offset assignments as (x, y).
        textures: Texture bindings.

    Example:
        >>> mat = TargetMaterial(name="Skin", shader=shader)
        >>> mat.floats["_Cutoff"] = 0.5
        >>> mat.assignment_count()
        1
    """

    name: str
    shader: ShaderHandle
    floats: dict[str, float] = field(default_factory=dict)
    colors: dict[str, tuple[float, float, float, float]] = field(default_factory=dict)
    texture_scales: dict[str, tuple[float, float]] = field(default_factory=dict)
    texture_offsets: dict[str, tuple[float, float]] = field(default_factory=dict)
    textures: dict[str, TextureHandle] = field(default_factory=dict)

    def assignment_count(self) -> int:
        return (
            len(self.floats)
            + len(self.colors)
            + len(self.texture_scales)
            + len(self.texture_offsets)
            + len(self.textures)
        )


@dataclass
class RestoreReport:
    """What a restore left out.

    Attributes:
        unmatched: "<group>:<property>" entries dropped because the shader
            does not declare the property. Groups are "floats", "colors" and
            "textures".
        unresolved_textures: Texture names the host could not find.
    """

    unmatched: list[str] = field(default_factory=list)
    unresolved_textures: list[str] = field(default_factory=list)

    def is_clean(self) -> bool:
        return not self.unmatched and not self.unresolved_textures


def _restore_floats(
    target: TargetMaterial,
    floats: dict[str, float],
    report: RestoreReport,
) -> None:
    for prop_name, value in floats.items():
        if target.shader.has_property(prop_name):
            target.floats[prop_name] = value
        else:
            report.unmatched.append(f"floats:{prop_name}")


def _restore_colors(
    target: TargetMaterial,
    colors: dict[str, Color],
    report: RestoreReport,
) -> None:
    for prop_name, color in colors.items():
        rgba = color.as_tuple()
        if target.shader.has_property(prop_name):
            target.colors[prop_name] = rgba
        else:
            report.unmatched.append(f"colors:{prop_name}")


def _restore_textures(
    target: TargetMaterial,
    textures: dict[str, TextureBinding],
    host: HostCapabilities,
    report: RestoreReport,
) -> None:
    """Apply texture slots: tiling/offset first, then the texture binding.

    The two halves are independent. A slot keeps its tiling even when its
    texture is missing from the project, and a texture is looked up even
    when the slot has no tiling.
    """
    for prop_name, binding in textures.items():
        declared = target.shader.has_property(prop_name)

        # Step 1: Tiling/Offset
        if declared and binding.has_transform():
            target.texture_scales[prop_name] = binding.scale
            target.texture_offsets[prop_name] = binding.offset

        if not declared:
            report.unmatched.append(f"textures:{prop_name}")

        # Step 2: Texture binding
        if not binding.texture_name:
            continue

        texture = host.find_texture_by_name(binding.texture_name)
        if texture is None:
            logger.debug(
                "Texture '%s' for %s not found in project",
                binding.texture_name, prop_name
            )
            report.unresolved_textures.append(binding.texture_name)
            continue

        if declared:
            target.textures[prop_name] = texture


def restore_properties(
    description: MaterialDescription,
    shader: ShaderHandle,
    host: HostCapabilities,
    fallback_name: str | None = None,
) -> tuple[TargetMaterial, RestoreReport]:
    """Build a material on shader from a parsed dump.

    **Step 1: Floats**
    Every float the shader declares is assigned unchanged.

    **Step 2: Colors**
    Every color the shader declares is assigned as an (r, g, b, a) tuple.

    **Step 3: Textures**
    For each texture slot the shader declares, tiling and offset are
    assigned when both are present. Independently, a non-empty texture name
    is resolved through host.find_texture_by_name() and bound to the slot if
    found and the slot is declared.

    Args:
        description: Parsed dump from material_json.
        shader: Target shader. Its property set decides what is kept.
        host: Texture lookup.
        fallback_name: Material name to use when the dump has no m_Name,
            normally the input file name without extension.

    Returns:
        Tuple of (target, report): the restored material and a report of
        the properties and textures that were left out.

    Example:
        >>> target, report = restore_properties(description, shader, host, "Hair_Mat")
        >>> target.name
        'Hair_Mat'
    """
    name = description.name or fallback_name or DEFAULT_MATERIAL_NAME
    target = TargetMaterial(name=name, shader=shader)
    report = RestoreReport()

    props = description.saved_properties
    _restore_floats(target, props.floats, report)
    _restore_colors(target, props.colors, report)
    _restore_textures(target, props.textures, host, report)

    logger.debug(
        "Restored material %s on %s (floats=%d, colors=%d, tiling=%d, textures=%d, dropped=%d)",
        target.name, shader.name,
        len(target.floats), len(target.colors),
        len(target.texture_scales), len(target.textures),
        len(report.unmatched),
    )

    return target, report
