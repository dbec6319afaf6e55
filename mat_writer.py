"""
Unity .mat Writer for Restored Materials.

This module renders TargetMaterial objects as Unity material assets (YAML
1.1 with Unity's `!u!` tags) and writes them to disk.

Key Features:
    - Writes the Material document Unity expects (class ID 21)
    - References the shader by fileID/guid/type
    - References bound textures by the GUID from their .meta file
    - Number formatting that keeps values exact

Example Usage:
    >>> from mat_writer import generate_mat, generate_and_write_mat
    >>>
    >>> # Generate .mat content as string
    >>> content = generate_mat(target)
    >>> print(content.splitlines()[2])
    --- !u!21 &2100000
    >>>
    >>> # Or generate and write directly to file
    >>> output_path = generate_and_write_mat(target, Path("Assets/RestoredMaterials"))

Unity picks up the new file on its next asset refresh and creates the
.meta sidecar itself.

Module Structure:
    - format_float(), format_vector(), format_color(): Number formatting
    - sanitize_filename(): Make material names safe for filenames
    - generate_mat(): Main entry point for .mat content generation
    - write_mat_file(): Write content to disk
    - generate_and_write_mat(): Convenience function combining both
"""

from __future__ import annotations

import logging
import math
import os
import re
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from host_assets import ShaderHandle, TextureHandle
    from property_restorer import TargetMaterial

logger = logging.getLogger(__name__)

MAT_HEADER = (
    "%YAML 1.1\n"
    "%TAG !u! tag:unity3d.com,2011:\n"
    "--- !u!21 &2100000"
)

# Texture importer objects always have this local file ID
TEXTURE_FILE_ID = 2800000

DEFAULT_TEXTURE_SCALE = (1.0, 1.0)
DEFAULT_TEXTURE_OFFSET = (0.0, 0.0)


# =============================================================================
# NUMBER FORMATTING
# =============================================================================

def format_float(value: float) -> str:
    """
    Format a float value for .mat output.

    Whole numbers are written without a decimal point, as Unity does. Other
    values use Python's shortest round-trip representation so the value
    read back by Unity is exactly the value that was restored.

    Examples:
        >>> format_float(1.0)
        '1'
        >>> format_float(-0.0)
        '0'
        >>> format_float(0.5)
        '0.5'
        >>> format_float(0.19999999)
        '0.19999999'
        >>> format_float(float("inf"))
        'Infinity'
    """
    value = float(value)
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    if value.is_integer() and abs(value) < 1e16:
        return str(int(value))
    return repr(value)


def format_vector(x: float, y: float) -> str:
    """
    Format a 2D vector in Unity's inline mapping syntax.

    Examples:
        >>> format_vector(2.0, 0.5)
        '{x: 2, y: 0.5}'
    """
    return f"{{x: {format_float(x)}, y: {format_float(y)}}}"


def format_color(r: float, g: float, b: float, a: float) -> str:
    """
    Format an RGBA color in Unity's inline mapping syntax.

    Examples:
        >>> format_color(1.0, 0.5, 0.25, 1.0)
        '{r: 1, g: 0.5, b: 0.25, a: 1}'
    """
    return (
        f"{{r: {format_float(r)}, g: {format_float(g)}, "
        f"b: {format_float(b)}, a: {format_float(a)}}}"
    )


def _format_shader_ref(shader: "ShaderHandle") -> str:
    if not shader.guid:
        logger.warning(
            "Shader '%s' has no known guid; the material will need its shader "
            "assigned in the editor",
            shader.name
        )
        return "{fileID: 0}"
    return f"{{fileID: {shader.file_id}, guid: {shader.guid}, type: {shader.ref_type}}}"


def _format_texture_ref(texture: "TextureHandle | None") -> str:
    if texture is None:
        return "{fileID: 0}"
    if not texture.guid:
        logger.warning(
            "Texture %s has no .meta guid (not imported yet?); slot left empty",
            texture.path
        )
        return "{fileID: 0}"
    return f"{{fileID: {TEXTURE_FILE_ID}, guid: {texture.guid}, type: 3}}"


# =============================================================================
# FILENAME UTILITIES
# =============================================================================

def sanitize_filename(name: str) -> str:
    """
    Make a material name safe for use as a filename.

    Replaces characters that are invalid in filenames across Windows, macOS,
    and Linux. Everything else is kept, so the file name matches m_Name
    wherever the filesystem allows it.

    Args:
        name: Material name to sanitize.

    Returns:
        Filename-safe string. Returns "unnamed_material" if the name is
        empty or only whitespace.

    Examples:
        >>> sanitize_filename('_Body__Skin')
        '_Body__Skin'
        >>> sanitize_filename('Mat:With/Bad<Chars>')
        'Mat_With_Bad_Chars_'
        >>> sanitize_filename('  ')
        'unnamed_material'

    Invalid characters replaced:
        < > : " / \\ | ? * and control characters (0x00-0x1f)
    """
    invalid_chars = r'[<>:"/\\|?*\x00-\x1f]'
    sanitized = re.sub(invalid_chars, "_", name)

    if not sanitized.strip():
        sanitized = "unnamed_material"

    return sanitized


def _yaml_scalar(value: str) -> str:
    """Quote a string scalar when plain YAML would misread it."""
    if value and re.fullmatch(r"[A-Za-z0-9_][A-Za-z0-9_ ().\-]*", value) and not value.endswith(" "):
        return value
    escaped = value.replace("'", "''")
    return f"'{escaped}'"


# =============================================================================
# SECTION BUILDERS
# =============================================================================

def _build_tex_envs(material: "TargetMaterial") -> list[str]:
    """
    Build the m_TexEnvs entries.

    A slot is written when it received tiling/offset or a texture. Missing
    halves fall back to Unity's defaults (scale 1, offset 0).
    """
    slot_names = (
        set(material.texture_scales)
        | set(material.texture_offsets)
        | set(material.textures)
    )
    if not slot_names:
        return ["    m_TexEnvs: []"]

    lines = ["    m_TexEnvs:"]
    for prop_name in sorted(slot_names):
        scale = material.texture_scales.get(prop_name, DEFAULT_TEXTURE_SCALE)
        offset = material.texture_offsets.get(prop_name, DEFAULT_TEXTURE_OFFSET)
        lines.append(f"    - {prop_name}:")
        lines.append(f"        m_Texture: {_format_texture_ref(material.textures.get(prop_name))}")
        lines.append(f"        m_Scale: {format_vector(*scale)}")
        lines.append(f"        m_Offset: {format_vector(*offset)}")
    return lines


def _build_floats(material: "TargetMaterial") -> list[str]:
    if not material.floats:
        return ["    m_Floats: []"]

    lines = ["    m_Floats:"]
    for prop_name, value in sorted(material.floats.items()):
        lines.append(f"    - {prop_name}: {format_float(value)}")
    return lines


def _build_colors(material: "TargetMaterial") -> list[str]:
    if not material.colors:
        return ["    m_Colors: []"]

    lines = ["    m_Colors:"]
    for prop_name, rgba in sorted(material.colors.items()):
        lines.append(f"    - {prop_name}: {format_color(*rgba)}")
    return lines


# =============================================================================
# MAT GENERATION
# =============================================================================

def generate_mat(material: "TargetMaterial") -> str:
    """Generate Unity .mat asset content.

    Creates a complete .mat file as a string, ready to be written to disk.
    This is the main entry point for .mat generation.

    Args:
        material: Restored material with shader and assignments.

    Returns:
        Complete .mat file content as string.

    Full example output:
        %YAML 1.1
        %TAG !u! tag:unity3d.com,2011:
        --- !u!21 &2100000
        Material:
          serializedVersion: 8
          ...
          m_Name: Hair_Mat
          m_Shader: {fileID: 46, guid: 0000000000000000f000000000000000, type: 0}
          ...
          m_SavedProperties:
            serializedVersion: 3
            m_TexEnvs:
            - _MainTex:
                m_Texture: {fileID: 2800000, guid: 6f1e..., type: 3}
                m_Scale: {x: 1, y: 1}
                m_Offset: {x: 0, y: 0}
            m_Ints: []
            m_Floats:
            - _Cutoff: 0.5
            m_Colors:
            - _Color: {r: 1, g: 0.5, b: 0.25, a: 1}
          m_BuildTextureStacks: []
    """
    lines: list[str] = [
        MAT_HEADER,
        "Material:",
        "  serializedVersion: 8",
        "  m_ObjectHideFlags: 0",
        "  m_CorrespondingSourceObject: {fileID: 0}",
        "  m_PrefabInstance: {fileID: 0}",
        "  m_PrefabAsset: {fileID: 0}",
        f"  m_Name: {_yaml_scalar(material.name)}",
        f"  m_Shader: {_format_shader_ref(material.shader)}",
        "  m_Parent: {fileID: 0}",
        "  m_ModifiedSerializedProperties: 0",
        "  m_ValidKeywords: []",
        "  m_InvalidKeywords: []",
        "  m_LightmapFlags: 4",
        "  m_EnableInstancingVariants: 0",
        "  m_DoubleSidedGI: 0",
        "  m_CustomRenderQueue: -1",
        "  stringTagMap: {}",
        "  disabledShaderPasses: []",
        "  m_LockedProperties: ",
        "  m_SavedProperties:",
        "    serializedVersion: 3",
    ]

    lines.extend(_build_tex_envs(material))
    lines.append("    m_Ints: []")
    lines.extend(_build_floats(material))
    lines.extend(_build_colors(material))
    lines.append("  m_BuildTextureStacks: []")
    lines.append("  m_AllowLocking: 1")

    # Final newline
    lines.append("")

    content = "\n".join(lines)

    logger.debug(
        "Generated .mat for material %s (shader=%s, floats=%d, colors=%d, textures=%d)",
        material.name, material.shader.name,
        len(material.floats), len(material.colors), len(material.textures)
    )

    return content


# =============================================================================
# FILE WRITING
# =============================================================================

def write_mat_file(content: str, output_path: Path) -> None:
    """
    Write .mat content to a file, creating directories as needed.

    The content goes to a temporary file next to output_path, which then
    replaces output_path in one step. A failed write leaves an existing
    file untouched and no partial file behind.

    Raises:
        OSError: If the directory cannot be created or file cannot be written.
    """
    output_path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(
        prefix=f".{output_path.name}.", suffix=".tmp", dir=output_path.parent
    )
    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
        os.replace(tmp_path, output_path)
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise

    logger.debug("Wrote .mat file: %s", output_path)


def mat_output_path(material: "TargetMaterial", output_dir: Path) -> Path:
    """Return <output_dir>/<sanitized material name>.mat."""
    return output_dir / f"{sanitize_filename(material.name)}.mat"


def generate_and_write_mat(material: "TargetMaterial", output_dir: Path) -> Path:
    """
    Generate and write a .mat file for a material.

    The content is generated completely before the file is opened, so a
    failure during generation leaves nothing on disk.

    Returns:
        Path to the written .mat file.

    Raises:
        OSError: If the directory cannot be created or file cannot be written.
    """
    content = generate_mat(material)

    output_path = mat_output_path(material, output_dir)

    write_mat_file(content, output_path)

    return output_path
