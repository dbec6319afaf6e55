"""
Shader Selection for Material Restoration.

Chooses the shader a restored material is created with. The user picks a
mode; for the two automatic modes, a static list of candidate shader names
is tried in order against the host's shader registry and the first one the
host knows wins. Custom mode takes the shader name the user supplied.

Candidate lists
---------------
Edit these to match the shaders your project uses. Order matters: URP
shaders come first so URP projects get URP materials, with the built-in
pipeline shaders as fallback.

- STANDARD_SHADER_NAMES: realistic / physically based materials.
- TOON_SHADER_NAMES: cel-shaded / anime materials. lilToon is preferred;
  projects without it fall back to URP Simple Lit, then Unlit/Texture.

Example:
    >>> from shader_selection import ShaderMode, find_shader_auto
    >>> shader = find_shader_auto(ShaderMode.TOON_ANIME, host)
    >>> shader.name
    'Universal Render Pipeline/Simple Lit'
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from host_assets import HostCapabilities, ShaderHandle
    from material_restore import RestoreRequest

logger = logging.getLogger(__name__)


class ShaderMode(Enum):
    """How the target shader is chosen."""

    STANDARD_PBR = "standard"
    TOON_ANIME = "toon"
    CUSTOM = "custom"


STANDARD_SHADER_NAMES: tuple[str, ...] = (
    "Universal Render Pipeline/Lit",
    "Standard",
)

TOON_SHADER_NAMES: tuple[str, ...] = (
    "lilToon",
    "Universal Render Pipeline/Simple Lit",
    "Unlit/Texture",
)

SHADER_CANDIDATES: dict[ShaderMode, tuple[str, ...]] = {
    ShaderMode.STANDARD_PBR: STANDARD_SHADER_NAMES,
    ShaderMode.TOON_ANIME: TOON_SHADER_NAMES,
}


def find_shader_auto(mode: ShaderMode, host: HostCapabilities) -> ShaderHandle | None:
    """Return the first candidate shader for mode that the host provides.

    Args:
        mode: STANDARD_PBR or TOON_ANIME. CUSTOM has no candidates.
        host: Shader lookup.

    Returns:
        The first matching ShaderHandle, or None if no candidate exists.
    """
    for shader_name in SHADER_CANDIDATES.get(mode, ()):
        shader = host.find_shader_by_name(shader_name)
        if shader is not None:
            logger.debug("Auto-detected shader for %s mode: %s", mode.value, shader.name)
            return shader

    return None


def resolve_shader(request: RestoreRequest, host: HostCapabilities) -> ShaderHandle | None:
    """Resolve the shader for a restore request.

    Custom mode looks up request.custom_shader directly; the automatic
    modes go through find_shader_auto().

    Returns:
        ShaderHandle, or None when no usable shader was found. Callers must
        not attempt the restore in that case.
    """
    if request.shader_mode is ShaderMode.CUSTOM:
        if not request.custom_shader:
            logger.debug("Custom shader mode without a shader name")
            return None
        return host.find_shader_by_name(request.custom_shader)

    return find_shader_auto(request.shader_mode, host)
