"""
Host Asset Capabilities for Material Restoration.

The restore logic never talks to a Unity project directly. Instead it asks
a host for two things: a shader by name, and a texture by name. This module
defines that interface and a filesystem-backed implementation working on a
Unity project folder.

Overview
--------
- **HostCapabilities**: Protocol with find_shader_by_name() and
  find_texture_by_name(). Tests supply in-memory fakes.

- **ShaderRegistry**: Maps shader names to the set of properties each shader
  declares. Built-in declarations cover Unity's Standard and Unlit/Texture
  shaders, plus the URP Lit and Simple Lit shaders when the project has the
  URP package installed. Other shaders (lilToon, custom project shaders)
  are added from a JSON registry file.

- **TextureIndex**: Recursive scan of a project folder for texture files.
  Lookup is a case-insensitive substring search over file names, filtered
  to an exact case-insensitive match of the file stem.

- **ProjectHost**: Default HostCapabilities combining the two.

Registry File Format
--------------------
    {
      "shaders": [
        {
          "name": "lilToon",
          "properties": ["_MainTex", "_Color", "_ShadowColor"],
          "fileID": 4800000,
          "guid": "0123456789abcdef0123456789abcdef",
          "type": 3
        }
      ]
    }

fileID, guid and type are the Unity object reference written into the
restored .mat file's m_Shader field. They are optional; without a guid the
shader reference is left empty.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from typing import Any, Iterable

logger = logging.getLogger(__name__)

# Texture file extensions Unity imports as Texture assets
TEXTURE_EXTENSIONS = frozenset({
    ".png", ".tga", ".jpg", ".jpeg", ".psd", ".tif", ".tiff",
    ".exr", ".hdr", ".bmp", ".gif",
})

# Lowercase form used for shader references
_GUID_PATTERN = re.compile(r"[0-9a-f]{32}")

# Matches the asset GUID line in a Unity .meta file
# Format: guid: <32-char-hex>
# Example: "guid: 0730dae39bc73f34796280af9875ce14"
_META_GUID_PATTERN = re.compile(r"^guid:\s*([a-fA-F0-9]{32})\s*$", re.MULTILINE)

# Built-in shaders live in Unity's "extra resources" and share this GUID
BUILTIN_SHADER_GUID = "0000000000000000f000000000000000"


@dataclass(frozen=True)
class ShaderHandle:
    """A shader known to the host.

    Attributes:
        name: Shader name as passed to Shader.Find (e.g., "Standard").
        properties: Property names the shader declares. This is the only
            knowledge the restorer uses to accept or drop a property.
        file_id: Unity fileID of the shader object.
        guid: Unity GUID of the shader asset, or None if unknown.
        ref_type: Unity reference type (0 for built-in, 3 for assets).

    Example:
        >>> shader = ShaderHandle("Unlit/Texture", frozenset({"_MainTex"}))
        >>> shader.has_property("_MainTex")
        True
    """

    name: str
    properties: frozenset[str] = frozenset()
    file_id: int = 4800000
    guid: str | None = None
    ref_type: int = 3

    def has_property(self, prop_name: str) -> bool:
        return prop_name in self.properties


@dataclass(frozen=True)
class TextureHandle:
    """A texture asset found in the project.

    Attributes:
        name: File stem (e.g., "Hair_Albedo" for Hair_Albedo.png).
        path: Location of the texture file.
        guid: GUID from the texture's .meta sidecar, or None if the texture
            has not been imported by Unity yet.
    """

    name: str
    path: Path
    guid: str | None = None


class HostCapabilities(Protocol):
    """What the restore pipeline needs from its host environment."""

    def find_shader_by_name(self, name: str) -> ShaderHandle | None:
        ...

    def find_texture_by_name(self, name: str) -> TextureHandle | None:
        ...


# =============================================================================
# BUILT-IN SHADER DECLARATIONS
# =============================================================================
# Property names each stock shader exposes for assignment. Only membership
# matters, so each list is the union of all properties in the shader's
# Properties block.

_STANDARD_PROPERTIES = frozenset({
    "_Color", "_MainTex", "_Cutoff",
    "_Glossiness", "_GlossMapScale", "_SmoothnessTextureChannel",
    "_Metallic", "_MetallicGlossMap",
    "_SpecularHighlights", "_GlossyReflections",
    "_BumpScale", "_BumpMap",
    "_Parallax", "_ParallaxMap",
    "_OcclusionStrength", "_OcclusionMap",
    "_EmissionColor", "_EmissionMap",
    "_DetailMask", "_DetailAlbedoMap", "_DetailNormalMapScale", "_DetailNormalMap",
    "_UVSec", "_Mode", "_SrcBlend", "_DstBlend", "_ZWrite",
})

_URP_LIT_PROPERTIES = frozenset({
    "_WorkflowMode", "_BaseMap", "_BaseColor", "_Cutoff",
    "_Smoothness", "_SmoothnessTextureChannel",
    "_Metallic", "_MetallicGlossMap",
    "_SpecColor", "_SpecGlossMap",
    "_SpecularHighlights", "_EnvironmentReflections",
    "_BumpScale", "_BumpMap",
    "_Parallax", "_ParallaxMap",
    "_OcclusionStrength", "_OcclusionMap",
    "_EmissionColor", "_EmissionMap",
    "_DetailMask", "_DetailAlbedoMapScale", "_DetailAlbedoMap",
    "_DetailNormalMapScale", "_DetailNormalMap",
    "_ClearCoatMask", "_ClearCoatSmoothness",
    "_Surface", "_Blend", "_Cull", "_AlphaClip",
    "_SrcBlend", "_DstBlend", "_SrcBlendAlpha", "_DstBlendAlpha",
    "_ZWrite", "_BlendModePreserveSpecular", "_AlphaToMask",
    "_ReceiveShadows", "_QueueOffset",
    # Legacy names kept by URP for material upgrades
    "_MainTex", "_Color", "_GlossMapScale", "_Glossiness", "_GlossyReflections",
})

_URP_SIMPLE_LIT_PROPERTIES = frozenset({
    "_BaseMap", "_BaseColor", "_Cutoff",
    "_Smoothness", "_SpecColor", "_SpecGlossMap", "_SmoothnessSource",
    "_SpecularHighlights",
    "_BumpMap",
    "_EmissionColor", "_EmissionMap",
    "_Surface", "_Blend", "_AlphaClip", "_Cull",
    "_SrcBlend", "_DstBlend", "_SrcBlendAlpha", "_DstBlendAlpha",
    "_ZWrite", "_AlphaToMask",
    "_ReceiveShadows", "_QueueOffset",
    "_MainTex", "_Color", "_Shininess", "_GlossinessSource", "_SpecSource",
})

_UNLIT_TEXTURE_PROPERTIES = frozenset({"_MainTex"})

BUILTIN_SHADERS: tuple[ShaderHandle, ...] = (
    ShaderHandle(
        name="Standard",
        properties=_STANDARD_PROPERTIES,
        file_id=46,
        guid=BUILTIN_SHADER_GUID,
        ref_type=0,
    ),
    ShaderHandle(
        name="Unlit/Texture",
        properties=_UNLIT_TEXTURE_PROPERTIES,
        file_id=10752,
        guid=BUILTIN_SHADER_GUID,
        ref_type=0,
    ),
)

# Only present when the project has the Universal Render Pipeline package
URP_PACKAGE_NAME = "com.unity.render-pipelines.universal"

URP_SHADERS: tuple[ShaderHandle, ...] = (
    ShaderHandle(
        name="Universal Render Pipeline/Lit",
        properties=_URP_LIT_PROPERTIES,
        guid="933532a4fcc9baf4fa0491de14d08ed7",
    ),
    ShaderHandle(
        name="Universal Render Pipeline/Simple Lit",
        properties=_URP_SIMPLE_LIT_PROPERTIES,
        guid="8d2bb70cbf9db8d4da26e15b26e74248",
    ),
)


# =============================================================================
# SHADER REGISTRY
# =============================================================================

@dataclass
class ShaderRegistry:
    """Shader name to ShaderHandle lookup.

    Names are matched exactly, as Shader.Find does.
    """

    shaders: dict[str, ShaderHandle] = field(default_factory=dict)

    @classmethod
    def with_builtins(cls, include_urp: bool = False) -> ShaderRegistry:
        shaders = BUILTIN_SHADERS + URP_SHADERS if include_urp else BUILTIN_SHADERS
        return cls({shader.name: shader for shader in shaders})

    def register(self, shader: ShaderHandle) -> None:
        if shader.name in self.shaders:
            logger.debug("Replacing shader declaration: %s", shader.name)
        self.shaders[shader.name] = shader

    def find(self, name: str) -> ShaderHandle | None:
        return self.shaders.get(name)

    def __len__(self) -> int:
        return len(self.shaders)


def _shader_from_entry(entry: dict[str, Any]) -> ShaderHandle:
    """Build a ShaderHandle from one registry file entry.

    Raises:
        ValueError: If the entry has no name or its properties are not a
            list of strings.
    """
    name = entry.get("name")
    if not isinstance(name, str) or not name:
        raise ValueError(f"Shader entry without a name: {entry!r}")

    properties = entry.get("properties", [])
    if not isinstance(properties, list) or not all(isinstance(p, str) for p in properties):
        raise ValueError(f"Shader '{name}': properties must be a list of strings")

    guid = entry.get("guid")
    if guid is not None:
        guid = str(guid).lower()
        if not _is_valid_guid(guid):
            raise ValueError(f"Shader '{name}': invalid guid {guid!r}")

    return ShaderHandle(
        name=name,
        properties=frozenset(properties),
        file_id=int(entry.get("fileID", 4800000)),
        guid=guid,
        ref_type=int(entry.get("type", 3)),
    )


def load_shader_registry(path: Path | None = None, include_urp: bool = False) -> ShaderRegistry:
    """Create a registry with the built-in shaders plus a registry file.

    Args:
        path: Optional JSON registry file. Entries replace built-in shaders
            with the same name.
        include_urp: Also declare the URP Lit and Simple Lit shaders.

    Returns:
        ShaderRegistry ready for lookups.

    Raises:
        OSError: If the registry file cannot be read.
        ValueError: If the registry file is not valid JSON or an entry is
            malformed. A broken registry is a configuration error, so it is
            reported rather than skipped.

    Example:
        >>> registry = load_shader_registry(Path("shaders.json"))
        >>> registry.find("lilToon").has_property("_ShadowColor")
        True
    """
    registry = ShaderRegistry.with_builtins(include_urp)

    if path is None:
        return registry

    data = json.loads(path.read_text(encoding="utf-8-sig"))
    entries = data.get("shaders") if isinstance(data, dict) else None
    if not isinstance(entries, list):
        raise ValueError(f"{path}: expected an object with a 'shaders' list")

    for entry in entries:
        if not isinstance(entry, dict):
            raise ValueError(f"{path}: shader entries must be objects")
        registry.register(_shader_from_entry(entry))

    logger.info("Loaded %d shader declaration(s) from %s", len(entries), path)
    return registry


# =============================================================================
# TEXTURE INDEX
# =============================================================================

def _is_valid_guid(guid: str) -> bool:
    """Check if a string is a valid Unity GUID (32 hex characters).

    Example:
        >>> _is_valid_guid("0730dae39bc73f34796280af9875ce14")
        True
        >>> _is_valid_guid("0730dae39bc73f34")  # Too short
        False
        >>> _is_valid_guid("0x30dae39bc73f34796280af9875ce14")
        False
    """
    return _GUID_PATTERN.fullmatch(guid) is not None


def read_meta_guid(asset_path: Path) -> str | None:
    """Read the GUID from an asset's .meta sidecar.

    Args:
        asset_path: Path to the asset (not the .meta file).

    Returns:
        Lowercase GUID, or None if there is no readable .meta file.
    """
    meta_path = asset_path.with_name(asset_path.name + ".meta")
    if not meta_path.is_file():
        return None

    try:
        content = meta_path.read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        logger.warning("Failed to read %s: %s", meta_path, e)
        return None

    match = _META_GUID_PATTERN.search(content)
    if match:
        return match.group(1).lower()

    logger.debug("No guid found in %s", meta_path)
    return None


class TextureIndex:
    """Index of texture files under a project folder.

    Mirrors how the editor's asset search behaves: search() finds every
    texture whose name contains the term, and find() narrows that to an
    exact, case-insensitive file stem match.
    """

    def __init__(self, textures: Iterable[TextureHandle] = ()):
        self._textures = sorted(textures, key=lambda t: str(t.path))

    @classmethod
    def scan(cls, root: Path) -> TextureIndex:
        """Build an index by scanning root recursively.

        Hidden folders and folders ending in "~" are skipped, as Unity does
        not import them.
        """
        textures: list[TextureHandle] = []

        if not root.is_dir():
            logger.warning("Texture search root not found: %s", root)
            return cls(textures)

        for path in root.rglob("*"):
            if path.suffix.lower() not in TEXTURE_EXTENSIONS or not path.is_file():
                continue
            relative_parts = path.relative_to(root).parts[:-1]
            if any(part.startswith(".") or part.endswith("~") for part in relative_parts):
                continue
            textures.append(TextureHandle(name=path.stem, path=path, guid=read_meta_guid(path)))

        logger.debug("Indexed %d texture(s) under %s", len(textures), root)
        return cls(textures)

    def __len__(self) -> int:
        return len(self._textures)

    def search(self, term: str) -> list[TextureHandle]:
        """Return textures whose file stem contains term (case-insensitive)."""
        needle = term.lower()
        return [t for t in self._textures if needle in t.name.lower()]

    def find(self, name: str) -> TextureHandle | None:
        """Return the first texture whose file stem equals name, ignoring case.

        Example:
            >>> index.find("hair_albedo")
            TextureHandle(name='Hair_Albedo', path=PosixPath('Assets/Hair_Albedo.png'), guid=...)
        """
        wanted = name.lower()
        for texture in self.search(name):
            if texture.name.lower() == wanted:
                return texture
        return None


# =============================================================================
# PROJECT HOST
# =============================================================================

def project_uses_urp(project_root: Path) -> bool:
    """Check the project's package manifest for the URP package.

    A missing or unreadable manifest counts as "not installed".
    """
    manifest_path = project_root / "Packages" / "manifest.json"
    if not manifest_path.is_file():
        return False

    try:
        manifest = json.loads(manifest_path.read_text(encoding="utf-8-sig"))
    except (OSError, ValueError) as e:
        logger.warning("Failed to read %s: %s", manifest_path, e)
        return False

    dependencies = manifest.get("dependencies") if isinstance(manifest, dict) else None
    return isinstance(dependencies, dict) and URP_PACKAGE_NAME in dependencies


class ProjectHost:
    """HostCapabilities backed by a shader registry and a texture index."""

    def __init__(self, registry: ShaderRegistry, textures: TextureIndex):
        self.registry = registry
        self.textures = textures

    @classmethod
    def from_project(cls, project_root: Path, registry_path: Path | None = None) -> ProjectHost:
        """Create a host for a Unity project folder.

        URP shaders are declared when Packages/manifest.json lists the URP
        package. Textures are indexed under project_root/Assets when it
        exists, otherwise under project_root itself.
        """
        include_urp = project_uses_urp(project_root)
        logger.debug("Universal Render Pipeline installed: %s", include_urp)

        assets_dir = project_root / "Assets"
        search_root = assets_dir if assets_dir.is_dir() else project_root
        return cls(
            load_shader_registry(registry_path, include_urp=include_urp),
            TextureIndex.scan(search_root),
        )

    def find_shader_by_name(self, name: str) -> ShaderHandle | None:
        return self.registry.find(name)

    def find_texture_by_name(self, name: str) -> TextureHandle | None:
        return self.textures.find(name)
