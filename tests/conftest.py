import os
import sys

import pytest

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir))
sys.path.insert(0, ROOT)

from host_assets import ShaderHandle, TextureHandle  # noqa: E402


class FakeHost:
    """In-memory HostCapabilities."""

    def __init__(self, shaders=(), textures=()):
        self.shaders = {s.name: s for s in shaders}
        self.textures = list(textures)
        self.shader_queries = []
        self.texture_queries = []

    def find_shader_by_name(self, name):
        self.shader_queries.append(name)
        return self.shaders.get(name)

    def find_texture_by_name(self, name):
        self.texture_queries.append(name)
        for texture in self.textures:
            if texture.name.lower() == name.lower():
                return texture
        return None


@pytest.fixture
def lit_shader():
    return ShaderHandle(
        name="Standard",
        properties=frozenset({"_Color", "_MainTex", "_Cutoff", "_Metallic", "_BumpMap", "_EmissionColor"}),
        file_id=46,
        guid="0000000000000000f000000000000000",
        ref_type=0,
    )


@pytest.fixture
def albedo_texture(tmp_path):
    return TextureHandle(
        name="Hair_Albedo",
        path=tmp_path / "Hair_Albedo.png",
        guid="6f1e2d3c4b5a69788796a5b4c3d2e1f0",
    )


@pytest.fixture
def host(lit_shader, albedo_texture):
    return FakeHost(shaders=[lit_shader], textures=[albedo_texture])
