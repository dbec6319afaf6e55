import os
from pathlib import Path

import pytest

from host_assets import ShaderHandle, TextureHandle
from mat_writer import (
    format_color,
    format_float,
    generate_and_write_mat,
    generate_mat,
    mat_output_path,
    sanitize_filename,
    write_mat_file,
)
from property_restorer import TargetMaterial


def test_format_float():
    assert format_float(1.0) == "1"
    assert format_float(-2.0) == "-2"
    assert format_float(0.5) == "0.5"
    assert format_float(0.1 + 0.2) == "0.30000000000000004"
    assert float(format_float(1e-7)) == 1e-7


def test_format_color():
    assert format_color(1.0, 0.5, 0.25, 1.0) == "{r: 1, g: 0.5, b: 0.25, a: 1}"


def test_sanitize_filename():
    assert sanitize_filename("Hair_Mat") == "Hair_Mat"
    assert sanitize_filename("Mat:With/Bad<Chars>") == "Mat_With_Bad_Chars_"
    assert sanitize_filename("") == "unnamed_material"
    assert sanitize_filename("   ") == "unnamed_material"


def test_sanitize_filename_keeps_underscores():
    assert sanitize_filename("_Body__Skin") == "_Body__Skin"
    assert sanitize_filename("A_B") != sanitize_filename("A__B")


def test_generate_mat(lit_shader, albedo_texture):
    material = TargetMaterial(
        name="Hair_Mat",
        shader=lit_shader,
        floats={"_Cutoff": 0.5, "_Metallic": 0.0},
        colors={"_Color": (1.0, 0.5, 0.25, 1.0)},
        texture_scales={"_BumpMap": (2.0, 2.0)},
        texture_offsets={"_BumpMap": (0.5, 0.0)},
        textures={"_MainTex": albedo_texture},
    )
    content = generate_mat(material)
    lines = content.splitlines()

    assert lines[:4] == [
        "%YAML 1.1",
        "%TAG !u! tag:unity3d.com,2011:",
        "--- !u!21 &2100000",
        "Material:",
    ]
    assert "  m_Name: Hair_Mat" in lines
    assert "  m_Shader: {fileID: 46, guid: 0000000000000000f000000000000000, type: 0}" in lines

    bump = lines.index("    - _BumpMap:")
    assert lines[bump + 1:bump + 4] == [
        "        m_Texture: {fileID: 0}",
        "        m_Scale: {x: 2, y: 2}",
        "        m_Offset: {x: 0.5, y: 0}",
    ]
    main = lines.index("    - _MainTex:")
    assert lines[main + 1:main + 4] == [
        f"        m_Texture: {{fileID: 2800000, guid: {albedo_texture.guid}, type: 3}}",
        "        m_Scale: {x: 1, y: 1}",
        "        m_Offset: {x: 0, y: 0}",
    ]
    assert "    - _Cutoff: 0.5" in lines
    assert "    - _Metallic: 0" in lines
    assert "    - _Color: {r: 1, g: 0.5, b: 0.25, a: 1}" in lines
    assert content.endswith("\n")


def test_generate_empty_material_uses_empty_lists():
    material = TargetMaterial(name="Bare", shader=ShaderHandle(name="Custom/NoGuid"))
    lines = generate_mat(material).splitlines()
    assert "  m_Shader: {fileID: 0}" in lines
    assert "    m_TexEnvs: []" in lines
    assert "    m_Floats: []" in lines
    assert "    m_Colors: []" in lines


def test_texture_without_guid_is_left_empty(lit_shader):
    texture = TextureHandle(name="New", path=Path("New.png"))
    material = TargetMaterial(name="M", shader=lit_shader, textures={"_MainTex": texture})
    lines = generate_mat(material).splitlines()
    main = lines.index("    - _MainTex:")
    assert lines[main + 1] == "        m_Texture: {fileID: 0}"


def test_quoted_name(lit_shader):
    material = TargetMaterial(name="Hair: Front", shader=lit_shader)
    assert "  m_Name: 'Hair: Front'" in generate_mat(material).splitlines()


def test_generate_and_write(tmp_path, lit_shader):
    material = TargetMaterial(name="Skin/Mat", shader=lit_shader, floats={"_Cutoff": 0.25})
    output = generate_and_write_mat(material, tmp_path / "Assets" / "RestoredMaterials")
    assert output == tmp_path / "Assets" / "RestoredMaterials" / "Skin_Mat.mat"
    assert "    - _Cutoff: 0.25" in output.read_text(encoding="utf-8").splitlines()


def test_output_path_keeps_material_name(tmp_path, lit_shader):
    material = TargetMaterial(name="_Body__Skin", shader=lit_shader)
    assert mat_output_path(material, tmp_path) == tmp_path / "_Body__Skin.mat"


def test_write_replaces_existing_file(tmp_path):
    output = tmp_path / "Skin.mat"
    output.write_text("old", encoding="utf-8")
    write_mat_file("new", output)
    assert output.read_text(encoding="utf-8") == "new"
    assert list(tmp_path.iterdir()) == [output]


def test_failed_write_keeps_existing_file(tmp_path, monkeypatch):
    output = tmp_path / "Skin.mat"
    output.write_text("old", encoding="utf-8")

    def fail_replace(src, dst):
        raise OSError("disk full")

    monkeypatch.setattr(os, "replace", fail_replace)

    with pytest.raises(OSError):
        write_mat_file("new content", output)

    assert output.read_text(encoding="utf-8") == "old"
    assert list(tmp_path.iterdir()) == [output]
