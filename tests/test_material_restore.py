import json
import logging
from pathlib import Path

import pytest

from conftest import FakeHost
from material_restore import (
    DEFAULT_OUTPUT_FOLDER,
    RestoreConfig,
    RestoreRequest,
    RestoreStats,
    main,
    parse_args,
    restore_material_file,
    run_restore,
)
from shader_selection import ShaderMode

DUMP = {
    "m_Name": "Hair_Mat",
    "m_SavedProperties": {
        "m_Floats": {"_Cutoff": 0.5, "_OutlineWidth": 0.02},
        "m_Colors": {"_Color": {"r": 1, "g": 0.5, "b": 0.25, "a": 1}},
        "m_TexEnvs": {
            "_MainTex": {
                "m_Texture": {"Name": "hair_albedo"},
                "m_Scale": {"X": 1, "Y": 1},
                "m_Offset": {"X": 0, "Y": 0},
            },
            "_BumpMap": {"m_Texture": {"Name": "Missing_Normal"}},
        },
    },
}


def _write_dump(directory, name="Hair_Mat.json", data=DUMP):
    path = directory / name
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


def test_restore_writes_material(tmp_path, host):
    request = RestoreRequest(_write_dump(tmp_path), output_dir=tmp_path / "out")
    stats = RestoreStats()

    output = restore_material_file(request, host, stats)

    assert output == tmp_path / "out" / "Hair_Mat.mat"
    content = output.read_text(encoding="utf-8")
    assert "  m_Name: Hair_Mat" in content
    assert "_OutlineWidth" not in content
    assert stats.materials_restored == 1
    assert stats.properties_assigned == 5
    assert stats.properties_dropped == 1
    assert stats.textures_bound == 1
    assert stats.textures_missing == 1
    assert stats.errors == []
    assert stats.warnings == []


def test_name_falls_back_to_input_stem(tmp_path, host):
    dump = _write_dump(tmp_path, "Body.json", {"m_SavedProperties": {}})
    stats = RestoreStats()
    output = restore_material_file(RestoreRequest(dump, output_dir=tmp_path), host, stats)
    assert output.name == "Body.mat"


def test_malformed_json_reports_one_error(tmp_path, host):
    broken = tmp_path / "Broken.json"
    broken.write_text('{"m_Name": "Broken", ', encoding="utf-8")
    out_dir = tmp_path / "out"
    stats = RestoreStats()

    assert restore_material_file(RestoreRequest(broken, output_dir=out_dir), host, stats) is None
    assert len(stats.errors) == 1
    assert stats.materials_failed == 1
    assert not out_dir.exists()


def test_missing_shader_not_attempted(tmp_path):
    host = FakeHost()
    request = RestoreRequest(_write_dump(tmp_path), ShaderMode.TOON_ANIME, output_dir=tmp_path / "out")
    stats = RestoreStats()

    assert restore_material_file(request, host, stats) is None
    assert len(stats.errors) == 1
    assert "lilToon" in stats.errors[0]
    assert not (tmp_path / "out").exists()
    assert host.texture_queries == []


def test_strict_reports_dropped_properties(tmp_path, host, caplog):
    request = RestoreRequest(_write_dump(tmp_path), output_dir=tmp_path)
    stats = RestoreStats()

    with caplog.at_level(logging.WARNING):
        restore_material_file(request, host, stats, strict=True)

    assert stats.warnings == [
        "Hair_Mat: Standard does not declare floats:_OutlineWidth",
        "Hair_Mat: texture not found: Missing_Normal",
    ]
    assert "floats:_OutlineWidth" in caplog.text
    assert (tmp_path / "Hair_Mat.mat").exists()


def test_dry_run_writes_nothing(tmp_path, host):
    request = RestoreRequest(_write_dump(tmp_path), output_dir=tmp_path / "out")
    stats = RestoreStats()
    output = restore_material_file(request, host, stats, dry_run=True)
    assert output == tmp_path / "out" / "Hair_Mat.mat"
    assert not output.exists()
    assert stats.materials_restored == 1
    assert stats.written == []


def test_run_restore_continues_after_failure(tmp_path, host):
    good = _write_dump(tmp_path)
    bad = tmp_path / "Bad.json"
    bad.write_text("nope", encoding="utf-8")
    config = RestoreConfig(json_files=[bad, good], project_root=tmp_path)

    stats = run_restore(config, host)

    assert stats.materials_restored == 1
    assert stats.materials_failed == 1
    assert stats.written == [tmp_path / DEFAULT_OUTPUT_FOLDER / "Hair_Mat.mat"]


def test_run_restore_continues_after_non_utf8_input(tmp_path, host):
    latin1 = tmp_path / "Latin1.json"
    latin1.write_bytes(b'{"m_Name": "Caf\xe9"}')
    good = _write_dump(tmp_path)
    config = RestoreConfig(json_files=[latin1, good], project_root=tmp_path)

    stats = run_restore(config, host)

    assert stats.materials_failed == 1
    assert len(stats.errors) == 1
    assert "Latin1.json" in stats.errors[0]
    assert stats.written == [tmp_path / DEFAULT_OUTPUT_FOLDER / "Hair_Mat.mat"]


def test_output_file_named_after_material(tmp_path, host):
    dump = _write_dump(tmp_path, "Skin.json", {"m_Name": "_Body__Skin"})
    stats = RestoreStats()
    output = restore_material_file(RestoreRequest(dump, output_dir=tmp_path / "out"), host, stats)
    assert output == tmp_path / "out" / "_Body__Skin.mat"
    assert "  m_Name: _Body__Skin" in output.read_text(encoding="utf-8").splitlines()


def test_config_output_dir(tmp_path):
    config = RestoreConfig(json_files=[], project_root=tmp_path)
    assert config.output_dir == tmp_path / "Assets" / "RestoredMaterials"
    absolute = tmp_path / "elsewhere"
    assert RestoreConfig(json_files=[], output_folder=absolute).output_dir == absolute


def test_parse_args(tmp_path):
    dump = _write_dump(tmp_path)
    config = parse_args([
        str(dump),
        "--project-root", str(tmp_path),
        "--shader-mode", "custom",
        "--custom-shader", "lilToon",
        "--strict",
    ])
    assert config.json_files == [dump]
    assert config.shader_mode is ShaderMode.CUSTOM
    assert config.custom_shader == "lilToon"
    assert config.strict
    assert config.output_folder == DEFAULT_OUTPUT_FOLDER


def test_parse_args_custom_needs_shader(tmp_path):
    with pytest.raises(SystemExit):
        parse_args([str(tmp_path / "a.json"), "--shader-mode", "custom"])


def test_main_end_to_end(tmp_path, capsys):
    project = tmp_path / "Project"
    texture = project / "Assets" / "Textures" / "Hair_Albedo.png"
    texture.parent.mkdir(parents=True)
    texture.write_bytes(b"")
    texture.with_name("Hair_Albedo.png.meta").write_text(
        "fileFormatVersion: 2\nguid: 0730dae39bc73f34796280af9875ce14\n", encoding="utf-8"
    )
    dump = _write_dump(tmp_path)

    assert main([str(dump), "--project-root", str(project)]) == 0

    output = project / "Assets" / "RestoredMaterials" / "Hair_Mat.mat"
    content = output.read_text(encoding="utf-8")
    assert "guid: 0730dae39bc73f34796280af9875ce14" in content
    assert "m_Shader: {fileID: 46, guid: 0000000000000000f000000000000000, type: 0}" in content
    assert "Restore Complete" in capsys.readouterr().out


def test_main_returns_error_code_on_bad_json(tmp_path):
    bad = tmp_path / "Bad.json"
    bad.write_text("[", encoding="utf-8")
    assert main([str(bad), "--project-root", str(tmp_path)]) == 1
    assert not (tmp_path / "Assets").exists()
