#!/usr/bin/env python3
"""
JSON Material Restore - Main CLI Entry Point.

This module restores Unity material assets (.mat) from JSON dumps of
previously serialized materials.

Usage:
    python material_restore.py Hair_Mat.json Skin_Mat.json \\
        --project-root "path/to/UnityProject" \\
        --shader-mode toon \\
        --output-folder Assets/RestoredMaterials \\
        --dry-run \\
        --verbose

Pipeline Steps (per input file):
    1. Resolve the target shader (auto-detected from the mode, or custom)
    2. Read and parse the JSON dump
    3. Restore floats, colors and textures the shader declares
    4. Generate the .mat content
    5. Write <output-folder>/<material name>.mat

A file whose JSON cannot be parsed is reported once and produces no output.
Properties the shader does not declare and textures that are missing from
the project are skipped; --strict reports them as warnings.
"""

from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import dataclass, field
from pathlib import Path

from host_assets import HostCapabilities, ProjectHost
from mat_writer import generate_mat, mat_output_path, write_mat_file
from material_json import MaterialJsonError, load_material_json
from property_restorer import restore_properties
from shader_selection import SHADER_CANDIDATES, ShaderMode, resolve_shader

logger = logging.getLogger(__name__)

DEFAULT_OUTPUT_FOLDER = Path("Assets/RestoredMaterials")


@dataclass(frozen=True)
class RestoreRequest:
    """One restore action: a dump, a shader choice and a destination.

    Attributes:
        json_path: JSON dump to restore.
        shader_mode: How the shader is chosen.
        custom_shader: Shader name for ShaderMode.CUSTOM, ignored otherwise.
        output_dir: Folder the .mat file is written to.
    """

    json_path: Path
    shader_mode: ShaderMode = ShaderMode.STANDARD_PBR
    custom_shader: str | None = None
    output_dir: Path = DEFAULT_OUTPUT_FOLDER


@dataclass
class RestoreConfig:
    """Configuration dataclass for a restore run.

    Populated from command-line arguments via parse_args().

    Attributes:
        json_files: JSON dumps to restore. Each is restored independently.
        project_root: Unity project folder. Textures are looked up under
            its Assets/ folder and URP is detected from its package manifest.
        output_folder: Destination for .mat files. Relative paths are
            resolved against project_root.
        shader_mode: Shader selection mode.
        custom_shader: Shader name used in custom mode.
        shader_registry: Optional JSON file declaring extra shaders.
        strict: If True, report dropped properties and missing textures as
            warnings. The materials are written either way.
        overwrite: If True, replace existing .mat files silently.
        dry_run: If True, restore and report without writing files.
        verbose: If True, enable DEBUG logging level for detailed output.

    Example:
        >>> config = RestoreConfig(
        ...     json_files=[Path("dumps/Hair_Mat.json")],
        ...     project_root=Path("C:/Unity/MyAvatar"),
        ...     shader_mode=ShaderMode.TOON_ANIME,
        ...     dry_run=True,  # Preview only
        ... )
    """

    json_files: list[Path]
    project_root: Path = Path(".")
    output_folder: Path = DEFAULT_OUTPUT_FOLDER
    shader_mode: ShaderMode = ShaderMode.STANDARD_PBR
    custom_shader: str | None = None
    shader_registry: Path | None = None
    strict: bool = False
    overwrite: bool = False
    dry_run: bool = False
    verbose: bool = False

    @property
    def output_dir(self) -> Path:
        if self.output_folder.is_absolute():
            return self.output_folder
        return self.project_root / self.output_folder

    def requests(self) -> list[RestoreRequest]:
        return [
            RestoreRequest(
                json_path=json_path,
                shader_mode=self.shader_mode,
                custom_shader=self.custom_shader,
                output_dir=self.output_dir,
            )
            for json_path in self.json_files
        ]


@dataclass
class RestoreStats:
    """Statistics collected during a restore run.

    Attributes:
        materials_restored: Number of .mat files written (or that would be
            written in a dry run).
        materials_failed: Number of inputs that produced no material.
        properties_assigned: Total assignments across all materials.
        properties_dropped: Properties skipped because the shader does not
            declare them.
        textures_bound: Textures bound to material slots.
        textures_missing: Texture names not found in the project.
        written: Paths of the written .mat files.
        warnings: Non-critical issues (only collected in strict mode).
        errors: One entry per failed input.
    """

    materials_restored: int = 0
    materials_failed: int = 0
    properties_assigned: int = 0
    properties_dropped: int = 0
    textures_bound: int = 0
    textures_missing: int = 0
    written: list[Path] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


def parse_args(argv: list[str] | None = None) -> RestoreConfig:
    """Parse command-line arguments and validate inputs.

    Returns:
        RestoreConfig with validated paths.

    Raises:
        SystemExit: If required arguments are missing or invalid.
    """
    parser = argparse.ArgumentParser(
        description="Restore Unity .mat assets from JSON material dumps.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    python material_restore.py Hair_Mat.json \\
        --project-root "C:/Unity/MyAvatar" \\
        --shader-mode toon

    python material_restore.py dumps/*.json \\
        --project-root . \\
        --shader-mode custom --custom-shader "Shader Graphs/Skin" \\
        --shader-registry shaders.json \\
        --dry-run --strict --verbose
""",
    )

    parser.add_argument(
        "json_files",
        type=Path,
        nargs="+",
        metavar="JSON_FILE",
        help="JSON material dump(s) to restore",
    )
    parser.add_argument(
        "--project-root",
        type=Path,
        default=Path("."),
        help="Unity project folder (default: current directory)",
    )
    parser.add_argument(
        "--output-folder",
        type=str,
        default=DEFAULT_OUTPUT_FOLDER.as_posix(),
        help=f"Folder for restored .mat files, relative to the project root "
             f"(default: {DEFAULT_OUTPUT_FOLDER.as_posix()})",
    )
    parser.add_argument(
        "--shader-mode",
        choices=[mode.value for mode in ShaderMode],
        default=ShaderMode.STANDARD_PBR.value,
        help="standard: "
             + " > ".join(SHADER_CANDIDATES[ShaderMode.STANDARD_PBR])
             + "; toon: "
             + " > ".join(SHADER_CANDIDATES[ShaderMode.TOON_ANIME])
             + "; custom: use --custom-shader",
    )
    parser.add_argument(
        "--custom-shader",
        type=str,
        default=None,
        help="Shader name for --shader-mode custom",
    )
    parser.add_argument(
        "--shader-registry",
        type=Path,
        default=None,
        help="JSON file declaring additional shaders and their properties",
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Report properties the shader does not declare and textures not found",
    )
    parser.add_argument(
        "--overwrite",
        action="store_true",
        help="Replace existing .mat files without notice",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Preview without writing files",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )

    args = parser.parse_args(argv)

    shader_mode = ShaderMode(args.shader_mode)

    if shader_mode is ShaderMode.CUSTOM and not args.custom_shader:
        parser.error("--shader-mode custom requires --custom-shader")

    if not args.project_root.is_dir():
        parser.error(f"Project root not found: {args.project_root}")

    if args.shader_registry is not None and not args.shader_registry.is_file():
        parser.error(f"Shader registry not found: {args.shader_registry}")

    if not args.output_folder.strip():
        parser.error("--output-folder must not be empty")

    return RestoreConfig(
        json_files=list(args.json_files),
        project_root=args.project_root.resolve(),
        output_folder=Path(args.output_folder),
        shader_mode=shader_mode,
        custom_shader=args.custom_shader,
        shader_registry=args.shader_registry,
        strict=args.strict,
        overwrite=args.overwrite,
        dry_run=args.dry_run,
        verbose=args.verbose,
    )


def restore_material_file(
    request: RestoreRequest,
    host: HostCapabilities,
    stats: RestoreStats,
    strict: bool = False,
    overwrite: bool = False,
    dry_run: bool = False,
) -> Path | None:
    """Restore one JSON dump into a .mat file.

    Either the whole material is written or nothing is: the dump is parsed
    and the content generated before anything touches the disk.

    Args:
        request: What to restore and where.
        host: Shader and texture lookup.
        stats: Updated in place.
        strict: Report dropped properties and missing textures as warnings.
        overwrite: Replace an existing file without logging it.
        dry_run: Do everything except writing the file.

    Returns:
        Path of the (would-be) .mat file, or None if the restore failed or
        was not attempted.
    """
    shader = resolve_shader(request, host)
    if shader is None:
        if request.shader_mode is ShaderMode.CUSTOM:
            error_msg = f"Shader not found: {request.custom_shader}"
        else:
            error_msg = (
                f"No {request.shader_mode.value} shader found "
                f"(tried: {', '.join(SHADER_CANDIDATES[request.shader_mode])}); "
                "install one or use custom mode"
            )
        logger.error(error_msg)
        stats.errors.append(error_msg)
        stats.materials_failed += 1
        return None

    logger.debug("Using shader %s for %s", shader.name, request.json_path.name)

    try:
        description = load_material_json(request.json_path)
    except (OSError, MaterialJsonError) as e:
        error_msg = f"Error parsing JSON {request.json_path.name}: {e}"
        logger.error(error_msg)
        stats.errors.append(error_msg)
        stats.materials_failed += 1
        return None

    target, report = restore_properties(
        description,
        shader,
        host,
        fallback_name=request.json_path.stem,
    )

    stats.properties_assigned += target.assignment_count()
    stats.properties_dropped += len(report.unmatched)
    stats.textures_bound += len(target.textures)
    stats.textures_missing += len(report.unresolved_textures)

    if strict:
        for entry in report.unmatched:
            warning_msg = f"{target.name}: {shader.name} does not declare {entry}"
            logger.warning(warning_msg)
            stats.warnings.append(warning_msg)
        for texture_name in report.unresolved_textures:
            warning_msg = f"{target.name}: texture not found: {texture_name}"
            logger.warning(warning_msg)
            stats.warnings.append(warning_msg)

    content = generate_mat(target)
    output_path = mat_output_path(target, request.output_dir)

    if dry_run:
        logger.info("[DRY RUN] Would write material: %s", output_path)
        stats.materials_restored += 1
        return output_path

    if output_path.exists() and not overwrite:
        logger.info("Replacing existing material: %s", output_path)

    try:
        write_mat_file(content, output_path)
    except OSError as e:
        error_msg = f"Failed to write {output_path}: {e}"
        logger.error(error_msg)
        stats.errors.append(error_msg)
        stats.materials_failed += 1
        return None

    logger.info("Success: %s", output_path)
    stats.materials_restored += 1
    stats.written.append(output_path)
    return output_path


def run_restore(config: RestoreConfig, host: HostCapabilities | None = None) -> RestoreStats:
    """Restore every input of config.

    Args:
        config: RestoreConfig with inputs and options.
        host: Shader and texture lookup. Built from config.project_root and
            config.shader_registry when not given.

    Returns:
        RestoreStats for the run.

    Raises:
        OSError, ValueError: If the shader registry file cannot be loaded.
    """
    stats = RestoreStats()

    if host is None:
        host = ProjectHost.from_project(config.project_root, config.shader_registry)

    logger.info("Starting material restore...")
    logger.info("  Project Root: %s", config.project_root)
    logger.info("  Output Folder: %s", config.output_dir)
    logger.info("  Shader Mode: %s", config.shader_mode.value)
    if config.shader_mode is ShaderMode.CUSTOM:
        logger.info("  Custom Shader: %s", config.custom_shader)

    for request in config.requests():
        restore_material_file(
            request,
            host,
            stats,
            strict=config.strict,
            overwrite=config.overwrite,
            dry_run=config.dry_run,
        )

    return stats


def print_summary(stats: RestoreStats) -> None:
    """Print restore summary to console."""
    print("\n" + "=" * 60)
    print("Restore Complete")
    print("=" * 60)
    print(f"  Materials Restored:  {stats.materials_restored}")
    if stats.materials_failed > 0:
        print(f"  Materials Failed:    {stats.materials_failed}")
    print(f"  Properties Assigned: {stats.properties_assigned}")
    print(f"  Properties Dropped:  {stats.properties_dropped}")
    print(f"  Textures Bound:      {stats.textures_bound}")
    print(f"  Textures Missing:    {stats.textures_missing}")

    if stats.warnings:
        print(f"\n  Warnings: {len(stats.warnings)}")

    if stats.errors:
        print(f"\n  Errors: {len(stats.errors)}")
        for error in stats.errors[:5]:
            print(f"    - {error}")
        if len(stats.errors) > 5:
            print(f"    ... and {len(stats.errors) - 5} more")

    print("=" * 60 + "\n")


def main(argv: list[str] | None = None) -> int:
    """CLI entry point.

    Returns:
        Exit code (0 for success, 1 for errors).
    """
    try:
        config = parse_args(argv)
    except SystemExit:
        return 1

    log_level = logging.DEBUG if config.verbose else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(levelname)s: %(message)s",
    )

    try:
        stats = run_restore(config)
    except KeyboardInterrupt:
        print("\nRestore interrupted by user.")
        return 1
    except Exception as e:
        logger.exception("Unexpected error during restore: %s", e)
        return 1

    print_summary(stats)

    if stats.errors:
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
