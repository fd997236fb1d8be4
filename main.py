"""
WireLabel - wireframe texture labels for triangle meshes

Main entry point
"""

import sys
import os
import logging
from pathlib import Path

# Ensure repository root is on sys.path so "wirelabel" is importable.
ROOT_DIR = Path(__file__).resolve().parent
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from wirelabel.core.runtime_defaults import DEFAULTS
from wirelabel.core.output_paths import uv_result_path

_LOGGER = logging.getLogger(__name__)
DEFAULT_UV_CHANNEL = DEFAULTS.uv_channel
DEFAULT_ANGLE_CUTOFF_DEG = DEFAULTS.angle_cutoff_degrees


def _pop_option(args: list, name: str):
    """Remove `name VALUE` from args; returns VALUE or None."""
    if name not in args:
        return None
    i = args.index(name)
    if i + 1 >= len(args):
        raise ValueError(f"{name} requires a value")
    value = args[i + 1]
    del args[i:i + 2]
    return value


def run_cli():
    """Run the command line interface"""
    log_path = None
    try:
        from wirelabel.core.logging_utils import setup_logging

        log_path = setup_logging()
    except Exception as e:
        _LOGGER.debug("Failed to initialize logging: %s", e, exc_info=True)

    args = list(sys.argv[1:])
    if not args:
        print_help()
        return

    try:
        channel = _pop_option(args, '--channel')
        angle = _pop_option(args, '--angle')
        channel = DEFAULT_UV_CHANNEL if channel is None else int(channel)
        angle = DEFAULT_ANGLE_CUTOFF_DEG if angle is None else float(angle)
    except ValueError as e:
        print(f"Error: {e}")
        print("Use --help for usage information")
        return

    if not args:
        print_help()
        return

    cmd = args[0]

    if cmd == '--help' or cmd == '-h':
        print_help()
        return

    if cmd == '--info' and len(args) > 1:
        show_file_info(args[1])
        return

    if os.path.exists(cmd):
        label_mesh(cmd, args[1] if len(args) > 1 else None, channel=channel, angle=angle, log_path=log_path)
    else:
        print(f"Error: Unknown command or file not found: {cmd}")
        print("Use --help for usage information")


def print_help():
    """Print usage"""
    from wirelabel.core.mesh_loader import MeshLoader

    print("=" * 60)
    print("WireLabel - wireframe texture labels for triangle meshes")
    print("=" * 60)
    print()
    print("Usage:")
    print("  python main.py <mesh_file> [output]     # Label mesh, write .wfuv result")
    print("  python main.py --info <mesh_file>       # Show file info")
    print()
    print("Options:")
    print(f"  --channel N     UV channel to fill, 0..7 (default: {DEFAULT_UV_CHANNEL})")
    print(f"  --angle DEG     Edge angle cutoff, 0..90 (default: {DEFAULT_ANGLE_CUTOFF_DEG:g})")
    print()
    print(f"Supported formats: {list(MeshLoader.get_supported_formats().keys())}")
    print()
    print("Examples:")
    print("  python main.py crate.obj")
    print("  python main.py --angle 30 --channel 2 crate.glb crate_wire.wfuv")


def show_file_info(filepath: str):
    """Show file info"""
    from wirelabel.core.mesh_loader import MeshLoader

    print(f"\nFile Info: {filepath}")
    print("-" * 40)

    try:
        loader = MeshLoader()
        info = loader.get_file_info(filepath)
        for key, value in info.items():
            print(f"  {key}: {value}")
    except Exception as e:
        print(f"  Error: {e}")


def label_mesh(filepath: str, output_path: str | None = None, *, channel: int, angle: float, log_path=None):
    """Load a mesh, generate wireframe labels and save the UV result"""
    from wirelabel.core.logging_utils import format_exception_message, warning_sink
    from wirelabel.core.mesh_loader import MeshLoader
    from wirelabel.core.texture_coordinates import WireframeTextureCoordinateGenerator
    from wirelabel.core.uv_file import save_uv_file

    print(f"\n{'='*60}")
    print(f"Labeling: {filepath}")
    print(f"{'='*60}")

    try:
        # 1. Load
        print("\n[1/3] Loading mesh...")
        loader = MeshLoader()
        mesh = loader.load(filepath)

        print(f"      Vertices: {mesh.n_vertices:,}")
        print(f"      Faces: {mesh.n_faces:,}")
        print(f"      Submeshes: {len(mesh.submeshes)}")
        print(f"      Size: {mesh.extents[0]:.2f} x {mesh.extents[1]:.2f} x {mesh.extents[2]:.2f}")

        # 2. Label
        print(f"\n[2/3] Generating labels (channel {channel}, cutoff {angle:g} deg)...")
        log_warning = warning_sink(_LOGGER, prefix=Path(filepath).name)

        def report_warning(msg: str) -> None:
            log_warning(msg)
            print(f"      Warning: {msg}")

        generator = WireframeTextureCoordinateGenerator()
        result = generator.generate(mesh, channel, angle, report_warning)
        summary = result.summary()

        print(f"      Regions: {summary['n_regions']} {summary['region_kinds']}")
        print(f"      Edge groups: {summary['n_edge_groups']}")
        print(f"      UV components: {result.components}")

        # 3. Save
        print("\n[3/3] Saving output...")
        save_path = uv_result_path(filepath, output_path)
        save_uv_file(
            save_path,
            result.uvs,
            channel=result.channel,
            summary={**summary, "regions": [r.to_dict() for r in result.regions]},
            meta={"source": str(filepath), "angle_cutoff_degrees": float(angle)},
        )

        print(f"      Saved: {save_path}")

        print(f"\n{'='*60}")
        print("Done!")
        print(f"{'='*60}")

    except Exception as e:
        _LOGGER.exception("Labeling failed for %s", filepath)
        print()
        print(format_exception_message("Error:", f"{type(e).__name__}: {e}", log_path=log_path))


if __name__ == '__main__':
    run_cli()
