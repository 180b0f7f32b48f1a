"""
Density Field Viewer - Entry Point

Usage:
    python -m density_view [--mode linear|gamma] [--size N] [--window WxH]
    python -m density_view --snap FIELD.npy [--out PATH] [--mode gamma]

Examples:
    python -m density_view
    python -m density_view --mode gamma --size 256
    python -m density_view --snap density.npy --out density.png --window 512x512

Without --snap an interactive window opens (requires pygame). With --snap
the field stored in FIELD.npy (indexed field[x, y]) is rendered headlessly
and saved as a PNG.
"""

import os
import sys

from .colorize import DISPLAY_MODE_ORDER


def snap(field_path, config, out_path=None):
    """Headless mode: render one field through the pass, save PNG, exit."""
    import numpy as np
    from PIL import Image
    from .pipeline import DensityPipeline, TargetFormat

    field = np.load(field_path)
    if field.ndim != 2 or field.shape[0] != field.shape[1]:
        print(f"[DV] Expected a square 2D field, got shape {field.shape}")
        return None

    config = config.model_copy(update={
        "resolution": field.shape[0],
        "target_format": TargetFormat.rgba8unorm,
    })
    pipe = DensityPipeline(config)
    pipe.update(field)
    target = pipe.pass_.draw()

    if out_path is None:
        stem = os.path.splitext(os.path.basename(field_path))[0]
        out_path = f"{stem}_{config.display_mode.value}.png"
    img = Image.fromarray(np.ascontiguousarray(target[..., :3]))
    img.save(out_path)
    print(f"[DV] saved: {out_path}")
    return out_path


def _parse_window(value):
    """'WxH' -> (W, H), or None if malformed."""
    if value is None:
        return None
    parts = value.split("x")
    if len(parts) != 2 or not all(p.isdigit() for p in parts):
        return None
    return int(parts[0]), int(parts[1])


def main(argv=None):
    from pydantic import ValidationError
    from .config import DisplayConfig

    mode = "linear"
    size = None
    win_w = win_h = None
    snap_path = None
    out_path = None

    args = sys.argv[1:] if argv is None else argv
    i = 0
    while i < len(args):
        arg = args[i]
        value = args[i + 1] if i + 1 < len(args) else None
        if arg == "--mode" and value is not None:
            mode = value
            i += 2
        elif arg == "--size" and value is not None and value.isdigit():
            size = int(value)
            i += 2
        elif arg == "--window" and _parse_window(value) is not None:
            win_w, win_h = _parse_window(value)
            i += 2
        elif arg == "--snap" and i + 1 < len(args):
            snap_path = args[i + 1]
            i += 2
        elif arg == "--out" and i + 1 < len(args):
            out_path = args[i + 1]
            i += 2
        elif arg in ("--help", "-h"):
            print(__doc__)
            return 0
        else:
            print(f"Unknown argument: {arg}")
            print("Use --help to see usage")
            return 2

    if mode not in [m.value for m in DISPLAY_MODE_ORDER]:
        print(f"Unknown display mode: {mode} (linear or gamma)")
        return 2

    overrides = {"display_mode": mode}
    if size is not None:
        overrides["resolution"] = size
    if win_w is not None:
        overrides["window_width"] = win_w
        overrides["window_height"] = win_h
    try:
        config = DisplayConfig(**overrides)
    except ValidationError as e:
        print(f"Invalid options: {e}")
        return 2

    if snap_path is not None:
        print(f"Headless snap mode: {snap_path} ({mode})")
        return 0 if snap(snap_path, config, out_path) else 1

    print("Starting Density Field Viewer")
    print(f"  Display: {mode}")
    print(f"  Grid: {config.resolution}x{config.resolution}")
    print(f"  Window: {config.window_width}x{config.window_height}")
    print()

    try:
        from .viewer import Viewer
    except ImportError as e:
        print(f"[DV] Interactive viewer needs pygame ({e}); use --snap for headless output")
        return 1
    Viewer(config).run()
    return 0


if __name__ == "__main__":
    sys.exit(main())
