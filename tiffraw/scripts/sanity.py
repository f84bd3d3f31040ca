import argparse
from pathlib import Path

import numpy as np
import tifffile as tiff

from tiffraw.config import DEFAULT_CONFIG
from tiffraw.convert import run_conversion


def generate_synthetic_stack(shape=(16, 64, 48), dtype="uint16"):
    """(Z, Y, X) ramp volume; every voxel value encodes its position."""
    z, y, x = np.indices(shape)
    vol = z * shape[1] * shape[2] + y * shape[2] + x
    info = np.iinfo(dtype) if np.dtype(dtype).kind in "ui" else None
    if info is not None:
        vol = vol % (int(info.max) + 1)
    return vol.astype(dtype)


def run_sanity(out_dir: str, shape=(16, 64, 48), dtype="uint16", cfg=DEFAULT_CONFIG) -> bool:
    out = Path(out_dir)
    out.mkdir(parents=True, exist_ok=True)
    vol = generate_synthetic_stack(shape, dtype)
    tif_path = out / "synthetic.tif"
    raw_path = out / "synthetic.raw"
    hdr_path = out / "synthetic.nhdr"
    tiff.imwrite(str(tif_path), vol, photometric="minisblack")

    desc = run_conversion(tif_path, raw_path, hdr_path, cfg)

    data = np.fromfile(str(raw_path), dtype=vol.dtype).reshape(desc.shape)
    ok = desc.shape == vol.shape and np.array_equal(data, vol)
    print(f"Synthetic {desc.width}x{desc.height}x{desc.depth} {vol.dtype} -> {raw_path}: {'OK' if ok else 'MISMATCH'}")
    return ok


def main():
    ap = argparse.ArgumentParser()
    ap.add_argument("--out", type=str, default="./synthetic_outputs")
    ap.add_argument("--dtype", type=str, default="uint16")
    args = ap.parse_args()
    if not run_sanity(args.out, dtype=args.dtype):
        raise SystemExit(1)


if __name__ == "__main__":
    main()
