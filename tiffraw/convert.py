import argparse
import dataclasses
import logging
import sys
from pathlib import Path
from typing import List, Optional, Union

from tiffraw.config import DEFAULT_CONFIG, Config
from tiffraw.data import open_volume
from tiffraw.errors import OutputOpenError, TiffRawError
from tiffraw.header import write_header
from tiffraw.probe import VolumeDescriptor, extract_metadata, probe_dimensions
from tiffraw.rawcopy import copy_raw

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def run_conversion(
    input_path: PathLike,
    raw_path: PathLike,
    header_path: Optional[PathLike] = None,
    cfg: Config = DEFAULT_CONFIG,
) -> VolumeDescriptor:
    """Convert a TIFF stack to a raw volume, plus an NRRD header if requested."""
    with open_volume(input_path) as vol:
        dims = probe_dimensions(vol)
        desc = extract_metadata(vol, dims)
        if cfg.verbose_dump:
            vol.print_directory()

        try:
            out = open(raw_path, "wb")
        except OSError as e:
            raise OutputOpenError(raw_path, e.strerror or e) from e
        with out:
            copy_raw(vol, desc, out, cfg)

    if header_path is not None:
        write_header(desc, raw_path, header_path, cfg)
    return desc


class _ArgumentParser(argparse.ArgumentParser):
    def error(self, message):
        self.print_usage(sys.stderr)
        self.exit(1, f"{self.prog}: error: {message}\n")


def _setup_logging() -> None:
    logging.basicConfig(level=logging.INFO, format="%(message)s", stream=sys.stderr)


def _run(args, cfg: Config) -> int:
    _setup_logging()
    header = getattr(args, "header", None)
    try:
        run_conversion(args.input, args.raw, header, cfg)
    except TiffRawError as e:
        logger.error("error: %s", e)
        return 1
    except OSError as e:
        logger.error("error: writing '%s' failed: %s", args.raw, e)
        return 1
    return 0


def main_raw(argv: Optional[List[str]] = None) -> int:
    ap = _ArgumentParser(prog="tiffraw", description="Copy the scanlines of a TIFF stack into a raw file")
    ap.add_argument("input", type=str, help="input .tif stack")
    ap.add_argument("raw", type=str, help="output raw file")
    ap.add_argument("--no-dump", action="store_true", help="do not print the TIFF directory")
    ap.add_argument("--no-progress", action="store_true")
    args = ap.parse_args(argv)
    cfg = dataclasses.replace(DEFAULT_CONFIG, verbose_dump=not args.no_dump, progress=not args.no_progress)
    return _run(args, cfg)


def main_nrrd(argv: Optional[List[str]] = None) -> int:
    ap = _ArgumentParser(prog="tiff2nrrd", description="Convert a TIFF stack to a raw volume with a detached NRRD header")
    ap.add_argument("input", type=str, help="input .tif stack")
    ap.add_argument("raw", type=str, help="output raw file")
    ap.add_argument("header", type=str, help="output .nhdr header")
    ap.add_argument("--dump", action="store_true", help="print the TIFF directory of the first page")
    ap.add_argument("--no-progress", action="store_true")
    args = ap.parse_args(argv)
    cfg = dataclasses.replace(DEFAULT_CONFIG, verbose_dump=args.dump, progress=not args.no_progress)
    return _run(args, cfg)


def main(argv: Optional[List[str]] = None) -> int:
    ap = _ArgumentParser(prog="python -m tiffraw.convert")
    ap.add_argument("input", type=str, help="input .tif stack")
    ap.add_argument("raw", type=str, help="output raw file")
    ap.add_argument("header", type=str, nargs="?", default=None, help="output .nhdr header (optional)")
    ap.add_argument("--dump", action="store_true", help="print the TIFF directory of the first page")
    ap.add_argument("--no-progress", action="store_true")
    args = ap.parse_args(argv)
    cfg = dataclasses.replace(DEFAULT_CONFIG, verbose_dump=args.dump, progress=not args.no_progress)
    return _run(args, cfg)


if __name__ == "__main__":
    sys.exit(main())
