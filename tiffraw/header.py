import logging
from pathlib import Path
from typing import Union

from tiffraw.config import DEFAULT_CONFIG
from tiffraw.errors import OutputOpenError
from tiffraw.probe import SampleFormat, VolumeDescriptor, sample_format_label

logger = logging.getLogger(__name__)

NRRD_TYPES = {
    (SampleFormat.UINT, 8): "uint8",
    (SampleFormat.UINT, 16): "uint16",
    (SampleFormat.UINT, 32): "uint32",
    (SampleFormat.UINT, 64): "uint64",
    (SampleFormat.INT, 8): "int8",
    (SampleFormat.INT, 16): "int16",
    (SampleFormat.INT, 32): "int32",
    (SampleFormat.INT, 64): "int64",
    (SampleFormat.IEEEFP, 32): "float",
    (SampleFormat.IEEEFP, 64): "double",
}


def nrrd_type(bits: int, sample_format: int) -> str:
    """NRRD type name for a TIFF sample layout, or "unknown"."""
    return NRRD_TYPES.get((int(sample_format), int(bits)), "unknown")


def format_header(desc: VolumeDescriptor, raw_path: Union[str, Path], cfg=DEFAULT_CONFIG) -> str:
    lines = [
        cfg.nrrd_magic,
        "dimension: 3",
        f"sizes: {desc.width} {desc.height} {desc.depth}",
        f"type: {nrrd_type(desc.bits_per_sample, desc.sample_format)}",
        f"encoding: {cfg.encoding}",
        f"data file: {raw_path}",
    ]
    return "\n".join(lines) + "\n"


def write_header(desc: VolumeDescriptor, raw_path: Union[str, Path], header_path: Union[str, Path], cfg=DEFAULT_CONFIG) -> None:
    """Write a detached NRRD header for ``raw_path`` to ``header_path``.

    The header is rendered before the file is opened; if writing fails part
    way the file is removed again.
    """
    text = format_header(desc, raw_path, cfg)
    if nrrd_type(desc.bits_per_sample, desc.sample_format) == "unknown":
        logger.warning(
            "No NRRD type for %d-bit %s samples; header type is 'unknown'.",
            desc.bits_per_sample,
            sample_format_label(desc.sample_format),
        )
    try:
        f = open(header_path, "w", encoding="utf-8", newline="\n")
    except OSError as e:
        raise OutputOpenError(header_path, e.strerror or e) from e
    try:
        with f:
            f.write(text)
    except OSError as e:
        Path(header_path).unlink(missing_ok=True)
        raise OutputOpenError(header_path, e) from e
