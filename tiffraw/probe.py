import enum
import logging
from dataclasses import dataclass
from typing import Tuple, Union

from tiffraw.data import VolumeHandle

logger = logging.getLogger(__name__)

TAG_IMAGEWIDTH = 256
TAG_IMAGELENGTH = 257
TAG_BITSPERSAMPLE = 258
TAG_SAMPLESPERPIXEL = 277
TAG_SAMPLEFORMAT = 339


class SampleFormat(enum.IntEnum):
    UINT = 1
    INT = 2
    IEEEFP = 3
    VOID = 4
    COMPLEXINT = 5
    COMPLEXIEEEFP = 6


SAMPLE_FORMAT_LABELS = {
    SampleFormat.UINT: "unsigned integer",
    SampleFormat.INT: "integer",
    SampleFormat.IEEEFP: "floating point",
    SampleFormat.VOID: "void",
    SampleFormat.COMPLEXINT: "complex integer",
    SampleFormat.COMPLEXIEEEFP: "complex floating point",
}


@dataclass(frozen=True)
class VolumeDescriptor:
    width: int
    height: int
    depth: int
    bits_per_sample: int
    components: int
    sample_format: Union[SampleFormat, int]

    @property
    def shape(self) -> Tuple[int, int, int]:
        """(Z, Y, X) shape of the volume."""
        return (self.depth, self.height, self.width)


def sample_format_label(code: int) -> str:
    try:
        return SAMPLE_FORMAT_LABELS[SampleFormat(code)]
    except ValueError:
        return "unknown!"


def _dimension(handle: VolumeHandle, tag: int, name: str) -> int:
    value = handle.get_field(tag)
    if value is None:
        logger.error("%s: directory %d has no %s field", handle.path, handle.index, name)
        return 0
    return int(value)


def probe_dimensions(handle: VolumeHandle) -> Tuple[int, int, int]:
    """Return (width, height, depth) of the stack.

    X and Y come from the first page and are assumed constant; pages that
    disagree only produce a warning. Z is the number of pages.
    """
    handle.set_directory(0)
    x = _dimension(handle, TAG_IMAGEWIDTH, "ImageWidth")
    y = _dimension(handle, TAG_IMAGELENGTH, "ImageLength")
    z = 0
    while True:
        px = handle.get_field(TAG_IMAGEWIDTH)
        py = handle.get_field(TAG_IMAGELENGTH)
        if px is not None and int(px) != x:
            logger.warning("TIFF x dimension changes in stack! (page %d: %s != %d)", handle.index, px, x)
        if py is not None and int(py) != y:
            logger.warning("TIFF y dimension changes in stack! (page %d: %s != %d)", handle.index, py, y)
        z += 1
        if not handle.read_directory():
            break
    handle.set_directory(0)
    return x, y, z


def extract_metadata(handle: VolumeHandle, dims: Tuple[int, int, int]) -> VolumeDescriptor:
    """Read per-volume sample metadata from the current directory."""
    width, height, depth = dims
    logger.info("%dx%dx%d tiff.", width, height, depth)

    bits = handle.get_field(TAG_BITSPERSAMPLE)
    if bits is None:
        logger.warning("Bits per sample not defined in file.  Assuming 1.")
        bits = 1
    bits = int(bits)
    logger.info("%d bits per sample.", bits)

    components = handle.get_field(TAG_SAMPLESPERPIXEL)
    if components is None:
        logger.warning("Samples per pixel not defined in file.  Assuming 1.")
        components = 1
    components = int(components)
    logger.info("%d-component data.", components)

    sf = handle.get_field(TAG_SAMPLEFORMAT)
    if sf is None:
        logger.warning("Sample format not defined in file.  Assuming uint.")
        sf = SampleFormat.UINT
    sf = int(sf)
    if sf in SAMPLE_FORMAT_LABELS:
        sf = SampleFormat(sf)
    logger.info("data type: %s(%d)", sample_format_label(sf), sf)

    return VolumeDescriptor(
        width=width,
        height=height,
        depth=depth,
        bits_per_sample=bits,
        components=components,
        sample_format=sf,
    )
