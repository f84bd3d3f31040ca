import logging
import struct
import sys
from pathlib import Path
from typing import Optional, Union

import numpy as np
import tifffile as tiff

from tiffraw.errors import VolumeError, VolumeOpenError

logger = logging.getLogger(__name__)

TAG_TRANSFERFUNCTION = 301
TAG_COLORMAP = 320
PLANARCONFIG_SEPARATE = 2


def _first(value):
    if isinstance(value, (tuple, list, np.ndarray)):
        return value[0] if len(value) else None
    return value


def _pack_samples(values: np.ndarray, bits: int) -> bytes:
    """Pack 1, 2 or 4 bit samples MSB-first, padding the last byte with zeros."""
    per_byte = 8 // bits
    flat = values.astype(np.uint8).reshape(-1)
    pad = (-flat.size) % per_byte
    if pad:
        flat = np.concatenate([flat, np.zeros(pad, dtype=np.uint8)])
    groups = flat.reshape(-1, per_byte)
    shifts = (np.arange(per_byte - 1, -1, -1, dtype=np.uint8) * bits).astype(np.uint8)
    return np.bitwise_or.reduce(groups << shifts, axis=1).astype(np.uint8).tobytes()


class VolumeHandle:
    """Directory-oriented view of a multi-page TIFF.

    Mirrors the classic libtiff access pattern: one "current directory" that
    can be selected by index or advanced, scalar tag lookup, and scanline reads
    of the current directory.
    """

    def __init__(self, tif: tiff.TiffFile, path: str):
        self.tif = tif
        self.path = path
        self.index = 0
        self._npages = len(tif.pages)
        self._plane: Optional[np.ndarray] = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False

    def close(self) -> None:
        if self.tif is None:
            return
        logger.info("Closing tiff %s", self.path)
        self.tif.close()
        self.tif = None
        self._plane = None

    @property
    def page(self) -> tiff.TiffPage:
        return self.tif.pages[self.index]

    def set_directory(self, index: int) -> bool:
        if index < 0 or index >= self._npages:
            return False
        if index != self.index:
            self._plane = None
        self.index = index
        return True

    def read_directory(self) -> bool:
        """Advance to the next directory. Returns False when there is none."""
        return self.set_directory(self.index + 1)

    def get_field(self, tag: Union[int, str]):
        """Value of ``tag`` in the current directory, or None if absent."""
        found = self.page.tags.get(tag)
        if found is None:
            return None
        return _first(found.value)

    def _bits(self) -> int:
        bits = self.get_field(258)
        return int(bits) if bits is not None else 1

    def _samples_in_plane(self) -> int:
        page = self.page
        if page.planarconfig == PLANARCONFIG_SEPARATE:
            return 1
        return int(page.samplesperpixel)

    def scanline_size(self) -> int:
        page = self.page
        return (int(page.imagewidth) * self._bits() * self._samples_in_plane() + 7) // 8

    def _decoded_plane(self) -> np.ndarray:
        if self._plane is None:
            page = self.page
            arr = page.asarray()
            if page.planarconfig == PLANARCONFIG_SEPARATE and page.samplesperpixel > 1:
                # only the first sample plane, like a scanline read of sample 0
                arr = arr[0]
            arr = arr.astype(arr.dtype.newbyteorder("="), copy=False)
            self._plane = np.ascontiguousarray(arr).reshape(int(page.imagelength), -1)
        return self._plane

    def read_scanline(self, buf: bytearray, row: int) -> int:
        """Decode row ``row`` of the current directory into ``buf``.

        Returns the number of bytes stored at the start of ``buf``.
        """
        plane = self._decoded_plane()
        if row >= plane.shape[0]:
            # buffer keeps its previous contents
            logger.error("%s: row %d out of range, rows %d", self.path, row, plane.shape[0])
            return 0
        bits = self._bits()
        size = self.scanline_size()
        if bits in (1, 2, 4):
            data = _pack_samples(plane[row], bits)
        elif bits % 8 == 0 and plane.itemsize * 8 == bits:
            data = plane[row].tobytes()
        else:
            raise VolumeError(f"{self.path}: {bits}-bit samples cannot be read as scanlines")
        buf[:size] = data[:size]
        return size

    def print_directory(self, stream=None) -> None:
        """Dump the current directory's tags, with full colormap and curves."""
        out = stream if stream is not None else sys.stdout
        page = self.page
        print(f"TIFF Directory {self.index} at offset {page.offset} ({page.offset:#x})", file=out)
        for tag in page.tags.values():
            if tag.code in (TAG_COLORMAP, TAG_TRANSFERFUNCTION):
                values = np.asarray(tag.value)
                n = 1 << self._bits()
                if values.size % n == 0:
                    values = values.reshape(-1, n)
                else:
                    values = values.reshape(1, -1)
                print(f"  {tag.name}:", file=out)
                for i in range(values.shape[1]):
                    entry = " ".join(str(int(v)) for v in values[:, i])
                    print(f"   {i:5d}: {entry}", file=out)
                continue
            text = str(tag.value)
            if len(text) > 72:
                text = text[:69] + "..."
            print(f"  {tag.name} ({tag.code}): {text}", file=out)


def open_volume(path: Union[str, Path]) -> VolumeHandle:
    """Open a (multi-page) TIFF for directory-wise reading."""
    path = str(path)
    try:
        tif = tiff.TiffFile(path)
    except (OSError, ValueError, struct.error) as e:
        raise VolumeOpenError(path, e) from e
    try:
        npages = len(tif.pages)
    except (ValueError, struct.error) as e:
        tif.close()
        raise VolumeOpenError(path, e) from e
    if npages == 0:
        tif.close()
        raise VolumeOpenError(path, "no directories")
    try:
        return VolumeHandle(tif, path)
    except Exception:
        tif.close()
        raise
