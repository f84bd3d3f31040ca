import logging
from typing import BinaryIO

from tqdm import tqdm

from tiffraw.config import DEFAULT_CONFIG
from tiffraw.data import VolumeHandle
from tiffraw.probe import VolumeDescriptor

logger = logging.getLogger(__name__)


def scratch_size(scanline: int, desc: VolumeDescriptor, policy: str = "legacy") -> int:
    """Bytes to allocate for one scanline read."""
    if policy == "exact":
        return scanline
    if policy == "legacy":
        # scanline already counts bytes per sample and components, so this over-allocates
        return max(scanline * desc.bits_per_sample // 8 * desc.components, scanline)
    raise ValueError(f"unknown scratch policy {policy!r}")


def copy_raw(handle: VolumeHandle, desc: VolumeDescriptor, out: BinaryIO, cfg=DEFAULT_CONFIG) -> int:
    """Append every scanline of every page to ``out``, page-major then row-major.

    Each page contributes ``desc.height`` rows of exactly ``scanline_size()``
    bytes. Returns the number of bytes written.
    """
    handle.set_directory(0)
    written = 0
    with tqdm(total=desc.depth, desc="Copy", unit="page", disable=not cfg.progress) as pbar:
        while True:
            sl_size = handle.scanline_size()
            buf = bytearray(scratch_size(sl_size, desc, cfg.scratch_policy))
            view = memoryview(buf)
            for row in range(desc.height):
                handle.read_scanline(buf, row)
                out.write(view[:sl_size])
            written += sl_size * desc.height
            view.release()
            del buf
            pbar.update(1)
            if not handle.read_directory():
                break
    logger.debug("wrote %d bytes from %d pages", written, handle.index + 1)
    return written
