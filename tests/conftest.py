import numpy as np
import pytest
import tifffile as tiff


def write_pages(path, pages, **kwargs):
    """Write each array as its own page, so page shapes may differ."""
    with tiff.TiffWriter(str(path)) as tw:
        for page in pages:
            tw.write(page, contiguous=False, photometric="minisblack", **kwargs)
    return path


@pytest.fixture
def pages_tiff():
    return write_pages


@pytest.fixture
def ramp_stack():
    """3 pages of 5 rows x 4 columns, uint8, distinct values."""
    return np.arange(3 * 5 * 4, dtype=np.uint8).reshape(3, 5, 4)
