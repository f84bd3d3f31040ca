from dataclasses import dataclass


@dataclass
class Config:
    # Print the TIFF directory (tags, colormap, curves) of page 0 to stdout
    verbose_dump: bool = False

    # Show a progress bar over pages while copying
    progress: bool = True

    # Scratch buffer sizing for scanline reads.
    # "legacy": scanline bytes * bytes-per-sample * components (over-allocates)
    # "exact": scanline bytes
    scratch_policy: str = "legacy"

    # Detached NRRD header
    nrrd_magic: str = "NRRD0002"
    encoding: str = "raw"


DEFAULT_CONFIG = Config()
