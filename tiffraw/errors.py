class TiffRawError(RuntimeError):
    """Base class for failures that terminate a conversion run."""


class VolumeError(TiffRawError):
    pass


class VolumeOpenError(VolumeError):
    def __init__(self, path, reason=None):
        self.path = str(path)
        msg = f"cannot open tiff '{self.path}'"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class OutputOpenError(TiffRawError):
    def __init__(self, path, reason=None):
        self.path = str(path)
        msg = f"cannot open '{self.path}' for writing"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)
