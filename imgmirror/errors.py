class ImgMirrorError(Exception):
    """Base class for every error raised by imgmirror."""


class EnumerationError(ImgMirrorError):
    """The source tree could not be listed. Aborts the whole run."""


class ConversionError(ImgMirrorError):
    """A failure confined to a single file."""


class PathMappingError(ConversionError):
    pass


class DecodeError(ConversionError):
    pass


class EncodeError(ConversionError):
    pass


class InvalidQualityError(EncodeError):
    pass


class WriteError(ConversionError):
    pass
