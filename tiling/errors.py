class PatternError(Exception):
    """Base class for failures raised while rendering or exporting a pattern."""


class RenderContextError(PatternError):
    """Raised when no drawing surface/context can be obtained for a render."""


class MeasurementUnavailableError(PatternError):
    """Raised when text cannot be pre-measured for a vector export."""


class FontResourceError(PatternError):
    """Raised when the font file for an export cannot be read."""
