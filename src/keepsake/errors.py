"""Exception hierarchy.

Data-shape problems never raise; only bad values handed to the encoder and
transport faults surface as errors.
"""


class KeepsakeError(Exception):
    """Base exception for keepsake."""


class UnsupportedValueError(KeepsakeError, TypeError):
    """Raised when encoding a value outside the closed value model."""


class BackendError(KeepsakeError, OSError):
    """Raised when a persistence backend cannot read or write its content."""
