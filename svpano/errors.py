"""
Error types raised by `svpano`.

Every failure surfaced to a caller is a subclass of `SVPanoError`, so a single
``except SVPanoError`` covers the whole library. Transient tile failures
(`TransportError`, `DecodeError`) are retried inside the fetcher and only reach
the caller wrapped in a `RetryExhaustedError`.
"""


class SVPanoError(Exception):
    """Base class for all svpano errors."""


class InvalidParameterError(SVPanoError, ValueError):
    """A zoom level, view or save option is outside its allowed domain."""


class TransportError(SVPanoError):
    """The tile request could not be sent or did not return a usable response."""


class BodyReadError(TransportError):
    """The response arrived but its body could not be read."""


class DecodeError(SVPanoError):
    """Bytes were received but are not a valid tile image."""


class AssemblyError(SVPanoError):
    """Structural problem while stitching tiles. Never retried."""


class DimensionMismatchError(AssemblyError):
    def __init__(self, x: int, y: int, size: tuple, expected: tuple):
        self.x = x
        self.y = y
        self.size = size
        self.expected = expected
        super().__init__(
            f"tile ({x},{y}) is {size[0]}x{size[1]}, expected {expected[0]}x{expected[1]}"
        )


class IncompleteGridError(AssemblyError):
    """The tile set does not cover the zoom grid exactly once."""


class RetryExhaustedError(SVPanoError):
    """
    A tile kept failing until the retry ceiling was reached.

    Attributes:
        x (int): Tile X index.
        y (int): Tile Y index.
        attempts (int): Number of attempts made (retries + 1).
        last_cause (SVPanoError): Classification of the last failed attempt.
    """

    def __init__(self, x: int, y: int, attempts: int, last_cause: SVPanoError):
        self.x = x
        self.y = y
        self.attempts = attempts
        self.last_cause = last_cause
        super().__init__(
            f"tile ({x},{y}) failed after {attempts} attempts: "
            f"{type(last_cause).__name__}: {last_cause}"
        )


class EmptyResultError(SVPanoError):
    """A collaborator returned zero usable results."""


class EncodeError(SVPanoError):
    """An image could not be encoded in the requested format."""
