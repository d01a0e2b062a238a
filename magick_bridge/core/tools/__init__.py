"""Tools for locating and driving the magick executable."""

from .formats import FormatRegistry, parse_formats
from .locator import DetectedMagick, MagickLocator
from .runner import ProcessRunner, RunResult, SubprocessRunner

__all__ = [
    "DetectedMagick",
    "FormatRegistry",
    "MagickLocator",
    "ProcessRunner",
    "RunResult",
    "SubprocessRunner",
    "parse_formats",
]
