"""Bridge to the ImageMagick 7 command-line tool for previewing exotic image formats."""

__version__ = "1.0.0"
