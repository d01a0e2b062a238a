"""Discovery of the file formats the located ImageMagick can read.

Typical ``magick -list format`` output::

       Format  Module    Mode  Description
    -------------------------------------------------------------------------------
          AAI* AAI        rw-  AAI Dune image
          AI   PDF        -w-  Adobe Illustrator CS2
          ARW  DNG        r--  Sony Alpha Raw Image Format

Some builds drop the Module column (``Format  Mode  Description``) and some
print path or warning text before the table. Rather than trusting a column
index or the dashed separator, each line is scanned from its second token for
the first mode token (``[r-][w-][+-]``); rows whose mode starts with ``r`` are
readable.
"""

from pathlib import Path
from typing import FrozenSet, Optional, Union

import structlog

from magick_bridge.config import Settings
from magick_bridge.config import settings as default_settings
from magick_bridge.core.constants import (
    EXTENSION_DECORATIONS,
    LIST_FORMAT_ARGS,
    MODE_MULTI_FLAGS,
    MODE_READ_FLAGS,
    MODE_READABLE,
    MODE_TOKEN_LENGTH,
    MODE_WRITE_FLAGS,
    RAW_OUTPUT_LOG_LIMIT,
)
from magick_bridge.core.exceptions import ToolFailureError
from magick_bridge.core.tools.runner import ProcessRunner

logger = structlog.get_logger()

_STRIP_DECORATIONS = str.maketrans("", "", EXTENSION_DECORATIONS)


def is_mode_token(token: str) -> bool:
    """True if ``token`` looks like a mode marker such as ``rw+`` or ``-w-``."""
    return (
        len(token) == MODE_TOKEN_LENGTH
        and token[0] in MODE_READ_FLAGS
        and token[1] in MODE_WRITE_FLAGS
        and token[2] in MODE_MULTI_FLAGS
    )


def parse_formats(output: str) -> FrozenSet[str]:
    """Parse ``-list format`` output into lower-cased readable extensions."""
    extensions = set()

    for line in output.splitlines():
        parts = line.split()
        if len(parts) < 2:
            continue

        mode: Optional[str] = next((p for p in parts[1:] if is_mode_token(p)), None)
        if mode is None or mode[0] != MODE_READABLE:
            continue

        extension = parts[0].translate(_STRIP_DECORATIONS).lower()
        if extension:
            extensions.add(extension)

    return frozenset(extensions)


class FormatRegistry:
    """Queries a verified ImageMagick binary for its readable formats."""

    def __init__(
        self, runner: ProcessRunner, settings: Optional[Settings] = None
    ) -> None:
        self.runner = runner
        self.settings = settings or default_settings

    def load_formats(self, executable: Union[str, Path]) -> FrozenSet[str]:
        """Run ``<executable> -list format`` and return the readable extensions.

        Raises:
            ToolFailureError: If the tool exits non-zero
        """
        command = [str(executable), *LIST_FORMAT_ARGS]
        result = self.runner.run(command, timeout=self.settings.detect_timeout_seconds)

        if not result.success:
            raise ToolFailureError(
                f"magick -list format failed (exit {result.exit_code}): "
                f"{result.first_stderr_line}",
                details={
                    "command": command,
                    "exit_code": result.exit_code,
                    "stderr_line": result.first_stderr_line,
                },
            )

        formats = parse_formats(result.stdout)

        if not formats:
            raw = result.stdout
            if len(raw) > RAW_OUTPUT_LOG_LIMIT:
                raw = raw[:RAW_OUTPUT_LOG_LIMIT] + "…"
            logger.warning(
                "Parsed 0 readable extensions from format list",
                executable=str(executable),
                raw_output=raw,
                stderr=result.stderr.strip() or None,
            )
        else:
            logger.debug("Readable extensions loaded", count=len(formats))

        return formats
