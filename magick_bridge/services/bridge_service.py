"""Service layer tying ImageMagick detection, format discovery and conversion together.

Lifecycle:

1. Construct with a runner (and optionally settings and a preference store).
2. Call :meth:`MagickBridgeService.init` once, typically on a background thread.
3. Call :meth:`MagickBridgeService.convert_to_standard_raster` from any thread.

Everything ``init`` discovers lives in one immutable :class:`ServiceState`
snapshot that is replaced in a single assignment, so readers on other threads
always see a consistent state without taking a lock.
"""

import os
import shutil
import tempfile
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import FrozenSet, List, Optional, Union

from PIL import Image

from magick_bridge.config import Settings
from magick_bridge.config import settings as default_settings
from magick_bridge.core.constants import (
    FIRST_FRAME_SELECTOR,
    MB_TO_BYTES_FACTOR,
    OUTPUT_EXTENSION,
    OUTPUT_FORMAT,
    REQUIRED_MAJOR_VERSION,
    SHRINK_ONLY_MODIFIER,
    TEMP_INPUT_PREFIX,
    TEMP_OUTPUT_PREFIX,
)
from magick_bridge.core.exceptions import (
    DecodeFailureError,
    InitError,
    InvalidInputError,
    MagickBridgeError,
    NotReadyError,
    ToolFailureError,
    ToolNotFoundError,
)
from magick_bridge.core.items import SourceItem
from magick_bridge.core.preferences import MemoryPreferenceStore, PreferenceStore
from magick_bridge.core.tools.formats import FormatRegistry
from magick_bridge.core.tools.locator import MagickLocator
from magick_bridge.core.tools.runner import ProcessRunner, SubprocessRunner
from magick_bridge.utils.logging import LoggingContext, get_logger

logger = get_logger(__name__)

NOT_FOUND_MESSAGE = (
    "ImageMagick 7 not found. Install ImageMagick 7+ or set "
    "MAGICK_BRIDGE_EXECUTABLE_PATH to the magick executable."
)


@dataclass(frozen=True)
class ServiceState:
    """Snapshot of what initialisation produced."""

    executable: Optional[Path] = None
    version: Optional[str] = None
    supported_extensions: FrozenSet[str] = frozenset()
    init_failed: bool = False
    init_error: Optional[str] = None
    init_error_code: Optional[str] = None

    @property
    def ready(self) -> bool:
        return self.executable is not None


def format_megabytes(size_bytes: int) -> str:
    return f"{size_bytes / MB_TO_BYTES_FACTOR:.1f} MB"


def _delete_silently(path: Optional[str]) -> None:
    if path is None:
        return
    try:
        os.remove(path)
    except FileNotFoundError:
        pass
    except OSError as e:
        # The OS temp-dir cleanup is the backstop
        logger.debug("Could not delete staging file", path=path, error=str(e))


class MagickBridgeService:
    """Detects ImageMagick and converts source items to PNG rasters."""

    def __init__(
        self,
        runner: Optional[ProcessRunner] = None,
        settings: Optional[Settings] = None,
        preferences: Optional[PreferenceStore] = None,
    ) -> None:
        self.settings = settings or default_settings
        self.runner = runner or SubprocessRunner()
        self.preferences = preferences if preferences is not None else MemoryPreferenceStore()
        self.locator = MagickLocator(self.runner, self.settings, self.preferences)
        self.format_registry = FormatRegistry(self.runner, self.settings)

        self._state = ServiceState()
        self._init_lock = threading.Lock()

    # Initialisation

    def init(self) -> None:
        """Locate ImageMagick and load its readable formats.

        Idempotent once ready. Never raises: failures leave the service in the
        failed state with a message available from :attr:`init_error`.
        """
        with self._init_lock:
            if self._state.ready:
                return
            logger.info("Initialising ImageMagick bridge")
            try:
                detected = self.locator.locate()
                if detected is None:
                    self._set_failed(
                        ToolNotFoundError(
                            NOT_FOUND_MESSAGE,
                            details={"required_major": REQUIRED_MAJOR_VERSION},
                        )
                    )
                    return
                self._adopt(detected.executable, detected.version)
            except Exception as e:
                logger.exception("ImageMagick bridge init failed")
                self._set_failed(InitError(f"ImageMagick Bridge init error: {e}"))

    def init_with_user_selected_path(self, path: Union[str, Path]) -> None:
        """Verify a hand-picked executable, persist it and finish initialisation.

        Raises:
            InvalidInputError: If ``path`` is not an ImageMagick 7 executable
            InitError: If the path cannot be saved or the verified tool fails
                while listing its formats
        """
        path = Path(path)
        with self._init_lock:
            if self._state.ready:
                return
            version = self.locator.verify_and_get_version(path)
            if version is None:
                raise InvalidInputError(
                    f"'{path.name}' is not a valid ImageMagick 7 executable.",
                    details={"item_name": str(path)},
                )
            try:
                self.preferences.save_path(path)
                self._adopt(path, version)
            except Exception as e:
                error = InitError(
                    f"ImageMagick Bridge init error: {e}",
                    details={"executable": str(path), "version": version},
                )
                self._set_failed(error)
                raise error from e
        logger.info("Initialised with user-selected path", executable=str(path))

    def initialize_with_path(self, executable: Union[str, Path], version: str) -> None:
        """Adopt an already verified executable, skipping detection.

        Raises whatever format discovery raises; the state is left untouched
        in that case.
        """
        with self._init_lock:
            self._adopt(Path(executable), version)

    def _adopt(self, executable: Path, version: str) -> None:
        formats = self.format_registry.load_formats(executable)
        self._state = ServiceState(
            executable=executable,
            version=version,
            supported_extensions=formats,
        )
        logger.info(
            "ImageMagick bridge ready",
            formats=len(formats),
            version=version,
            executable=str(executable),
        )

    def _set_failed(self, error: MagickBridgeError) -> None:
        self._state = ServiceState(
            init_failed=True,
            init_error=error.message,
            init_error_code=error.error_code,
        )
        logger.warning(
            "ImageMagick bridge unavailable",
            reason=error.message,
            error_code=error.error_code,
        )

    # Queries

    @property
    def state(self) -> ServiceState:
        return self._state

    @property
    def is_ready(self) -> bool:
        return self._state.ready

    @property
    def init_failed(self) -> bool:
        return self._state.init_failed

    @property
    def init_error(self) -> Optional[str]:
        return self._state.init_error

    @property
    def init_error_code(self) -> Optional[str]:
        return self._state.init_error_code

    @property
    def executable(self) -> Optional[Path]:
        return self._state.executable

    @property
    def version(self) -> Optional[str]:
        return self._state.version

    def get_supported_extensions(self) -> FrozenSet[str]:
        """The (possibly empty) readable extensions; never blocks on I/O."""
        return self._state.supported_extensions

    # Conversion

    def convert_to_standard_raster(self, item: SourceItem) -> Image.Image:
        """Convert ``item`` to PNG with ImageMagick and return the decoded image.

        Both staging files are removed before returning, whatever the outcome.

        Raises:
            NotReadyError: If initialisation has not succeeded
            InvalidInputError: If the item exceeds ``max_input_size_bytes``
            ProcessTimeoutError: If ImageMagick exceeds the conversion timeout
            ToolFailureError: If ImageMagick fails or produces no output
            DecodeFailureError: If the produced PNG cannot be decoded
        """
        state = self._state
        if not state.ready:
            raise NotReadyError(state.init_error or "ImageMagick not yet initialised")

        limit = self.settings.max_input_size_bytes
        reported_size = item.size_bytes
        if limit > 0 and reported_size > limit:
            raise self._too_large(item, reported_size, limit, stage="reported")

        temp_input: Optional[str] = None
        temp_output: Optional[str] = None
        with LoggingContext(item=item.name):
            try:
                temp_input = self._make_temp(TEMP_INPUT_PREFIX, self._input_suffix(item))
                temp_output = self._make_temp(TEMP_OUTPUT_PREFIX, OUTPUT_EXTENSION)

                with item.open_stream() as src, open(temp_input, "wb") as dst:
                    shutil.copyfileobj(src, dst)

                if limit > 0:
                    actual_size = os.path.getsize(temp_input)
                    if actual_size > limit:
                        raise self._too_large(item, actual_size, limit, stage="staged")

                self._run_conversion(state.executable, temp_input, temp_output, item.name)
                return self._decode(temp_output, item.name)
            finally:
                _delete_silently(temp_input)
                _delete_silently(temp_output)

    def build_conversion_command(
        self, executable: Union[str, Path], input_path: str, output_path: str
    ) -> List[str]:
        """Assemble the ``magick`` argument list for one conversion."""
        cmd = [str(executable)]
        # Only emit limits that are configured; an explicit value below the
        # policy.xml default makes ImageMagick fail with CacheResourcesExhausted.
        self._add_limit_if_set(cmd, "memory", self.settings.memory_limit)
        self._add_limit_if_set(cmd, "map", self.settings.map_limit)
        self._add_limit_if_set(cmd, "disk", self.settings.disk_limit)
        cmd.extend(["-limit", "thread", str(self.settings.thread_limit)])
        # [0] keeps multi-frame inputs (PSD, TIFF, GIF) to a single output file
        cmd.append(f"{input_path}{FIRST_FRAME_SELECTOR}")
        dimension = self.settings.max_pixel_dimension
        cmd.extend(["-resize", f"{dimension}x{dimension}{SHRINK_ONLY_MODIFIER}"])
        cmd.append(f"{OUTPUT_FORMAT}:{output_path}")
        return cmd

    @staticmethod
    def _add_limit_if_set(cmd: List[str], resource: str, value: Optional[str]) -> None:
        if value and value.strip():
            cmd.extend(["-limit", resource, value.strip()])

    @staticmethod
    def _input_suffix(item: SourceItem) -> str:
        extension = item.extension
        return f".{extension}" if extension else ""

    @staticmethod
    def _make_temp(prefix: str, suffix: str) -> str:
        fd, path = tempfile.mkstemp(prefix=prefix, suffix=suffix)
        os.close(fd)
        return path

    @staticmethod
    def _too_large(
        item: SourceItem, size: int, limit: int, stage: str
    ) -> InvalidInputError:
        return InvalidInputError(
            f"File too large: {format_megabytes(size)} (limit {format_megabytes(limit)})",
            details={
                "item_name": item.name,
                "size_bytes": size,
                "limit_bytes": limit,
                "stage": stage,
            },
        )

    def _run_conversion(
        self, executable: Path, input_path: str, output_path: str, item_name: str
    ) -> None:
        cmd = self.build_conversion_command(executable, input_path, output_path)
        logger.debug("Converting item", command=cmd)

        result = self.runner.run(cmd, timeout=self.settings.conversion_timeout_seconds)

        if not result.success:
            logger.error(
                "ImageMagick conversion failed",
                exit_code=result.exit_code,
                stderr=result.stderr,
            )
            raise ToolFailureError(
                f"Conversion failed: {result.first_stderr_line}",
                details={
                    "command": cmd,
                    "exit_code": result.exit_code,
                    "stderr_line": result.first_stderr_line,
                },
            )

        if not os.path.exists(output_path) or os.path.getsize(output_path) == 0:
            raise ToolFailureError(
                f"ImageMagick produced no output for: {item_name}",
                details={"command": cmd, "exit_code": result.exit_code},
            )
        logger.debug("Conversion finished", elapsed=round(result.elapsed, 3))

    @staticmethod
    def _decode(output_path: str, item_name: str) -> Image.Image:
        try:
            with Image.open(output_path) as converted:
                converted.load()
                # Detach from the staging file, which is deleted right after
                return converted.copy()
        except (OSError, ValueError, Image.DecompressionBombError) as e:
            raise DecodeFailureError(
                f"Could not decode the converted PNG for: {item_name}",
                details={"item_name": item_name, "reason": str(e)},
            ) from e

    def __repr__(self) -> str:
        state = self._state
        return (
            f"MagickBridgeService(ready={state.ready}, "
            f"executable='{state.executable}', formats={len(state.supported_extensions)})"
        )


def build_service(settings: Optional[Settings] = None) -> MagickBridgeService:
    """Service wired with the real runner and the on-disk preference store."""
    from magick_bridge.core.preferences import JsonPreferenceStore

    settings = settings or default_settings
    return MagickBridgeService(
        runner=SubprocessRunner(),
        settings=settings,
        preferences=JsonPreferenceStore(settings.preferences_file),
    )
