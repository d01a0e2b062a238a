"""Locates and verifies the ImageMagick 7 ``magick`` executable.

Search order, first verified candidate wins:

1. Path saved by the user in an earlier session (cleared if it went stale)
2. Configured ``executable_path``
3. Unqualified ``magick`` / ``magick.exe``, resolved by the OS through PATH
4. Manual scan of the PATH entries
5. OS-specific well-known install locations

A candidate is verified by running ``<candidate> -version`` and checking that
the version following the ``ImageMagick`` token has major version 7.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Union

import structlog

from magick_bridge.config import Settings
from magick_bridge.config import settings as default_settings
from magick_bridge.core import constants
from magick_bridge.core.preferences import MemoryPreferenceStore, PreferenceStore
from magick_bridge.core.tools.runner import ProcessRunner

logger = structlog.get_logger()


@dataclass(frozen=True)
class DetectedMagick:
    """A verified executable and the version it reported."""

    executable: Path
    version: str


def is_windows() -> bool:
    return os.name == "nt"


def executable_name() -> str:
    """Bare executable name for the current OS."""
    return constants.WINDOWS_EXECUTABLE_NAME if is_windows() else constants.EXECUTABLE_NAME


def parse_version(output: str) -> Optional[str]:
    """Return the token following ``ImageMagick`` in ``-version`` output.

    ``"Version: ImageMagick 7.1.1-38 Q16-HDRI ..."`` gives ``"7.1.1-38"``.
    """
    for line in output.splitlines():
        parts = line.split()
        for i in range(len(parts) - 1):
            if parts[i] == constants.PRODUCT_NAME:
                return parts[i + 1]
    return None


def has_required_major(version: Optional[str]) -> bool:
    if not version:
        return False
    return version.split(".", 1)[0] == constants.REQUIRED_MAJOR_VERSION


class MagickLocator:
    """Finds a usable ``magick`` binary."""

    def __init__(
        self,
        runner: ProcessRunner,
        settings: Optional[Settings] = None,
        preferences: Optional[PreferenceStore] = None,
    ) -> None:
        self.runner = runner
        self.settings = settings or default_settings
        self.preferences = preferences if preferences is not None else MemoryPreferenceStore()

    def locate(self) -> Optional[DetectedMagick]:
        """Return the first verified candidate, or None if nothing qualifies."""
        probes: Sequence[Callable[[], Optional[DetectedMagick]]] = (
            self._probe_saved_preference,
            self._probe_configured_path,
            self._probe_unqualified_name,
            self._probe_search_path,
            self._probe_well_known_locations,
        )
        for probe in probes:
            detected = probe()
            if detected is not None:
                logger.info(
                    "Found ImageMagick",
                    executable=str(detected.executable),
                    version=detected.version,
                    strategy=probe.__name__.replace("_probe_", ""),
                )
                return detected
        logger.debug("No ImageMagick candidate verified")
        return None

    def verify_and_get_version(self, executable: Union[str, Path]) -> Optional[str]:
        """Verify one exact path, e.g. a file the user picked by hand."""
        return self._verify_path(Path(executable))

    # Probes

    def _probe_saved_preference(self) -> Optional[DetectedMagick]:
        saved = self.preferences.load_saved_path()
        if saved is None:
            return None
        version = self._verify_path(saved)
        if version is not None:
            return DetectedMagick(saved, version)
        logger.warning(
            "Saved magick path is no longer valid, clearing preference",
            path=str(saved),
        )
        self.preferences.clear_path()
        return None

    def _probe_configured_path(self) -> Optional[DetectedMagick]:
        configured = self.settings.executable_path
        if not configured:
            return None
        path = Path(configured)
        version = self._verify_path(path)
        if version is not None:
            return DetectedMagick(path, version)
        logger.warning(
            "Configured executable_path is not a valid ImageMagick 7 binary",
            path=configured,
        )
        return None

    def _probe_unqualified_name(self) -> Optional[DetectedMagick]:
        # No existence check: resolution through PATH is left to the OS.
        name = executable_name()
        version = self._verify_command(name)
        if version is not None:
            return DetectedMagick(Path(name), version)
        return None

    def _probe_search_path(self) -> Optional[DetectedMagick]:
        found = self.find_on_path()
        if found is None:
            return None
        version = self._verify_path(found)
        if version is not None:
            return DetectedMagick(found, version)
        return None

    def _probe_well_known_locations(self) -> Optional[DetectedMagick]:
        for candidate in self.well_known_candidates():
            version = self._verify_path(candidate)
            if version is not None:
                return DetectedMagick(candidate, version)
        return None

    # Candidate sources

    def find_on_path(self) -> Optional[Path]:
        """First PATH entry containing the executable as a regular file."""
        path_env = os.environ.get("PATH")
        if not path_env:
            return None
        name = executable_name()
        for directory in path_env.split(os.pathsep):
            directory = directory.strip()
            if not directory:
                continue
            candidate = Path(directory) / name
            if candidate.is_file():
                return candidate
        return None

    def well_known_candidates(self) -> List[Path]:
        """OS-specific install locations, most likely first."""
        if not is_windows():
            return [Path(p) for p in constants.UNIX_CANDIDATES]

        candidates: List[Path] = []
        for parent in constants.WINDOWS_PARENT_DIRS:
            parent_path = Path(parent)
            if not parent_path.is_dir():
                continue
            try:
                install_dirs = [
                    p
                    for p in parent_path.iterdir()
                    if p.name.startswith(constants.WINDOWS_DIR_PREFIX)
                ]
            except OSError as e:
                logger.debug("Cannot list install directory", parent=parent, error=str(e))
                continue
            # Reverse name order puts the newest-looking version first
            for install_dir in sorted(install_dirs, key=lambda p: p.name, reverse=True):
                candidates.append(install_dir / constants.WINDOWS_EXECUTABLE_NAME)
        return candidates

    # Verification

    def _verify_path(self, executable: Path) -> Optional[str]:
        if not executable.is_file():
            logger.debug("Candidate is not a file", candidate=str(executable))
            return None
        return self._verify_command(str(executable))

    def _verify_command(self, command: str) -> Optional[str]:
        try:
            result = self.runner.run(
                [command, *constants.VERSION_ARGS],
                timeout=self.settings.detect_timeout_seconds,
            )
        except Exception as e:
            logger.debug("Candidate not usable", candidate=command, error=str(e))
            return None

        if not result.success:
            logger.debug(
                "Candidate -version failed",
                candidate=command,
                exit_code=result.exit_code,
                stderr=result.first_stderr_line,
            )
            return None

        version = parse_version(result.stdout)
        if not has_required_major(version):
            logger.debug(
                "Candidate has wrong version",
                candidate=command,
                version=version,
                required_major=constants.REQUIRED_MAJOR_VERSION,
            )
            return None
        return version
