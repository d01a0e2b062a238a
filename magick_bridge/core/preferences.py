"""Persistence of the user-selected ImageMagick executable.

A path the user picked by hand is stored so later sessions try it before
running the auto-detection scan.
"""

import json
import threading
from pathlib import Path
from typing import Optional, Protocol, Union

import structlog
from pydantic import BaseModel, Field, ValidationError

logger = structlog.get_logger()


class PreferenceStore(Protocol):
    def load_saved_path(self) -> Optional[Path]: ...

    def save_path(self, path: Union[str, Path]) -> None: ...

    def clear_path(self) -> None: ...


class StoredPreferences(BaseModel):
    """On-disk preference model."""

    executable_path: Optional[str] = Field(
        default=None, description="User-selected magick executable"
    )


class JsonPreferenceStore:
    """Stores preferences as a small JSON document in the app's own directory."""

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()

    def _read(self) -> StoredPreferences:
        if not self.path.exists():
            return StoredPreferences()
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                return StoredPreferences(**json.load(f))
        except (OSError, json.JSONDecodeError, TypeError, ValidationError) as e:
            # Unreadable preferences behave like no preferences
            logger.warning(
                "Ignoring unreadable preferences file",
                path=str(self.path),
                error=str(e),
            )
            return StoredPreferences()

    def _write(self, prefs: StoredPreferences) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(prefs.model_dump(), f, indent=2)

    def load_saved_path(self) -> Optional[Path]:
        """Return the previously saved executable path, if any."""
        with self._lock:
            value = self._read().executable_path
        if value is None or not value.strip():
            return None
        return Path(value)

    def save_path(self, path: Union[str, Path]) -> None:
        """Persist ``path`` so future sessions skip auto-detection."""
        with self._lock:
            prefs = self._read()
            prefs.executable_path = str(path)
            self._write(prefs)
        logger.debug("Saved magick path preference", path=str(path))

    def clear_path(self) -> None:
        """Remove any stored path, e.g. one that no longer verifies."""
        with self._lock:
            prefs = self._read()
            if prefs.executable_path is None:
                return
            prefs.executable_path = None
            self._write(prefs)
        logger.debug("Cleared magick path preference")


class MemoryPreferenceStore:
    """Non-persistent store for embedding hosts that keep their own settings."""

    def __init__(self, initial: Optional[Union[str, Path]] = None) -> None:
        self._path = Path(initial) if initial is not None else None
        self._lock = threading.Lock()

    def load_saved_path(self) -> Optional[Path]:
        with self._lock:
            return self._path

    def save_path(self, path: Union[str, Path]) -> None:
        with self._lock:
            self._path = Path(path)

    def clear_path(self) -> None:
        with self._lock:
            self._path = None
