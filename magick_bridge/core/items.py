"""Source items handed to the bridge for conversion."""

import io
from pathlib import Path
from typing import BinaryIO, Optional, Protocol, Union, runtime_checkable


@runtime_checkable
class SourceItem(Protocol):
    """Anything that can be previewed.

    ``size_bytes`` is best-effort; 0 means unknown. ``open_stream`` returns a
    fresh binary stream that the caller closes (use it as a context manager).
    """

    @property
    def name(self) -> str: ...

    @property
    def extension(self) -> str: ...

    @property
    def size_bytes(self) -> int: ...

    def open_stream(self) -> BinaryIO: ...


def extension_of(name: str) -> str:
    """Return the text after the last dot of ``name``, or an empty string."""
    dot = name.rfind(".")
    return name[dot + 1 :] if dot >= 0 else ""


class FileItem:
    """A source item backed by a file on disk."""

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path)

    @property
    def name(self) -> str:
        return self.path.name

    @property
    def extension(self) -> str:
        return extension_of(self.path.name)

    @property
    def size_bytes(self) -> int:
        try:
            return self.path.stat().st_size
        except OSError:
            return 0

    def open_stream(self) -> BinaryIO:
        return open(self.path, "rb")

    def __repr__(self) -> str:
        return f"FileItem(path='{self.path}')"


class BytesItem:
    """An in-memory source item.

    ``reported_size`` overrides the size the item claims to have, which lets
    callers model sources whose size is unknown (0) or misreported.
    """

    def __init__(
        self, name: str, data: bytes, reported_size: Optional[int] = None
    ) -> None:
        self._name = name
        self._data = data
        self._reported_size = reported_size

    @property
    def name(self) -> str:
        return self._name

    @property
    def extension(self) -> str:
        return extension_of(self._name)

    @property
    def size_bytes(self) -> int:
        if self._reported_size is not None:
            return self._reported_size
        return len(self._data)

    def open_stream(self) -> BinaryIO:
        return io.BytesIO(self._data)

    def __repr__(self) -> str:
        return f"BytesItem(name='{self._name}', size={len(self._data)})"
