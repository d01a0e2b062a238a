from typing import Dict, List, Optional, TypedDict, Union


class ToolDetails(TypedDict, total=False):
    """Type-safe details for tool discovery errors."""

    executable: str
    version: str
    required_major: str


class ProcessDetails(TypedDict, total=False):
    """Type-safe details for child-process errors."""

    command: List[str]
    exit_code: int
    timeout_seconds: float
    stderr_line: str


class InputDetails(TypedDict, total=False):
    """Type-safe details for rejected input."""

    item_name: str
    size_bytes: int
    limit_bytes: int
    stage: str


class DecodeDetails(TypedDict, total=False):
    """Type-safe details for raster decode errors."""

    item_name: str
    reason: str


ErrorDetails = Union[
    ToolDetails,
    ProcessDetails,
    InputDetails,
    DecodeDetails,
    Dict[str, Union[str, int, float, bool, List[str]]],
]


class MagickBridgeError(Exception):
    """Base exception for all bridge errors."""

    def __init__(
        self,
        message: str,
        error_code: str,
        details: Optional[ErrorDetails] = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}

    def __str__(self) -> str:
        return self.message


class ToolNotFoundError(MagickBridgeError):
    """Raised when no usable ImageMagick binary could be located."""

    def __init__(self, message: str, details: Optional[ToolDetails] = None):
        super().__init__(message=message, error_code="MB001", details=details)


class NotReadyError(MagickBridgeError):
    """Raised when a conversion is requested before initialisation succeeded."""

    def __init__(self, message: str, details: Optional[ToolDetails] = None):
        super().__init__(message=message, error_code="MB002", details=details)


class InvalidInputError(MagickBridgeError, ValueError):
    """Raised for a rejected executable path or an oversized input file."""

    def __init__(self, message: str, details: Optional[InputDetails] = None):
        super().__init__(message=message, error_code="MB003", details=details)


class ProcessTimeoutError(MagickBridgeError, TimeoutError):
    """Raised when a child process exceeds its timeout.

    The process has already been killed when this is raised.
    """

    def __init__(self, message: str, details: Optional[ProcessDetails] = None):
        super().__init__(message=message, error_code="MB004", details=details)


class ToolFailureError(MagickBridgeError, OSError):
    """Raised when the tool exits non-zero, cannot start, or produces no output."""

    def __init__(self, message: str, details: Optional[ProcessDetails] = None):
        super().__init__(message=message, error_code="MB005", details=details)


class DecodeFailureError(MagickBridgeError, OSError):
    """Raised when the converted output cannot be decoded as a raster image."""

    def __init__(self, message: str, details: Optional[DecodeDetails] = None):
        super().__init__(message=message, error_code="MB006", details=details)


class InitError(MagickBridgeError):
    """Raised when initialisation fails unexpectedly."""

    def __init__(self, message: str, details: Optional[ErrorDetails] = None):
        super().__init__(message=message, error_code="MB007", details=details)
