"""Constants and fixed protocol values for the ImageMagick bridge."""

from typing import List

# Tool identity
PRODUCT_NAME = "ImageMagick"  # token that precedes the version in `-version` output
REQUIRED_MAJOR_VERSION = "7"
EXECUTABLE_NAME = "magick"
WINDOWS_EXECUTABLE_NAME = "magick.exe"

# Tool arguments
VERSION_ARGS = ["-version"]
LIST_FORMAT_ARGS = ["-list", "format"]
FIRST_FRAME_SELECTOR = "[0]"
OUTPUT_FORMAT = "PNG"
OUTPUT_EXTENSION = ".png"
SHRINK_ONLY_MODIFIER = ">"

# Well-known install locations
WINDOWS_PARENT_DIRS: List[str] = [
    r"C:\Program Files",
    r"C:\Program Files (x86)",
]
WINDOWS_DIR_PREFIX = "ImageMagick"

UNIX_CANDIDATES: List[str] = [
    "/opt/homebrew/bin/magick",  # macOS, Apple Silicon Homebrew
    "/usr/local/bin/magick",  # macOS Intel Homebrew, Linux local builds
    "/usr/bin/magick",  # Linux distro package
    "/snap/bin/magick",  # Linux snap package
]

# `-list format` parsing
MODE_TOKEN_LENGTH = 3
MODE_READ_FLAGS = frozenset("r-")
MODE_WRITE_FLAGS = frozenset("w-")
MODE_MULTI_FLAGS = frozenset("+-")
MODE_READABLE = "r"
EXTENSION_DECORATIONS = "*!+@"
RAW_OUTPUT_LOG_LIMIT = 2000  # characters of raw output logged on an empty parse

# Process execution
STREAM_JOIN_TIMEOUT = 0.5  # seconds each drain thread gets to flush after exit

# Staging files
TEMP_INPUT_PREFIX = "magick-bridge-in-"
TEMP_OUTPUT_PREFIX = "magick-bridge-out-"

# Units
MB_TO_BYTES_FACTOR = 1024 * 1024

# Defaults mirrored by Settings
DEFAULT_CONVERSION_TIMEOUT_SECONDS = 30
DEFAULT_DETECT_TIMEOUT_SECONDS = 5
DEFAULT_MAX_INPUT_SIZE_BYTES = 512 * MB_TO_BYTES_FACTOR
DEFAULT_THREAD_LIMIT = 1
DEFAULT_MAX_PIXEL_DIMENSION = 2048

# Preferences
PREFERENCES_FILENAME = "preferences.json"
DEFAULT_PREFERENCES_DIR = "~/.magick-bridge"

# Background initialisation
INIT_THREAD_NAME = "magick-bridge-init"
