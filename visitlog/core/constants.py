"""
System-Wide Constants for the Visit History Engine

All magic numbers and configuration defaults centralized here.
"""

from typing import Final

# =============================================================================
# TIME UNITS
# =============================================================================
SECOND_MS: Final[int] = 1000

# =============================================================================
# COMPACTION
# =============================================================================
DEFAULT_BATCH_SIZE: Final[int] = 10
MIN_BATCH_SIZE: Final[int] = 1
SNAPSHOT_ID_PREFIX: Final[str] = "version-"
SNAPSHOT_ID_WIDTH: Final[int] = 6

# =============================================================================
# CAPTURE
# =============================================================================
UNKNOWN_USER_NAME: Final[str] = "Unknown User"

# =============================================================================
# DISPLAY
# =============================================================================
PREVIEW_MAX_LENGTH: Final[int] = 160
PREVIEW_ELLIPSIS: Final[str] = "…"

# =============================================================================
# STORAGE
# =============================================================================
REDIS_DEFAULT_PORT: Final[int] = 6379
REDIS_KEY_PREFIX: Final[str] = "visitlog"
REDIS_SOCKET_TIMEOUT_MS: Final[int] = 5 * SECOND_MS
REDIS_CONNECT_TIMEOUT_MS: Final[int] = 2 * SECOND_MS
REDIS_MAX_CONNECTIONS: Final[int] = 50
