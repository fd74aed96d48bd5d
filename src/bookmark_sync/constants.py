"""Shared constants for bookmark-sync.

Single source of truth for reserved titles and limits used across the
tree helpers, search engine, native adapter and sync engine.
"""

# Bookmark descriptions are word-trimmed to this many characters.
DESCRIPTION_MAX_LENGTH = 500

# Title given to separators created by new_separator().
SEPARATOR_TITLE = "-"

# Native separator titles written by browsers without a separator type.
HORIZONTAL_SEPARATOR_TITLE = "────────────────────"
VERTICAL_SEPARATOR_TITLE = "|"

# Lookahead candidates shorter than this are discarded.
LOOKAHEAD_MIN_LENGTH = 3

# Legacy container titles and their current names.
LEGACY_OTHER_TITLE = "_other_"
LEGACY_TOOLBAR_TITLE = "_toolbar_"
LEGACY_XBS_TITLE = "_xBrowserSync_"
LEGACY_XBS_RELABELED_TITLE = "Legacy xBrowserSync bookmarks"

# Remote API limits.
MAX_SYNC_SIZE_BYTES = 512_000
SYNC_ID_LENGTH = 32

DEFAULT_PUSH_TIMEOUT = 30.0
DEFAULT_STATE_DIR = ".bookmark_sync"
DEFAULT_PLATFORM = "chromium"
