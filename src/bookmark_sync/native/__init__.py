"""Browser-side bookmarks.

Modules:

- ``models``     -- ``NativeBookmarkNode`` and the native event payloads.
- ``platforms``  -- per-browser root folders, new-tab url and separators.
- ``adapter``    -- ``NativeBookmarkAdapter``: native <-> canonical trees.
- ``detector``   -- ``NativeChangeDetector``: native events -> changes
  (import it from its module; it depends on ``bookmark_sync.sync``).
"""

from .adapter import NativeBookmarkAdapter, convert_native_bookmark
from .models import IdMapping, NativeBookmarkNode, WebpageMetadata
from .platforms import PlatformProfile, get_platform

__all__ = [
    "IdMapping",
    "NativeBookmarkAdapter",
    "NativeBookmarkNode",
    "PlatformProfile",
    "WebpageMetadata",
    "convert_native_bookmark",
    "get_platform",
]
