"""Per-browser quirks of the native bookmark API.

Each :class:`PlatformProfile` records where a browser keeps its root
bookmark folders, which url its new-tab page has, and how it represents a
separator.  The native adapter consults the profile and nothing else, so
adding a browser means adding a profile here.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from bookmark_sync.bookmarks.models import BookmarkContainer
from bookmark_sync.constants import (
    HORIZONTAL_SEPARATOR_TITLE,
    VERTICAL_SEPARATOR_TITLE,
)


@dataclass(frozen=True)
class NativeRoot:
    """A native root folder backing one container.

    Attributes:
        container: The canonical container this root holds.
        native_id: ID the browser gives the root.
        title: Default title of the root, matched case-insensitively when
            the ID does not match.
        root_name: Name understood by a ``get_root_by_name`` host call.
        required: Whether sync can run without this root.
    """

    container: BookmarkContainer
    native_id: str
    title: str
    root_name: str | None = None
    required: bool = True


@dataclass(frozen=True)
class PlatformProfile:
    """Native bookmark quirks of one browser."""

    name: str
    new_tab_url: str
    roots: tuple[NativeRoot, ...]
    separator_type: str | None = None
    separator_url: str | None = None
    separator_title: str = HORIZONTAL_SEPARATOR_TITLE
    uses_root_names: bool = False

    def separator_details(
        self, parent_id: str, in_toolbar: bool = False
    ) -> dict[str, Any]:
        """Return ``create()`` arguments for a native separator.

        Browsers without a separator type get a bookmark to the new-tab
        page, titled with a vertical bar on the toolbar and a horizontal
        rule elsewhere.
        """
        if self.separator_type:
            details: dict[str, Any] = {
                "parentId": parent_id,
                "title": self.separator_title,
                "type": self.separator_type,
            }
            if self.separator_url:
                details["url"] = self.separator_url
            return details
        return {
            "parentId": parent_id,
            "title": (
                VERTICAL_SEPARATOR_TITLE
                if in_toolbar
                else HORIZONTAL_SEPARATOR_TITLE
            ),
            "url": self.new_tab_url,
        }


CHROMIUM = PlatformProfile(
    name="chromium",
    new_tab_url="chrome://newtab/",
    roots=(
        NativeRoot(BookmarkContainer.TOOLBAR, "1", "Bookmarks bar"),
        NativeRoot(BookmarkContainer.OTHER, "2", "Other bookmarks"),
        NativeRoot(
            BookmarkContainer.MOBILE, "3", "Mobile bookmarks", required=False
        ),
    ),
)

FIREFOX = PlatformProfile(
    name="firefox",
    new_tab_url="about:newtab",
    roots=(
        NativeRoot(BookmarkContainer.MENU, "menu________", "Bookmarks Menu"),
        NativeRoot(
            BookmarkContainer.MOBILE,
            "mobile______",
            "Mobile Bookmarks",
            required=False,
        ),
        NativeRoot(BookmarkContainer.OTHER, "unfiled_____", "Other Bookmarks"),
        NativeRoot(
            BookmarkContainer.TOOLBAR, "toolbar_____", "Bookmarks Toolbar"
        ),
    ),
    separator_type="separator",
    separator_title="",
)

OPERA = PlatformProfile(
    name="opera",
    new_tab_url="chrome://newtab",
    roots=(
        NativeRoot(
            BookmarkContainer.MENU, "2", "Bookmarks Menu", root_name="user_root"
        ),
        NativeRoot(
            BookmarkContainer.OTHER, "3", "Other Bookmarks", root_name="other"
        ),
        NativeRoot(
            BookmarkContainer.TOOLBAR,
            "1",
            "Bookmarks Bar",
            root_name="bookmarks_bar",
        ),
    ),
    separator_type="separator",
    separator_url="data:text/plain;charset=UTF-8,separator",
    separator_title="─",
    uses_root_names=True,
)

PLATFORMS = {p.name: p for p in (CHROMIUM, FIREFOX, OPERA)}


def get_platform(name: str) -> PlatformProfile:
    """Return the profile registered as *name*.

    Raises:
        ValueError: If no such platform is known.
    """
    try:
        return PLATFORMS[name.lower()]
    except KeyError:
        raise ValueError(
            f"Unknown platform '{name}'. "
            f"Valid platforms: {', '.join(sorted(PLATFORMS))}"
        ) from None
