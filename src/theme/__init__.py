"""Theme handling: the pinned reference, fetching it, and loading templates."""

from inkpress.theme.fetch import ThemeFetcher, update_theme_pin
from inkpress.theme.loader import Theme
from inkpress.theme.lock import ThemeLock, load_theme_lock, save_theme_lock

__all__ = [
    "Theme",
    "ThemeFetcher",
    "ThemeLock",
    "load_theme_lock",
    "save_theme_lock",
    "update_theme_pin",
]
