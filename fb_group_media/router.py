"""URL router: classify a page by its URL path and pick the handler label."""

from dataclasses import dataclass, field
from typing import Optional
from urllib.parse import urlparse

import structlog

from .constants import URL_REGEX

logger = structlog.get_logger()

ROUTE_LABELS = (
    "FB_GROUP_MEDIA_TAB",
    "FB_GROUP_MEDIA",
    "FB_GROUP",
    "FB_MEDIA_ALBUM",
    "FB_MEDIA_PHOTO",
    "FB_MEDIA_VIDEO",
)


@dataclass
class RouteMatch:
    """The route chosen for a URL plus the named groups captured from its path."""
    label: str
    params: dict[str, str] = field(default_factory=dict)


@dataclass
class Route:
    name: str
    handler_label: str
    pattern_key: str

    def match(self, url: str) -> Optional[dict[str, str]]:
        """Return captured path groups if the URL path matches, else None."""
        path = urlparse(url).path or "/"
        found = URL_REGEX[self.pattern_key].match(path)
        if not found:
            return None
        return {k: v for k, v in found.groupdict().items() if v is not None}


# Order matters: the tab pattern is more specific than the media pattern,
# which is more specific than the plain group pattern.
ROUTES: list[Route] = [
    # E.g. https://www.facebook.com/groups/185350018231892/media/photos
    Route("FB_GROUP_MEDIA_TAB", "FB_GROUP_MEDIA_TAB", "FB_GROUP_MEDIA_TAB_URL"),
    # E.g. https://www.facebook.com/groups/185350018231892/media
    Route("FB_GROUP_MEDIA", "FB_GROUP_MEDIA", "FB_GROUP_MEDIA_URL"),
    # E.g. https://www.facebook.com/groups/185350018231892
    Route("FB_GROUP", "FB_GROUP", "FB_GROUP_URL"),
    # E.g. https://www.facebook.com/media/set/?set=oa.187284474705113
    Route("FB_MEDIA_ALBUM", "FB_MEDIA_ALBUM", "FB_ALBUM_URL"),
    # E.g. https://www.facebook.com/photo/?fbid=10150775445404199&set=oa.187284474705113
    Route("FB_MEDIA_PHOTO", "FB_MEDIA_PHOTO", "FB_PHOTO_URL"),
    # E.g. https://www.facebook.com/milo.barnett/videos/10205524050998264/?idorvanity=185350018231892
    Route("FB_MEDIA_VIDEO", "FB_MEDIA_VIDEO", "FB_VIDEO_URL"),
]


def match_route(url: str, routes: Optional[list[Route]] = None) -> Optional[RouteMatch]:
    """Test routes top to bottom; the first match wins. None means not handled."""
    for route in routes or ROUTES:
        params = route.match(url)
        if params is not None:
            return RouteMatch(label=route.handler_label, params=params)
    logger.debug("No route matched", url=url)
    return None


def match_params(url: str, pattern_key: str) -> dict[str, str]:
    """Named groups of a single pattern against the URL path ({} if no match)."""
    found = URL_REGEX[pattern_key].match(urlparse(url).path or "/")
    if not found:
        return {}
    return {k: v for k, v in found.groupdict().items() if v is not None}
