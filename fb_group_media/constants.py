"""URL patterns and selectors for Facebook group media pages."""

import re

# Matched against the URL path only
URL_REGEX = {
    # E.g. /groups/185350018231892/media/photos
    "FB_GROUP_MEDIA_TAB_URL": re.compile(r"^/groups/(?P<groupId>[^/?#]+)/media/(?P<tab>photos|videos|albums)/?$"),
    # E.g. /groups/185350018231892/media
    "FB_GROUP_MEDIA_URL": re.compile(r"^/groups/(?P<groupId>[^/?#]+)/media/?$"),
    # E.g. /groups/185350018231892
    "FB_GROUP_URL": re.compile(r"^/groups/(?P<groupId>[^/?#]+)"),
    # E.g. /media/set/?set=oa.187284474705113
    "FB_ALBUM_URL": re.compile(r"^/media/set/?$"),
    # E.g. /photo/?fbid=10150775445404199&set=oa.187284474705113
    "FB_PHOTO_URL": re.compile(r"^/photo/?$"),
    # E.g. /milo.barnett/videos/10205524050998264/
    "FB_VIDEO_URL": re.compile(r"^/(?P<userId>[^/?#]+)/videos/(?P<videoId>[^/?#]+)/?$"),
}

MEDIA_TYPE_CONFIG = {
    "photos": {
        "tab_selector": '[href*="/photos/"][role="tab"]',
        "link_selector": '[href*="/photo/"][role="link"]',
    },
    "videos": {
        "tab_selector": '[href*="/videos/"][role="tab"]',
        "link_selector": '[href*="/videos/"][role="link"]',
    },
    "albums": {
        "tab_selector": '[href*="/albums/"][role="tab"]',
        "link_selector": '[href*="/set/"][role="link"]',
    },
}

TAB_SELECTOR = ", ".join(c["tab_selector"] for c in MEDIA_TYPE_CONFIG.values())
LINK_SELECTOR = ", ".join(c["link_selector"] for c in MEDIA_TYPE_CONFIG.values())
ALBUM_ITEM_SELECTOR = '[role="listitem"] [href][role="link"]'

# Post page elements
POST_MENU_SELECTOR = '[aria-haspopup="menu"][role="button"]'
VIDEO_MENU_SELECTOR = '[aria-label="More"][role="button"]'
DOWNLOAD_MENU_ITEM_SELECTOR = '[download][role="menuitem"]'
PHOTO_PREVIEW_SELECTOR = '[data-pagelet="MediaViewerPhoto"] img'
VIDEO_SELECTOR = '[data-pagelet="WatchPermalinkVideo"] video'
VIDEO_THUMB_SELECTOR = '[data-pagelet="WatchPermalinkVideo"] img'
TOOLTIP_SELECTOR = '[role="tooltip"]'

# Embedded payloads worth parsing mention this key
PAYLOAD_MARKER = "__bbox"
