"""Request deduplication by normalized URL."""

import hashlib
from urllib.parse import parse_qsl, urlencode, urlparse, urlunparse


def normalize_url(url: str) -> str:
    """Normalize a URL so trivially different forms of one page compare equal.

    Lowercases scheme and host, drops the fragment and a trailing slash, and
    sorts query params.
    """
    parsed = urlparse(url.strip())
    path = parsed.path.rstrip("/") or "/"
    query = urlencode(sorted(parse_qsl(parsed.query, keep_blank_values=True)))
    return urlunparse((
        parsed.scheme.lower(),
        parsed.netloc.lower(),
        path,
        parsed.params,
        query,
        "",
    ))


def generate_request_key(url: str) -> str:
    """Unique key of a request, a hash of its normalized URL."""
    return hashlib.sha256(normalize_url(url).encode()).hexdigest()
