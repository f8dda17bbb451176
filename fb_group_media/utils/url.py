"""Small URL helpers."""

from typing import Iterable, Optional
from urllib.parse import parse_qsl, urlencode, urlparse, urlunparse


def get_search_params(url: str, keys: Iterable[str]) -> dict[str, Optional[str]]:
    """Return the first value of each query param in `keys` (None if absent)."""
    params: dict[str, str] = {}
    for key, value in parse_qsl(urlparse(url).query, keep_blank_values=True):
        params.setdefault(key, value)
    return {key: params.get(key) for key in keys}


def remove_search_params(url: str, keys: Iterable[str]) -> str:
    """Drop the given query params, keeping everything else in order."""
    drop = set(keys)
    parsed = urlparse(url)
    query = [(k, v) for k, v in parse_qsl(parsed.query, keep_blank_values=True) if k not in drop]
    return urlunparse(parsed._replace(query=urlencode(query)))


def replace_path(url: str, path: str) -> str:
    """Return `url` with its path swapped for `path`."""
    return urlunparse(urlparse(url)._replace(path=path))
