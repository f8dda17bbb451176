"""Exceptions raised by the group media scraper."""


class FbGroupMediaError(Exception):
    """Base class for scraper errors."""


class ContainerNotFoundError(FbGroupMediaError):
    """No element encloses the links an infinite-scroll page should list."""

    def __init__(self, selector: str):
        super().__init__(f"Failed to find infinite scroll container for selector {selector!r}")
        self.selector = selector
