"""Backend-independent DOM access.

Extraction code is written once against `DOMNode` and runs the same on a
static BeautifulSoup tree or on a live Playwright page. Every method is a
coroutine and "not found" is always `None`, never an exception.
"""

from abc import ABC, abstractmethod
from typing import Any, Generic, Optional, Sequence, TypeVar

T = TypeVar("T")


class DOMNode(ABC, Generic[T]):
    """A single element (or document) in one of the DOM backends."""

    def __init__(self, node: T, base_url: Optional[str] = None):
        self.node = node
        self.base_url = base_url

    @abstractmethod
    async def find_one(self, selector: str) -> Optional["DOMNode[T]"]:
        """First descendant matching a CSS selector."""

    @abstractmethod
    async def find_many(self, selector: str) -> list["DOMNode[T]"]:
        """All descendants matching a CSS selector, in document order."""

    @abstractmethod
    async def children(self) -> list["DOMNode[T]"]:
        """Element children."""

    @abstractmethod
    async def parent(self) -> Optional["DOMNode[T]"]:
        """Parent element, None at the root."""

    @abstractmethod
    async def closest(self, selector: str) -> Optional["DOMNode[T]"]:
        """This element or its nearest ancestor matching the selector."""

    @abstractmethod
    async def attr(self, name: str) -> Optional[str]:
        """Raw attribute value as written in the markup."""

    @abstractmethod
    async def prop(self, name: str) -> Any:
        """DOM property value (`href` and `src` are absolute URLs)."""

    @abstractmethod
    async def text(self) -> Optional[str]:
        """Text content, stripped."""

    @abstractmethod
    async def get_common_ancestor(self, other: "DOMNode[T]") -> Optional["DOMNode[T]"]:
        """Deepest element that contains both this node and `other`."""

    @abstractmethod
    async def get_common_ancestor_from_selector(self, selector: str) -> Optional["DOMNode[T]"]:
        """Deepest element containing every descendant that matches `selector`.

        With a single match the match's parent is returned, so the result is
        always a container of the matches rather than one of them.
        """

    async def props(self, names: Sequence[str]) -> list[Any]:
        """Several properties at once, in the order requested."""
        return [await self.prop(name) for name in names]

    async def text_as_lower(self) -> Optional[str]:
        text = await self.text()
        return text.lower() if text is not None else None
