"""DOM backend over static markup parsed with BeautifulSoup."""

from typing import Any, Optional
from urllib.parse import urljoin

import soupsieve
from bs4 import BeautifulSoup, Tag

from .base import DOMNode

URL_PROPS = ("href", "src")


class StaticNode(DOMNode[Tag]):
    """Wraps a bs4 `Tag` (or the whole `BeautifulSoup` document)."""

    @classmethod
    def from_html(cls, html: str, base_url: Optional[str] = None) -> "StaticNode":
        return cls(BeautifulSoup(html, "html.parser"), base_url)

    def _wrap(self, tag: Optional[Tag]) -> Optional["StaticNode"]:
        if tag is None:
            return None
        return StaticNode(tag, self.base_url)

    def _ancestors(self) -> list[Tag]:
        """This node followed by its parents up to the document."""
        chain = [self.node]
        chain.extend(self.node.parents)
        return chain

    async def find_one(self, selector: str) -> Optional["StaticNode"]:
        return self._wrap(self.node.select_one(selector))

    async def find_many(self, selector: str) -> list["StaticNode"]:
        return [StaticNode(tag, self.base_url) for tag in self.node.select(selector)]

    async def children(self) -> list["StaticNode"]:
        return [StaticNode(child, self.base_url) for child in self.node.children if isinstance(child, Tag)]

    async def parent(self) -> Optional["StaticNode"]:
        return self._wrap(self.node.parent)

    async def closest(self, selector: str) -> Optional["StaticNode"]:
        if isinstance(self.node, BeautifulSoup):
            return None
        return self._wrap(soupsieve.closest(selector, self.node))

    async def attr(self, name: str) -> Optional[str]:
        value = self.node.get(name) if not isinstance(self.node, BeautifulSoup) else None
        if isinstance(value, list):
            return " ".join(value)
        return value

    async def prop(self, name: str) -> Any:
        if name in ("textContent", "innerText"):
            return self.node.get_text()
        if name in ("nodeName", "tagName"):
            return self.node.name.upper() if self.node.name else None
        if name == "innerHTML":
            return self.node.decode_contents()
        if name == "outerHTML":
            return str(self.node)
        if name == "className":
            return await self.attr("class")
        value = await self.attr(name)
        if value is None:
            value = await self.attr(name.lower())
        if value is not None and name in URL_PROPS:
            return urljoin(self.base_url or "", value)
        return value

    async def text(self) -> Optional[str]:
        return self.node.get_text().strip()

    async def get_common_ancestor(self, other: "StaticNode") -> Optional["StaticNode"]:
        other_chain = {id(tag) for tag in other._ancestors()}
        for tag in self._ancestors():
            if id(tag) in other_chain:
                return self._wrap(tag)
        return None

    async def get_common_ancestor_from_selector(self, selector: str) -> Optional["StaticNode"]:
        matches = await self.find_many(selector)
        if not matches:
            return None
        if len(matches) == 1:
            return await matches[0].parent()

        ancestor: Optional[StaticNode] = matches[0]
        for match in matches[1:]:
            ancestor = await ancestor.get_common_ancestor(match)
            if ancestor is None:
                return None
        return ancestor
