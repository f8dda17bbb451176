"""DOM backend over a live Playwright page."""

from typing import Any, Optional

from playwright.async_api import ElementHandle, JSHandle, Page

from .base import DOMNode

JS_COMMON_ANCESTOR = """(a, b) => {
    for (let node = a; node; node = node.parentElement) {
        if (node.contains(b)) return node;
    }
    return null;
}"""

JS_COMMON_ANCESTOR_FROM_SELECTOR = """(root, selector) => {
    const els = Array.from(root.querySelectorAll(selector));
    if (!els.length) return null;
    if (els.length === 1) return els[0].parentElement;
    let ancestor = els[0];
    for (const el of els.slice(1)) {
        while (ancestor && !ancestor.contains(el)) ancestor = ancestor.parentElement;
    }
    return ancestor;
}"""


class LiveNode(DOMNode[ElementHandle]):
    """Wraps a Playwright `ElementHandle`; every call is a round-trip to the browser."""

    def __init__(self, node: ElementHandle, page: Optional[Page] = None, base_url: Optional[str] = None):
        super().__init__(node, base_url)
        self.page = page

    @classmethod
    async def from_page(cls, page: Page) -> Optional["LiveNode"]:
        """Root element (`<html>`) of the page."""
        root = await page.query_selector(":root")
        if root is None:
            return None
        return cls(root, page, page.url)

    def _wrap(self, handle: Optional[ElementHandle]) -> Optional["LiveNode"]:
        if handle is None:
            return None
        return LiveNode(handle, self.page, self.base_url)

    async def _wrap_js_handle(self, handle: JSHandle) -> Optional["LiveNode"]:
        element = handle.as_element()
        if element is None:
            await handle.dispose()
            return None
        return self._wrap(element)

    async def find_one(self, selector: str) -> Optional["LiveNode"]:
        return self._wrap(await self.node.query_selector(selector))

    async def find_many(self, selector: str) -> list["LiveNode"]:
        return [self._wrap(handle) for handle in await self.node.query_selector_all(selector)]

    async def children(self) -> list["LiveNode"]:
        array_handle = await self.node.evaluate_handle("el => Array.from(el.children)")
        try:
            properties = await array_handle.get_properties()
            children = []
            for handle in properties.values():
                element = handle.as_element()
                if element is not None:
                    children.append(self._wrap(element))
            return children
        finally:
            await array_handle.dispose()

    async def parent(self) -> Optional["LiveNode"]:
        return await self._wrap_js_handle(await self.node.evaluate_handle("el => el.parentElement"))

    async def closest(self, selector: str) -> Optional["LiveNode"]:
        handle = await self.node.evaluate_handle("(el, selector) => el.closest(selector)", selector)
        return await self._wrap_js_handle(handle)

    async def attr(self, name: str) -> Optional[str]:
        return await self.node.get_attribute(name)

    async def prop(self, name: str) -> Any:
        return await self.node.evaluate("(el, name) => el[name] ?? null", name)

    async def props(self, names) -> list[Any]:
        return await self.node.evaluate("(el, names) => names.map((name) => el[name] ?? null)", list(names))

    async def text(self) -> Optional[str]:
        text = await self.node.evaluate("el => el.textContent")
        return text.strip() if text is not None else None

    async def get_common_ancestor(self, other: "LiveNode") -> Optional["LiveNode"]:
        handle = await self.node.evaluate_handle(JS_COMMON_ANCESTOR, other.node)
        return await self._wrap_js_handle(handle)

    async def get_common_ancestor_from_selector(self, selector: str) -> Optional["LiveNode"]:
        handle = await self.node.evaluate_handle(JS_COMMON_ANCESTOR_FROM_SELECTOR, selector)
        return await self._wrap_js_handle(handle)
