"""Search the JSON payloads Facebook inlines in `<script>` tags.

The payloads are undocumented and change without notice, so nothing here
assumes a schema: a walker collects every node a predicate accepts and the
call sites pull out fields one by one with defaults. When several nodes
match, their order follows the traversal, which is not guaranteed to be
stable; predicates should be narrow enough that the first match is right.
"""

import json
from collections import deque
from typing import Any, Awaitable, Callable, Iterator, Optional

import structlog

from ..constants import PAYLOAD_MARKER
from ..dom.base import DOMNode

logger = structlog.get_logger()

Predicate = Callable[[Any], bool]
Evaluator = Callable[[str], Awaitable[Any]]

_decoder = json.JSONDecoder()


def has_marker(text: str, marker: str = PAYLOAD_MARKER) -> bool:
    """Default pre-filter: only parse script bodies mentioning the marker."""
    return marker in text


def walk(data: Any, predicate: Predicate) -> list[Any]:
    """Breadth-first walk over nested dicts/lists, collecting nodes the predicate accepts."""
    matches = []
    queue = deque([data])
    while queue:
        node = queue.popleft()
        try:
            if predicate(node):
                matches.append(node)
        except (AttributeError, KeyError, TypeError, ValueError):
            pass
        if isinstance(node, dict):
            queue.extend(node.values())
        elif isinstance(node, (list, tuple)):
            queue.extend(node)
    return matches


def iter_json_fragments(text: str) -> Iterator[Any]:
    """Yield every JSON object embedded in script-like text.

    Used when the whole script body is not JSON, e.g.
    `requireLazy(["x"], function() { x.handle({...}) })`.
    """
    pos = text.find("{")
    while pos != -1:
        try:
            value, end = _decoder.raw_decode(text, pos)
        except ValueError:
            pos = text.find("{", pos + 1)
            continue
        yield value
        pos = text.find("{", end)


def load_payload(text: str) -> Optional[Any]:
    """Parse a script body as JSON, None if it is not valid JSON."""
    try:
        return json.loads(text)
    except ValueError:
        return None


async def parse_script(text: str, evaluate: Optional[Evaluator] = None) -> Optional[Any]:
    """JSON first; then the page's own JS evaluation if available; then embedded objects."""
    data = load_payload(text)
    if data is not None:
        return data

    if evaluate is not None:
        try:
            data = await evaluate(text)
        except Exception as e:
            logger.debug("Failed to evaluate script payload", error=str(e))
            data = None
        if data is not None:
            return data

    fragments = list(iter_json_fragments(text))
    return fragments or None


async def search_payloads(
    dom: DOMNode,
    predicate: Predicate,
    prefilter: Callable[[str], bool] = has_marker,
    evaluate: Optional[Evaluator] = None,
) -> list[Any]:
    """Collect all payload nodes matching `predicate` across the page's scripts."""
    matches = []
    for script in await dom.find_many("script"):
        text = await script.prop("textContent")
        if not text or not prefilter(text):
            continue
        data = await parse_script(text, evaluate)
        if data is None:
            continue
        matches.extend(walk(data, predicate))
    return matches


def page_evaluator(page) -> Evaluator:
    """Evaluate non-JSON script bodies as JS expressions inside the live page."""
    async def evaluate(text: str) -> Any:
        return await page.evaluate(
            """(src) => {
                try {
                    return JSON.parse(JSON.stringify(new Function(`return (${src});`)()));
                } catch (e) {
                    return null;
                }
            }""",
            text,
        )
    return evaluate
