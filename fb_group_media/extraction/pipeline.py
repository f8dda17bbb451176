"""Field resolution: fill a partial record from an ordered list of strategies.

Strategies are ordered cheapest/most reliable first (embedded payloads,
then interactive page actions, then static DOM scraping). A strategy runs
only if at least one of its fields is still missing, and it may only fill
fields that are missing: the first source to produce a value wins.
"""

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Mapping, Optional, Sequence

import structlog

logger = structlog.get_logger()

Patch = Mapping[str, Any]


@dataclass
class FieldStrategy:
    """One way of getting a group of fields.

    `fill` returns a patch keyed by dotted field path, e.g.
    `{"imagePreview.url": "...", "likesCount": 3}`.
    """
    name: str
    fields: Sequence[str]
    fill: Callable[[], Awaitable[Optional[Patch]]]


def get_path(record: Mapping[str, Any], path: str) -> Any:
    """Read a dotted path, None if any part is missing."""
    value: Any = record
    for key in path.split("."):
        if not isinstance(value, Mapping):
            return None
        value = value.get(key)
    return value


def set_path(record: dict[str, Any], path: str, value: Any) -> None:
    """Write a dotted path, creating nested dicts on the way."""
    *parents, last = path.split(".")
    target = record
    for key in parents:
        if not isinstance(target.get(key), dict):
            target[key] = {}
        target = target[key]
    target[last] = value


def is_missing(value: Any) -> bool:
    return value is None or value == ""


def missing_fields(record: Mapping[str, Any], fields: Sequence[str]) -> list[str]:
    return [path for path in fields if is_missing(get_path(record, path))]


def apply_patch(record: dict[str, Any], patch: Patch, fields: Sequence[str]) -> list[str]:
    """Copy values for `fields` from the patch into the record. Returns paths filled."""
    filled = []
    for path in fields:
        value = patch.get(path)
        if not is_missing(value):
            set_path(record, path, value)
            filled.append(path)
    return filled


async def resolve_fields(
    record: dict[str, Any],
    strategies: Sequence[FieldStrategy],
    log=None,
) -> dict[str, Any]:
    """Run strategies in order over `record` (mutated in place and returned).

    A failing strategy is logged and skipped so one broken selector does
    not cost the whole record.
    """
    log = log or logger
    for strategy in strategies:
        missing = missing_fields(record, strategy.fields)
        if not missing:
            log.debug("Skipping strategy, fields already set", strategy=strategy.name)
            continue

        log.debug("Running strategy", strategy=strategy.name, missing=missing)
        try:
            patch = await strategy.fill()
        except Exception as e:
            log.warning("Field strategy failed", strategy=strategy.name, error=str(e))
            continue

        filled = apply_patch(record, patch or {}, missing)
        log.debug("Strategy done", strategy=strategy.name, filled=filled)
    return record


def empty_record(fields: Sequence[str]) -> dict[str, Any]:
    """A record with every known field present and set to None."""
    record: dict[str, Any] = {}
    for path in fields:
        set_path(record, path, None)
    return record
