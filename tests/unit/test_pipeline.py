"""Tests for fb_group_media.extraction.pipeline."""

import asyncio

from fb_group_media.extraction.pipeline import (
    FieldStrategy,
    apply_patch,
    empty_record,
    get_path,
    missing_fields,
    resolve_fields,
    set_path,
)


def strategy(name, fields, patch, calls=None):
    async def fill():
        if calls is not None:
            calls.append(name)
        return patch
    return FieldStrategy(name, fields, fill)


class TestPaths:

    def test_get_nested(self):
        assert get_path({"a": {"b": 1}}, "a.b") == 1

    def test_get_missing(self):
        assert get_path({"a": None}, "a.b") is None
        assert get_path({}, "x") is None

    def test_set_creates_parents(self):
        record = {}
        set_path(record, "imagePreview.url", "u")
        assert record == {"imagePreview": {"url": "u"}}

    def test_empty_record(self):
        assert empty_record(["a", "b.c"]) == {"a": None, "b": {"c": None}}

    def test_missing_fields_treats_empty_string_as_missing(self):
        assert missing_fields({"a": "", "b": 0, "c": None}, ["a", "b", "c"]) == ["a", "c"]

    def test_apply_patch_only_listed_fields(self):
        record = {"a": None, "b": None}
        filled = apply_patch(record, {"a": 1, "b": 2, "z": 3}, ["a"])
        assert filled == ["a"]
        assert record == {"a": 1, "b": None}


class TestResolveFields:

    def test_later_strategy_fills_missing(self):
        record = empty_record(["timestamp"])
        strategies = [
            strategy("payloads", ["timestamp"], {"timestamp": None}),
            strategy("dom", ["timestamp"], {"timestamp": "2013-06-24T17:20:00Z"}),
        ]
        asyncio.run(resolve_fields(record, strategies))
        assert record["timestamp"] == "2013-06-24T17:20:00Z"

    def test_earlier_value_is_never_overwritten(self):
        calls = []
        record = empty_record(["timestamp"])
        strategies = [
            strategy("payloads", ["timestamp"], {"timestamp": "first"}, calls),
            strategy("dom", ["timestamp"], {"timestamp": "second"}, calls),
        ]
        asyncio.run(resolve_fields(record, strategies))
        assert record["timestamp"] == "first"
        assert calls == ["payloads"]

    def test_partial_group_only_fills_missing(self):
        calls = []
        record = empty_record(["imagePreview.url", "imagePreview.alt"])
        strategies = [
            strategy("payloads", ["imagePreview.url", "imagePreview.alt"], {"imagePreview.url": "payload.jpg"}, calls),
            strategy("dom", ["imagePreview.url", "imagePreview.alt"],
                     {"imagePreview.url": "dom.jpg", "imagePreview.alt": "A lake"}, calls),
        ]
        asyncio.run(resolve_fields(record, strategies))
        assert record["imagePreview"] == {"url": "payload.jpg", "alt": "A lake"}
        assert calls == ["payloads", "dom"]

    def test_failing_strategy_is_isolated(self):
        async def broken():
            raise ValueError("selector changed")

        record = empty_record(["likesCount", "timestamp"])
        strategies = [
            FieldStrategy("broken", ["likesCount"], broken),
            strategy("dom", ["timestamp", "likesCount"], {"timestamp": "t", "likesCount": 4}),
        ]
        asyncio.run(resolve_fields(record, strategies))
        assert record == {"likesCount": 4, "timestamp": "t"}

    def test_none_patch(self):
        record = empty_record(["a"])
        asyncio.run(resolve_fields(record, [strategy("nothing", ["a"], None)]))
        assert record == {"a": None}

    def test_zero_counts_are_values(self):
        calls = []
        record = empty_record(["likesCount"])
        strategies = [
            strategy("payloads", ["likesCount"], {"likesCount": 0}, calls),
            strategy("dom", ["likesCount"], {"likesCount": 5}, calls),
        ]
        asyncio.run(resolve_fields(record, strategies))
        assert record["likesCount"] == 0
        assert calls == ["payloads"]
