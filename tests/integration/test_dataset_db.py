"""Integration tests for the SQLite-backed dataset."""

import json

import pytest

from fb_group_media.privacy import PHOTO_PRIVACY_MASK
from fb_group_media.storage.dataset import Dataset
from fb_group_media.storage.models import DatasetItem

pytestmark = pytest.mark.integration


def photo_record(**overrides):
    record = {
        "url": "https://www.facebook.com/photo/?fbid=1",
        "type": "photo",
        "fbid": "1",
        "authorName": "Jane Doe",
        "authorProfileUrl": "https://www.facebook.com/jane.doe",
        "authorProfileImageThumb": {"url": "https://scontent.example/avatar.jpg", "size": 1024},
        "likesCount": 12,
    }
    record.update(overrides)
    return record


class TestPushData:

    def test_redacts_personal_fields(self, session_factory):
        dataset = Dataset(session_factory)
        stored = dataset.push_data(photo_record(), privacy_mask=PHOTO_PRIVACY_MASK)

        assert stored["authorName"] == '<Redacted property "authorName">'
        assert stored["authorProfileUrl"] == '<Redacted property "authorProfileUrl">'
        assert stored["authorProfileImageThumb"]["url"] == '<Redacted property "authorProfileImageThumb.url">'
        assert stored["authorProfileImageThumb"]["size"] == 1024
        assert stored["likesCount"] == 12
        assert dataset.items() == [stored]

    def test_null_personal_fields_stay_null(self, session_factory):
        dataset = Dataset(session_factory)
        stored = dataset.push_data(photo_record(authorName=None), privacy_mask=PHOTO_PRIVACY_MASK)
        assert stored["authorName"] is None

    def test_include_personal_data(self, session_factory):
        dataset = Dataset(session_factory, include_personal_data=True)
        stored = dataset.push_data(photo_record(), privacy_mask=PHOTO_PRIVACY_MASK)
        assert stored == photo_record()

    def test_without_mask(self, session_factory):
        dataset = Dataset(session_factory)
        assert dataset.push_data(photo_record()) == photo_record()

    def test_does_not_mutate_entry(self, session_factory):
        entry = photo_record()
        Dataset(session_factory).push_data(entry, privacy_mask=PHOTO_PRIVACY_MASK)
        assert entry == photo_record()

    def test_row_columns(self, session_factory, db_session):
        Dataset(session_factory).push_data(photo_record())
        row = db_session.query(DatasetItem).one()
        assert row.entity_type == "photo"
        assert row.url == "https://www.facebook.com/photo/?fbid=1"
        assert row.data["fbid"] == "1"


class TestReading:

    def test_items_in_insertion_order(self, session_factory):
        dataset = Dataset(session_factory)
        for fbid in ("3", "1", "2"):
            dataset.push_data(photo_record(fbid=fbid))
        assert [item["fbid"] for item in dataset.items()] == ["3", "1", "2"]
        assert dataset.count() == 3

    def test_empty(self, session_factory):
        dataset = Dataset(session_factory)
        assert dataset.items() == []
        assert dataset.count() == 0

    def test_export_json(self, session_factory, tmp_path):
        dataset = Dataset(session_factory)
        dataset.push_data(photo_record(description="Sunset über dem See"))
        dataset.push_data({"url": "https://www.facebook.com/media/set/?set=oa.1", "type": "album", "itemsCount": 0})

        path = tmp_path / "out" / "dataset.json"
        assert dataset.export_json(path) == 2
        exported = json.loads(path.read_text(encoding="utf-8"))
        assert [item["type"] for item in exported] == ["photo", "album"]
        assert exported[0]["description"] == "Sunset über dem See"
