"""
Tests for zandar/snapshot.py: backup document export, validation and restore.
"""

import json
from datetime import datetime

import pytest

from zandar import snapshot
from zandar.errors import (
    MalformedDocumentError, StorageError, StructuralError, ValidationError,
    VersionMismatchError,
)
from zandar.store import JsonStore


def tables(store):
    return {c: store.read_all(c) for c in ("pages", "widgets", "links")}


def document(**overrides):
    doc = {
        "version": "1.0",
        "timestamp": "2026-01-02T09:30:00.000Z",
        "appName": "Zandar",
        "data": {"pages": [], "widgets": [], "links": []},
        "metadata": {"totalPages": 0, "totalWidgets": 0, "totalLinks": 0},
    }
    doc.update(overrides)
    return doc


class TestSerialize:
    def test_envelope(self, populated):
        doc = snapshot.serialize(populated.store)
        assert doc["version"] == "1.0"
        assert doc["appName"] == "Zandar"
        assert doc["timestamp"].endswith("Z")
        assert doc["metadata"] == {"totalPages": 2, "totalWidgets": 4, "totalLinks": 4}
        assert doc["data"] == tables(populated.store)

    def test_empty_store(self, store):
        doc = snapshot.serialize(store)
        assert doc["data"] == {"pages": [], "widgets": [], "links": []}
        assert doc["metadata"]["totalLinks"] == 0

    def test_statistics(self, populated):
        assert snapshot.statistics(populated.store) == {"pages": 2, "widgets": 4, "links": 4, "total": 10}

    def test_filename(self):
        name = snapshot.backup_filename(datetime(2026, 1, 2, 9, 30, 0))
        assert name == "zandar-backup-01-02-2026--09-30-00.json"


class TestRoundTrip:
    def test_populated(self, populated):
        text = snapshot.dumps(snapshot.serialize(populated.store))
        fresh = JsonStore()
        snapshot.restore(fresh, snapshot.deserialize(text))
        assert tables(fresh) == tables(populated.store)

    def test_empty(self, store):
        text = snapshot.dumps(snapshot.serialize(store))
        other = JsonStore()
        other.add("pages", {"title": "stale"})
        snapshot.restore(other, snapshot.deserialize(text))
        assert tables(other) == {"pages": [], "widgets": [], "links": []}

    def test_through_files(self, populated, tmp_path):
        out = snapshot.export_database(populated.store, str(tmp_path))
        assert out["filename"].startswith("zandar-backup-")
        assert out["metadata"]["totalWidgets"] == 4
        fresh = JsonStore(str(tmp_path / "restored.json"))
        res = snapshot.import_database(fresh, out["path"])
        assert res["stats"] == {"pagesImported": 2, "widgetsImported": 4, "linksImported": 4}
        assert res["backupVersion"] == "1.0"
        assert tables(JsonStore(fresh.path)) == tables(populated.store)


class TestDeserialize:
    def test_accepts_bytes_and_objects(self):
        doc = document()
        assert snapshot.deserialize(json.dumps(doc).encode()).version == "1.0"
        data = snapshot.deserialize(doc)
        assert data.pages == [] and data.timestamp == "2026-01-02T09:30:00.000Z"

    @pytest.mark.parametrize("raw", ["{not json", b"\xff\xfe\x00", ""])
    def test_malformed(self, raw):
        with pytest.raises(MalformedDocumentError):
            snapshot.deserialize(raw)

    @pytest.mark.parametrize("raw", ["[]", "42", '"1.0"'])
    def test_not_an_object(self, raw):
        with pytest.raises(StructuralError):
            snapshot.deserialize(raw)

    def test_no_version(self):
        doc = document()
        del doc["version"]
        with pytest.raises(StructuralError):
            snapshot.deserialize(doc)

    @pytest.mark.parametrize("version", ["0.9", "1.0.0", "2.0", 1.0])
    def test_version_mismatch(self, version):
        with pytest.raises(VersionMismatchError) as exc:
            snapshot.deserialize(document(version=version))
        assert exc.value.expected == "1.0"
        assert exc.value.found == version

    def test_version_checked_before_shape(self):
        with pytest.raises(VersionMismatchError):
            snapshot.deserialize({"version": "0.9"})

    def test_missing_data(self):
        with pytest.raises(StructuralError):
            snapshot.deserialize(document(data=None))

    @pytest.mark.parametrize("table", ["pages", "widgets", "links"])
    def test_missing_table(self, table):
        doc = document()
        del doc["data"][table]
        with pytest.raises(StructuralError):
            snapshot.deserialize(doc)

    def test_table_not_a_list(self):
        doc = document()
        doc["data"]["links"] = {}
        with pytest.raises(StructuralError):
            snapshot.deserialize(doc)

    def test_record_not_an_object(self):
        doc = document()
        doc["data"]["pages"] = ["Home"]
        with pytest.raises(StructuralError):
            snapshot.deserialize(doc)


class TestRestore:
    def test_keeps_ids_and_fields_verbatim(self, store):
        page = {"id": 42, "uuid": "u-1", "title": "Home", "createdAt": "a", "updatedAt": "b"}
        widget = {"id": 7, "uuid": "u-2", "title": "W", "collapsed": True, "pageId": 42,
                  "columnId": 3, "order": 9, "createdAt": "a", "updatedAt": "b"}
        doc = document(data={"pages": [page], "widgets": [widget], "links": []})
        snapshot.restore(store, snapshot.deserialize(doc))
        assert store.get("pages", 42) == page
        assert store.get("widgets", 7) == widget
        assert store.add("pages", {"title": "next"}) == 43

    def test_replaces_existing(self, populated):
        doc = document(data={"pages": [{"id": 1, "title": "Only"}], "widgets": [], "links": []})
        stats = snapshot.restore(populated.store, snapshot.deserialize(doc))
        assert stats == {"pagesImported": 1, "widgetsImported": 0, "linksImported": 0}
        assert tables(populated.store) == {"pages": [{"id": 1, "title": "Only"}], "widgets": [], "links": []}

    def test_failed_insert_leaves_store_untouched(self, populated):
        before = tables(populated.store)
        doc = document(data={"pages": [], "widgets": [], "links": [{"id": 1}, {"id": 1}]})
        with pytest.raises(StorageError):
            snapshot.restore(populated.store, snapshot.deserialize(doc))
        assert tables(populated.store) == before

    def test_failed_insert_leaves_file_untouched(self, populated, file_store):
        snapshot.restore(file_store, snapshot.deserialize(snapshot.serialize(populated.store)))
        before = tables(JsonStore(file_store.path))
        doc = document(data={"pages": [{"id": 3}, {"id": 3}], "widgets": [], "links": []})
        with pytest.raises(StorageError):
            snapshot.restore(file_store, snapshot.deserialize(doc))
        assert tables(JsonStore(file_store.path)) == before

    def test_merge_not_supported(self, store):
        with pytest.raises(ValidationError):
            snapshot.restore(store, snapshot.deserialize(document()), mode="merge")

    def test_import_requires_json_name(self, store, tmp_path):
        path = tmp_path / "backup.txt"
        path.write_text(json.dumps(document()), encoding="utf-8")
        with pytest.raises(ValidationError):
            snapshot.import_database(store, str(path))

    def test_import_missing_file(self, store, tmp_path):
        with pytest.raises(StorageError):
            snapshot.import_database(store, str(tmp_path / "gone.json"))
