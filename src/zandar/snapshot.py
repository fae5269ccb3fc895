# snapshot.py: export / import of the whole start page as one JSON document.
#
#   {
#     "version": "1.0",
#     "timestamp": "2026-01-01T12:00:00.000Z",
#     "appName": "Zandar",
#     "data": {"pages": [...], "widgets": [...], "links": [...]},
#     "metadata": {"totalPages": n, "totalWidgets": n, "totalLinks": n}
#   }
#
# The version string is the only compatibility gate: anything but an exact
# match is refused, never upgraded.

import json
import logging
import os
import re
from dataclasses import dataclass, field
from datetime import datetime

from .config import (
    APP_IDENTIFIER, BACKUP_DATE_FORMAT, BACKUP_VERSION, COLLECTIONS, FILE_PREFIX,
)
from .errors import (
    MalformedDocumentError, StorageError, StructuralError, ValidationError,
    VersionMismatchError,
)
from .records import now_iso

logger = logging.getLogger(__name__)

REPLACE = "replace"


@dataclass
class SnapshotData:
    version: str
    timestamp: str = ""
    pages: list = field(default_factory=list)
    widgets: list = field(default_factory=list)
    links: list = field(default_factory=list)


def read_all_tables(store):
    """Point-in-time copy of every table, read in a single transaction."""
    with store.transaction("r", COLLECTIONS):
        return {c: store.read_all(c) for c in COLLECTIONS}


# ----------------------------
# Export
# ----------------------------
def serialize(store):
    data = read_all_tables(store)
    return {
        "version": BACKUP_VERSION,
        "timestamp": now_iso(),
        "appName": APP_IDENTIFIER,
        "data": data,
        "metadata": {
            "totalPages": len(data["pages"]),
            "totalWidgets": len(data["widgets"]),
            "totalLinks": len(data["links"]),
        },
    }


def dumps(document):
    return json.dumps(document, indent=2, ensure_ascii=False)


def backup_filename(now=None):
    stamp = re.sub(r"[/:,\s]", "-", (now or datetime.now()).strftime(BACKUP_DATE_FORMAT))
    return f"{FILE_PREFIX}-{stamp}.json"


def statistics(store):
    with store.transaction("r", COLLECTIONS):
        counts = {c: store.count(c) for c in COLLECTIONS}
    counts["total"] = sum(counts.values())
    return counts


# ----------------------------
# Import
# ----------------------------
def _parse(raw):
    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = raw.decode("utf-8-sig")
        except UnicodeDecodeError as e:
            raise MalformedDocumentError(f"Backup is not UTF-8 text: {e}") from e
    if isinstance(raw, str):
        try:
            return json.loads(raw)
        except ValueError as e:
            raise MalformedDocumentError(f"Backup is not valid JSON: {e}") from e
    return raw


def deserialize(raw):
    """
    Parse and validate a backup document (text, bytes or an already decoded
    object). Returns SnapshotData; raises MalformedDocumentError,
    StructuralError or VersionMismatchError.
    """
    doc = _parse(raw)
    if not isinstance(doc, dict):
        raise StructuralError("Invalid backup file format: expected a JSON object")
    version = doc.get("version")
    if version is None or version == "":
        raise StructuralError("Invalid backup file format: no version declared")
    if version != BACKUP_VERSION:
        raise VersionMismatchError(BACKUP_VERSION, version)

    data = doc.get("data")
    if not isinstance(data, dict):
        raise StructuralError("Invalid backup file format: missing data object")
    tables = {}
    for c in COLLECTIONS:
        if c not in data:
            raise StructuralError(f"Invalid backup file format: data.{c} is missing")
        rows = data[c]
        if not isinstance(rows, list):
            raise StructuralError(f"Invalid backup file format: data.{c} is not a list")
        if not all(isinstance(r, dict) for r in rows):
            raise StructuralError(f"Invalid backup file format: data.{c} holds a non-object entry")
        tables[c] = rows
    return SnapshotData(version=version, timestamp=doc.get("timestamp") or "", **tables)


def restore(store, snapshot, mode=REPLACE):
    """
    Wipe all three tables and insert the snapshot's records verbatim, ids
    included, in one transaction. A failure anywhere leaves the store as it was.
    """
    if mode != REPLACE:
        raise ValidationError(f"Unsupported restore mode {mode!r}; only {REPLACE!r} is available")
    with store.transaction("rw", COLLECTIONS):
        for c in COLLECTIONS:
            store.clear(c)
        for c in COLLECTIONS:
            store.bulk_add(c, getattr(snapshot, c))
    stats = {
        "pagesImported": len(snapshot.pages),
        "widgetsImported": len(snapshot.widgets),
        "linksImported": len(snapshot.links),
    }
    logger.info("restored backup %s (%s): %s", snapshot.version, snapshot.timestamp or "no timestamp", stats)
    return stats


def import_document(store, raw, mode=REPLACE):
    snapshot = deserialize(raw)
    stats = restore(store, snapshot, mode)
    return {"stats": stats, "backupVersion": snapshot.version, "backupTimestamp": snapshot.timestamp}


# ----------------------------
# Files
# ----------------------------
def export_database(store, directory="."):
    document = serialize(store)
    filename = backup_filename()
    path = os.path.join(directory, filename)
    try:
        with open(path, "w", encoding="utf-8") as f:
            f.write(dumps(document))
    except OSError as e:
        raise StorageError(f"Cannot write backup file {path}: {e}") from e
    logger.info("exported backup to %s: %s", path, document["metadata"])
    return {"filename": filename, "path": path, "metadata": document["metadata"]}


def import_database(store, path, mode=REPLACE):
    if not str(path).lower().endswith(".json"):
        raise ValidationError("Please select a JSON file")
    try:
        with open(path, "rb") as f:
            raw = f.read()
    except OSError as e:
        raise StorageError(f"Failed to read file {path}: {e}") from e
    return import_document(store, raw, mode)
