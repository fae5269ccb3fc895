# store.py: durable tables for pages, widgets and links.
#
# Storage: one JSON file (no DB), rewritten whole on every commit, the same
# way the old bookmarks.csv was. Layout:
#   {"pages": [...], "widgets": [...], "links": [...], "sequences": {...}}
#
# Every read or write happens inside a transaction. The outermost transaction
# reloads the file, works on a private copy and only replaces the file when
# the work finished without raising; anything else leaves the file untouched.

import copy
import json
import logging
import os
import tempfile
import threading
from contextlib import contextmanager

from .config import COLLECTIONS
from .errors import NotFoundError, StorageError, ZandarError

logger = logging.getLogger(__name__)

MODES = ("r", "rw")

_locks = {}
_locks_guard = threading.Lock()


def _lock_for(path):
    """One re-entrant lock per store file, shared by every JsonStore on it."""
    key = os.path.abspath(path)
    with _locks_guard:
        if key not in _locks:
            _locks[key] = threading.RLock()
        return _locks[key]


def _empty_tables():
    return {c: [] for c in COLLECTIONS}


def _empty_sequences():
    return {c: 0 for c in COLLECTIONS}


class Transaction:
    """Working copy of the tables for one unit of work."""

    def __init__(self, mode, scope, tables, sequences):
        self.mode = mode
        self.scope = frozenset(scope)
        self.tables = tables
        self.sequences = sequences
        self.dirty = False

    def table(self, collection):
        if collection not in self.scope:
            raise StorageError(f"Table {collection} not part of transaction scope")
        return self.tables[collection]

    def writable(self, collection):
        if self.mode != "rw":
            raise StorageError(f"Cannot write to {collection} in a read-only transaction")
        t = self.table(collection)
        self.dirty = True
        return t


class JsonStore:
    def __init__(self, path=None):
        self.path = path
        self._lock = _lock_for(path) if path else threading.RLock()
        self._tables = _empty_tables()
        self._sequences = _empty_sequences()
        self._tx = None

    def __repr__(self):
        return f"JsonStore({self.path!r})"

    # ----------------------------
    # Loading / committing
    # ----------------------------
    def _load(self):
        if not self.path:
            return copy.deepcopy(self._tables), dict(self._sequences)
        if not os.path.exists(self.path):
            return _empty_tables(), _empty_sequences()
        try:
            with open(self.path, encoding="utf-8") as f:
                raw = json.load(f)
        except (OSError, ValueError) as e:
            raise StorageError(f"Cannot read store file {self.path}: {e}") from e
        if not isinstance(raw, dict):
            raise StorageError(f"Store file {self.path} is not a JSON object")
        tables = _empty_tables()
        for c in COLLECTIONS:
            rows = raw.get(c, [])
            if not isinstance(rows, list):
                raise StorageError(f"Store file {self.path}: {c} is not a list")
            tables[c] = rows
        sequences = _empty_sequences()
        sequences.update(raw.get("sequences") or {})
        return tables, sequences

    def _commit(self, tx):
        if not self.path:
            self._tables, self._sequences = tx.tables, tx.sequences
            return
        payload = dict(tx.tables)
        payload["sequences"] = tx.sequences
        folder = os.path.dirname(os.path.abspath(self.path))
        fd, tmp = tempfile.mkstemp(prefix=".zandar-", suffix=".json", dir=folder)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(payload, f, ensure_ascii=False, indent=2)
            os.replace(tmp, self.path)
        except BaseException:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise

    # ----------------------------
    # Transactions
    # ----------------------------
    @contextmanager
    def transaction(self, mode, collections):
        if mode not in MODES:
            raise ValueError(f"mode must be one of {MODES}, got {mode!r}")
        scope = set(collections)
        unknown = scope - set(COLLECTIONS)
        if unknown:
            raise StorageError(f"Unknown table(s): {', '.join(sorted(unknown))}")

        with self._lock:
            outer = self._tx
            if outer is not None:
                # nested: join the running transaction
                if mode == "rw" and outer.mode != "rw":
                    raise StorageError("Cannot open a read-write transaction inside a read-only one")
                if not scope <= outer.scope:
                    raise StorageError("Nested transaction scope exceeds the outer transaction")
                yield outer
                return

            tables, sequences = self._load()
            tx = Transaction(mode, scope, tables, sequences)
            self._tx = tx
            try:
                yield tx
                if tx.mode == "rw" and tx.dirty:
                    self._commit(tx)
            except StorageError as e:
                logger.error("transaction on %s rolled back: %s", sorted(scope), e)
                raise
            except ZandarError as e:
                logger.debug("transaction on %s rolled back: %s", sorted(scope), e)
                raise
            except (OSError, UnicodeError) as e:
                # UnicodeError: text json accepts but UTF-8 cannot hold (lone surrogates)
                logger.error("transaction on %s failed: %s", sorted(scope), e)
                raise StorageError(f"Transaction failed: {e}") from e
            finally:
                self._tx = None

    def run_transaction(self, mode, collections, work):
        """Run work(store) inside one transaction and return its result."""
        with self.transaction(mode, collections):
            return work(self)

    # ----------------------------
    # Table operations
    # ----------------------------
    def read_all(self, collection):
        with self.transaction("r", [collection]) as tx:
            return [dict(r) for r in tx.table(collection)]

    def get(self, collection, record_id):
        with self.transaction("r", [collection]) as tx:
            for r in tx.table(collection):
                if r.get("id") == record_id:
                    return dict(r)
        return None

    def count(self, collection):
        with self.transaction("r", [collection]) as tx:
            return len(tx.table(collection))

    def add(self, collection, record):
        with self.transaction("rw", [collection]) as tx:
            return self._add(tx, collection, record)

    def bulk_add(self, collection, records):
        with self.transaction("rw", [collection]) as tx:
            return [self._add(tx, collection, r) for r in records]

    def _add(self, tx, collection, record):
        table = tx.writable(collection)
        rid = record.get("id")
        if rid is None:
            existing = [r["id"] for r in table if isinstance(r.get("id"), int)]
            rid = max([tx.sequences[collection]] + existing) + 1
        elif any(r.get("id") == rid for r in table):
            raise StorageError(f"Key already exists in {collection}: {rid!r}")
        if isinstance(rid, int) and rid > tx.sequences[collection]:
            tx.sequences[collection] = rid
        row = dict(record)
        row["id"] = rid
        table.append(row)
        return rid

    def update(self, collection, record_id, fields):
        with self.transaction("rw", [collection]) as tx:
            for r in tx.writable(collection):
                if r.get("id") == record_id:
                    r.update({k: v for k, v in fields.items() if k != "id"})
                    return
            raise NotFoundError(collection, record_id)

    def delete(self, collection, record_id):
        with self.transaction("rw", [collection]) as tx:
            table = tx.writable(collection)
            for i, r in enumerate(table):
                if r.get("id") == record_id:
                    del table[i]
                    return True
        return False

    def clear(self, collection):
        with self.transaction("rw", [collection]) as tx:
            del tx.writable(collection)[:]

    def reset(self):
        """Drop every record and id sequence."""
        with self.transaction("rw", COLLECTIONS) as tx:
            for c in COLLECTIONS:
                del tx.writable(c)[:]
                tx.sequences[c] = 0
        logger.info("store %s reset", self.path or "<memory>")
