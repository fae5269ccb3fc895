# records.py: building and normalizing page / widget / link records.
#
# Records are plain dicts, exactly as they live in the store and in backup
# documents. Older records may lack columnId / order (or carry them as
# strings); normalize_* fills those in once, right after a record is read,
# so ordering code never has to guess.

import re
import uuid
from datetime import datetime, timezone

from . import config
from .errors import ValidationError

SCHEME_RE = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.\-]*://")


def now_iso() -> str:
    """UTC instant in the same shape JavaScript's toISOString() produces."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def new_uuid() -> str:
    return str(uuid.uuid4())


def normalize_url(u: str) -> str:
    if not u: return ""
    u = u.strip()
    if not u: return ""
    if not SCHEME_RE.match(u):
        u = "https://" + u
    return u


def _as_int(value, default=0):
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def clamp_column(column) -> int:
    col = _as_int(column, config.DEFAULT_COLUMN) or config.DEFAULT_COLUMN
    return max(config.COLUMNS[0], min(config.COLUMNS[-1], col))


def require_text(value, label):
    text = str(value or "").strip()
    if not text:
        raise ValidationError(f"{label} is required")
    return text


# ----------------------------
# Normalization (store -> in-memory)
# ----------------------------
def normalize_page(r):
    out = dict(r)
    out["order"] = _as_int(r.get("order"))
    return out


def normalize_widget(r):
    out = dict(r)
    out["columnId"] = clamp_column(r.get("columnId"))
    out["order"] = _as_int(r.get("order"))
    out["collapsed"] = bool(r.get("collapsed", False))
    out["title"] = r.get("title") or config.DEFAULT_WIDGET_TITLE
    return out


def normalize_link(r):
    out = dict(r)
    out["order"] = _as_int(r.get("order"))
    return out


NORMALIZERS = {
    "pages": normalize_page,
    "widgets": normalize_widget,
    "links": normalize_link,
}


def normalize(collection, records):
    fn = NORMALIZERS[collection]
    return [fn(r) for r in records]


# ----------------------------
# Constructors
# ----------------------------
def make_page(title, order):
    ts = now_iso()
    return {"uuid": new_uuid(), "title": title, "order": order, "createdAt": ts, "updatedAt": ts}


def make_widget(page_id, column_id, order, title=None):
    ts = now_iso()
    return {
        "uuid": new_uuid(),
        "title": (title or "").strip() or config.DEFAULT_WIDGET_TITLE,
        "collapsed": False,
        "pageId": page_id,
        "columnId": column_id,
        "order": order,
        "createdAt": ts,
        "updatedAt": ts,
    }


def make_link(widget_id, name, url, order):
    ts = now_iso()
    return {
        "uuid": new_uuid(),
        "name": name,
        "url": url,
        "widgetId": widget_id,
        "order": order,
        "createdAt": ts,
        "updatedAt": ts,
    }
