# ordering.py: sibling order for pages, widgets and links.
#
# A group is every record sharing the same parent slot:
#   pages    -> one group for all pages (tab order)
#   widgets  -> (pageId, columnId)
#   links    -> (widgetId,)
# `order` is only ever compared, never assumed contiguous. Reordering inside
# a group renumbers the whole group 0..n-1; moving into another group leaves
# the holes behind in the source group.

import logging

from .config import COLLECTIONS, COLUMNS, DEFAULT_COLUMN, DEFAULT_WIDGET_TITLE
from .errors import NotFoundError, ValidationError
from .records import (
    NORMALIZERS, make_link, make_page, make_widget, normalize, normalize_url,
    now_iso, require_text,
)

logger = logging.getLogger(__name__)

ABOVE, BELOW = "above", "below"
SIDES = (ABOVE, BELOW)

# kind -> (collection, group-defining attributes)
GROUPS = {
    "page": ("pages", ()),
    "widget": ("widgets", ("pageId", "columnId")),
    "link": ("links", ("widgetId",)),
}


# ----------------------------
# Pure helpers
# ----------------------------
def _order_of(item):
    try:
        return int(item.get("order") or 0)
    except (TypeError, ValueError):
        return 0


def group_key(item, attrs):
    return tuple(item.get(a) for a in attrs)


def list_by_group(items, in_group):
    """Items matching in_group, ascending by order. Equal orders keep input order."""
    return sorted((i for i in items if in_group(i)), key=_order_of)


def next_order(items):
    orders = [_order_of(i) for i in items]
    return (max(orders) + 1) if orders else 0


def append_to_group(group_items, new_item):
    """Give new_item an order that sorts after every current member."""
    new_item["order"] = next_order(group_items)
    return new_item


def reorder_within_group(ordered, moving_id, target_id=None, side=ABOVE):
    """
    Place moving_id above/below target_id and renumber the group 0..n-1.
    Returns new copies in their new order; the input is left alone.
    Without a target the item goes last and nobody else is renumbered.
    """
    if side not in SIDES:
        raise ValidationError(f"side must be one of {SIDES}, got {side!r}")
    moving = next((i for i in ordered if i["id"] == moving_id), None)
    if moving is None:
        raise NotFoundError("group", moving_id)
    if target_id == moving_id:
        return [dict(i) for i in ordered]

    rest = [dict(i) for i in ordered if i["id"] != moving_id]
    if target_id is None:
        return rest + [dict(moving, order=next_order(rest))]

    idx = next((n for n, i in enumerate(rest) if i["id"] == target_id), None)
    if idx is None:
        raise NotFoundError("group", target_id)
    rest.insert(idx + (1 if side == BELOW else 0), dict(moving))
    for n, item in enumerate(rest):
        item["order"] = n
    return rest


def move_across_groups(item, new_attrs, dest_ordered, target_id=None, side=ABOVE):
    """
    Re-parent item into the destination group.
    Returns the records whose fields changed: just the moved item when it is
    appended, or the whole renumbered destination group when it is dropped
    onto a sibling.
    """
    moved = dict(item, **new_attrs)
    dest = [i for i in dest_ordered if i["id"] != item["id"]]
    if target_id is None:
        return [append_to_group(dest, moved)]
    return reorder_within_group(dest + [moved], moved["id"], target_id, side)


# ----------------------------
# Store-backed engine
# ----------------------------
class OrderingEngine:
    """
    Every operation re-reads the groups it touches inside its own store
    transaction; nothing is cached between calls.
    """

    def __init__(self, store):
        self.store = store

    def _all(self, collection):
        return normalize(collection, self.store.read_all(collection))

    def _require(self, collection, record_id):
        rec = self.store.get(collection, record_id)
        if rec is None:
            raise NotFoundError(collection, record_id)
        return NORMALIZERS[collection](rec)

    def _group(self, collection, attrs, key):
        return list_by_group(self._all(collection), lambda r: group_key(r, attrs) == key)

    def _write_orders(self, collection, records, moved_id, extra=None):
        for r in records:
            fields = {"order": r["order"]}
            if r["id"] == moved_id:
                fields.update(extra or {})
                fields["updatedAt"] = now_iso()
            self.store.update(collection, r["id"], fields)

    # ---- Reads ----
    def list_pages(self):
        return list_by_group(self._all("pages"), lambda p: True)

    def page_layout(self, page_id):
        with self.store.transaction("r", COLLECTIONS):
            page = self._require("pages", page_id)
            widgets = [w for w in self._all("widgets") if w.get("pageId") == page_id]
            links = self._all("links")
            columns = []
            for col in COLUMNS:
                in_col = list_by_group(widgets, lambda w: w["columnId"] == col)
                for w in in_col:
                    w["links"] = list_by_group(links, lambda l: l.get("widgetId") == w["id"])
                columns.append({"columnId": col, "widgets": in_col})
        return {"page": page, "columns": columns}

    # ---- Pages ----
    def _check_title_free(self, pages, title, own_id=None):
        if any(p.get("title") == title and p["id"] != own_id for p in pages):
            raise ValidationError(f"A page titled {title!r} already exists")

    def create_page(self, title):
        title = require_text(title, "Page title")
        with self.store.transaction("rw", ["pages"]):
            pages = self._all("pages")
            self._check_title_free(pages, title)
            page = append_to_group(pages, make_page(title, 0))
            page["id"] = self.store.add("pages", page)
        logger.info("page %s created: %s", page["id"], title)
        return page

    def rename_page(self, page_id, title):
        title = require_text(title, "Page title")
        with self.store.transaction("rw", ["pages"]):
            self._require("pages", page_id)
            self._check_title_free(self._all("pages"), title, own_id=page_id)
            self.store.update("pages", page_id, {"title": title, "updatedAt": now_iso()})
            return self._require("pages", page_id)

    # ---- Widgets ----
    def create_widget(self, page_id, column_id=DEFAULT_COLUMN, title=None):
        column_id = _check_column(column_id)
        with self.store.transaction("rw", ["pages", "widgets"]):
            self._require("pages", page_id)
            group = self._group("widgets", ("pageId", "columnId"), (page_id, column_id))
            widget = append_to_group(group, make_widget(page_id, column_id, 0, title))
            widget["id"] = self.store.add("widgets", widget)
        return widget

    def rename_widget(self, widget_id, title):
        title = (title or "").strip() or DEFAULT_WIDGET_TITLE
        with self.store.transaction("rw", ["widgets"]):
            self.store.update("widgets", widget_id, {"title": title, "updatedAt": now_iso()})
            return self._require("widgets", widget_id)

    def toggle_collapse(self, widget_id):
        with self.store.transaction("rw", ["widgets"]):
            w = self._require("widgets", widget_id)
            self.store.update("widgets", widget_id, {"collapsed": not w["collapsed"], "updatedAt": now_iso()})
            return self._require("widgets", widget_id)

    # ---- Links ----
    def add_link(self, widget_id, name, url):
        name = require_text(name, "Link name")
        url = normalize_url(require_text(url, "Link URL"))
        with self.store.transaction("rw", ["widgets", "links"]):
            self._require("widgets", widget_id)
            group = self._group("links", ("widgetId",), (widget_id,))
            link = append_to_group(group, make_link(widget_id, name, url, 0))
            link["id"] = self.store.add("links", link)
        return link

    def update_link(self, link_id, name=None, url=None):
        fields = {}
        if name is not None:
            fields["name"] = require_text(name, "Link name")
        if url is not None:
            fields["url"] = normalize_url(require_text(url, "Link URL"))
        with self.store.transaction("rw", ["links"]):
            self._require("links", link_id)
            if fields:
                fields["updatedAt"] = now_iso()
                self.store.update("links", link_id, fields)
            return self._require("links", link_id)

    # ---- Reorder / move ----
    def reorder(self, kind, moving_id, target_id=None, side=ABOVE):
        """Drag-drop inside the item's current group."""
        collection, attrs = _group_of(kind)
        with self.store.transaction("rw", [collection]):
            item = self._require(collection, moving_id)
            if target_id == moving_id:
                return []
            group = self._group(collection, attrs, group_key(item, attrs))
            seq = reorder_within_group(group, moving_id, target_id, side)
            self._write_orders(collection, seq, moving_id)
        return seq

    def move(self, kind, item_id, target_id=None, side=ABOVE, **group_attrs):
        """
        Drag-drop into any group. group_attrs overrides the item's group
        attributes (columnId / pageId for widgets, widgetId for links);
        the ones left out stay as they are.
        """
        collection, attrs = _group_of(kind)
        unknown = set(group_attrs) - set(attrs)
        if unknown:
            raise ValidationError(f"{kind} cannot be moved by {', '.join(sorted(unknown))}")
        with self.store.transaction("rw", COLLECTIONS):
            item = self._require(collection, item_id)
            dest = {a: item[a] if group_attrs.get(a) is None else group_attrs[a] for a in attrs}
            if "columnId" in dest:
                dest["columnId"] = _check_column(dest["columnId"])
            self._check_parents(dest)
            if group_key(dest, attrs) == group_key(item, attrs):
                return self.reorder(kind, item_id, target_id, side)
            if target_id == item_id:
                return []
            group = self._group(collection, attrs, group_key(dest, attrs))
            seq = move_across_groups(item, dest, group, target_id, side)
            self._write_orders(collection, seq, item_id, extra=dest)
        logger.debug("%s %s moved to %s", kind, item_id, dest)
        return seq

    def _check_parents(self, dest):
        if "pageId" in dest:
            self._require("pages", dest["pageId"])
        if "widgetId" in dest:
            self._require("widgets", dest["widgetId"])

    # ---- Deletes ----
    def _delete_widget_tree(self, widget_id):
        link_ids = [l["id"] for l in self.store.read_all("links") if l.get("widgetId") == widget_id]
        for lid in link_ids:
            self.store.delete("links", lid)
        self.store.delete("widgets", widget_id)
        return len(link_ids)

    def cascade_delete(self, kind, record_id):
        """
        Delete a record and everything that only exists through it, as one
        transaction. Returns how many pages / widgets / links went away.
        """
        counts = {"pages": 0, "widgets": 0, "links": 0}
        with self.store.transaction("rw", COLLECTIONS):
            if kind == "page":
                self._require("pages", record_id)
                widget_ids = [w["id"] for w in self.store.read_all("widgets") if w.get("pageId") == record_id]
                for wid in widget_ids:
                    counts["links"] += self._delete_widget_tree(wid)
                counts["widgets"] = len(widget_ids)
                self.store.delete("pages", record_id)
                counts["pages"] = 1
            elif kind == "widget":
                self._require("widgets", record_id)
                counts["links"] = self._delete_widget_tree(record_id)
                counts["widgets"] = 1
            elif kind == "link":
                self._require("links", record_id)
                self.store.delete("links", record_id)
                counts["links"] = 1
            else:
                raise ValidationError(f"Unknown record kind {kind!r}")
        logger.info("deleted %s %s: %s", kind, record_id, counts)
        return counts


def _group_of(kind):
    try:
        return GROUPS[kind]
    except (KeyError, TypeError):
        raise ValidationError(f"Unknown record kind {kind!r}") from None


def _check_column(column_id):
    try:
        col = int(column_id)
    except (TypeError, ValueError):
        raise ValidationError(f"Column must be one of {COLUMNS}, got {column_id!r}") from None
    if col not in COLUMNS:
        raise ValidationError(f"Column must be one of {COLUMNS}, got {column_id!r}")
    return col
