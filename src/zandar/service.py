# service.py: the calls the presentation layer (web, CLI) makes.
#
# Every method returns a Result and never raises a ZandarError. Reorder, move,
# rename and delete calls that hit a record which has vanished in the meantime
# are no-ops: the caller just re-reads and renders unchanged state.

import logging
from functools import wraps

from . import snapshot
from .config import DEFAULT_COLUMN
from .errors import NotFoundError, Result, StorageError, ZandarError
from .ordering import ABOVE, OrderingEngine
from .store import JsonStore

logger = logging.getLogger(__name__)


def _as_result(missing_is_noop=False):
    def deco(fn):
        @wraps(fn)
        def wrapper(self, *a, **kw):
            try:
                return Result.success(fn(self, *a, **kw))
            except NotFoundError as e:
                if missing_is_noop:
                    logger.debug("%s: %s, nothing to do", fn.__name__, e.message)
                    return Result.success(None)
                return Result.failure(e)
            except StorageError as e:
                logger.error("%s failed: %s", fn.__name__, e.message)
                return Result.failure(e)
            except ZandarError as e:
                logger.warning("%s rejected: %s", fn.__name__, e.message)
                return Result.failure(e)
        return wrapper
    return deco


class StartPage:
    def __init__(self, store=None):
        self.store = store if store is not None else JsonStore()
        self.engine = OrderingEngine(self.store)

    # ---- Reads ----
    @_as_result()
    def list_pages(self):
        return {"pages": self.engine.list_pages()}

    @_as_result()
    def page_layout(self, page_id):
        return self.engine.page_layout(page_id)

    @_as_result()
    def statistics(self):
        return snapshot.statistics(self.store)

    # ---- Create / edit ----
    @_as_result()
    def create_page(self, title):
        return {"page": self.engine.create_page(title)}

    @_as_result(missing_is_noop=True)
    def rename_page(self, page_id, title):
        return {"page": self.engine.rename_page(page_id, title)}

    @_as_result()
    def create_widget(self, page_id, column_id=DEFAULT_COLUMN, title=None):
        return {"widget": self.engine.create_widget(page_id, column_id, title)}

    @_as_result(missing_is_noop=True)
    def rename_widget(self, widget_id, title):
        return {"widget": self.engine.rename_widget(widget_id, title)}

    @_as_result(missing_is_noop=True)
    def toggle_collapse(self, widget_id):
        return {"widget": self.engine.toggle_collapse(widget_id)}

    @_as_result()
    def add_link(self, widget_id, name, url):
        return {"link": self.engine.add_link(widget_id, name, url)}

    @_as_result(missing_is_noop=True)
    def update_link(self, link_id, name=None, url=None):
        return {"link": self.engine.update_link(link_id, name=name, url=url)}

    # ---- Ordering ----
    @_as_result(missing_is_noop=True)
    def reorder(self, kind, moving_id, target_id=None, side=ABOVE):
        return {"records": self.engine.reorder(kind, moving_id, target_id, side)}

    @_as_result(missing_is_noop=True)
    def reorder_page(self, page_id, target_id=None, side=ABOVE):
        """Page tab drag-drop."""
        return {"records": self.engine.reorder("page", page_id, target_id, side)}

    @_as_result(missing_is_noop=True)
    def move(self, kind, item_id, target_id=None, side=ABOVE, **group_attrs):
        return {"records": self.engine.move(kind, item_id, target_id, side, **group_attrs)}

    @_as_result(missing_is_noop=True)
    def delete(self, kind, record_id):
        return {"deleted": self.engine.cascade_delete(kind, record_id)}

    # ---- Backup ----
    @_as_result()
    def export_snapshot(self):
        return {"document": snapshot.serialize(self.store)}

    @_as_result()
    def export_to(self, directory="."):
        return snapshot.export_database(self.store, directory)

    @_as_result()
    def import_snapshot(self, raw, mode=snapshot.REPLACE):
        return snapshot.import_document(self.store, raw, mode)

    @_as_result()
    def import_from(self, path, mode=snapshot.REPLACE):
        return snapshot.import_database(self.store, path, mode)

    @_as_result()
    def reset_database(self):
        self.store.reset()
        return None


def seed_defaults(service):
    """Give an empty store a Home page with something to look at."""
    if service.store.count("pages"):
        return False
    with service.store.transaction("rw", ("pages", "widgets", "links")):
        page = service.engine.create_page("Home")
        news = service.engine.create_widget(page["id"], 1, "News")
        dev = service.engine.create_widget(page["id"], 2, "Dev Tools")
        service.engine.add_link(news["id"], "Hacker News", "https://news.ycombinator.com")
        service.engine.add_link(dev["id"], "GitHub", "https://github.com")
    return True
