# web.py: Flask JSON endpoints for the start page front end.
#
# Thin adapter: read the request, call StartPage, turn the Result into JSON.
# Request bodies may be JSON or form-encoded. Destructive calls (delete,
# import, reset) run unconditionally; the front end asks for confirmation.

from flask import Flask, Response, jsonify, request

from . import config
from .errors import (
    NotFoundError, Result, StorageError, StructuralError, ValidationError,
    VersionMismatchError,
)
from .ordering import ABOVE, GROUPS
from .service import StartPage
from .snapshot import backup_filename, dumps
from .store import JsonStore

app = Flask(__name__)
app.secret_key = config.FLASK_SECRET
app.config.setdefault("DATA_FILE", config.DATA_FILE)

# request field -> record attribute, for drops into another group
GROUP_FIELDS = {"page_id": "pageId", "column_id": "columnId", "widget_id": "widgetId"}


def service():
    return StartPage(JsonStore(app.config["DATA_FILE"]))


def payload():
    data = request.get_json(silent=True)
    if isinstance(data, dict):
        return data
    return request.form.to_dict()


def as_id(value):
    """Ids arrive as strings from forms; the store hands out ints."""
    if isinstance(value, str):
        value = value.strip()
        if value.lstrip("-").isdigit():
            return int(value)
        return value or None
    return value


def status_for(error):
    if isinstance(error, NotFoundError):
        return 404
    if isinstance(error, (ValidationError, StructuralError, VersionMismatchError)):
        return 400
    if isinstance(error, StorageError):
        return 500
    return 400


def respond(result: Result, created=False):
    if result.ok:
        return jsonify(result.to_dict()), (201 if created else 200)
    return jsonify(result.to_dict()), status_for(result.error)


# ----------------------------
# Reads
# ----------------------------
@app.route("/api/pages", methods=["GET"])
def api_pages():
    return respond(service().list_pages())

@app.route("/api/pages/<page_id>", methods=["GET"])
def api_page_layout(page_id):
    return respond(service().page_layout(as_id(page_id)))

@app.route("/api/stats", methods=["GET"])
def api_stats():
    return respond(service().statistics())


# ----------------------------
# Pages
# ----------------------------
@app.route("/pages/add", methods=["POST"])
def add_page():
    return respond(service().create_page(payload().get("title")), created=True)

@app.route("/pages/rename", methods=["POST"])
def rename_page():
    data = payload()
    return respond(service().rename_page(as_id(data.get("page_id")), data.get("title")))

@app.route("/pages/delete", methods=["POST"])
def delete_page():
    return respond(service().delete("page", as_id(payload().get("page_id"))))


# ----------------------------
# Widgets
# ----------------------------
@app.route("/widgets/add", methods=["POST"])
def add_widget():
    data = payload()
    res = service().create_widget(
        as_id(data.get("page_id")), data.get("column_id") or config.DEFAULT_COLUMN, data.get("title")
    )
    return respond(res, created=True)

@app.route("/widgets/rename", methods=["POST"])
def rename_widget():
    data = payload()
    return respond(service().rename_widget(as_id(data.get("widget_id")), data.get("title")))

@app.route("/widgets/toggle", methods=["POST"])
def toggle_widget():
    return respond(service().toggle_collapse(as_id(payload().get("widget_id"))))

@app.route("/widgets/delete", methods=["POST"])
def delete_widget():
    return respond(service().delete("widget", as_id(payload().get("widget_id"))))


# ----------------------------
# Links
# ----------------------------
@app.route("/links/add", methods=["POST"])
def add_link():
    data = payload()
    res = service().add_link(as_id(data.get("widget_id")), data.get("name"), data.get("url"))
    return respond(res, created=True)

@app.route("/links/<link_id>/edit", methods=["POST"])
def edit_link(link_id):
    data = payload()
    return respond(service().update_link(as_id(link_id), name=data.get("name"), url=data.get("url")))

@app.route("/links/<link_id>/delete", methods=["POST"])
def delete_link(link_id):
    return respond(service().delete("link", as_id(link_id)))


# ---- Drag & drop ----
@app.route("/reorder", methods=["POST"])
def reorder():
    """
    One drop gesture: {kind, id, target_id?, side?, page_id?, column_id?, widget_id?}.
    Group fields that differ from the item's own send it to another group;
    fields that do not define the kind's group are ignored. No target_id
    drops it at the end.
    """
    data = payload()
    kind = data.get("kind", "")
    allowed = GROUPS[kind][1] if isinstance(kind, str) and kind in GROUPS else ()
    attrs = {
        attr: as_id(data[f]) for f, attr in GROUP_FIELDS.items()
        if attr in allowed and data.get(f) not in (None, "")
    }
    res = service().move(
        kind, as_id(data.get("id")), as_id(data.get("target_id")),
        data.get("side") or ABOVE, **attrs
    )
    return respond(res)


# ----------------------------
# Backup
# ----------------------------
@app.route("/backup/export", methods=["GET"])
def backup_export():
    res = service().export_snapshot()
    if not res.ok:
        return respond(res)
    return Response(
        dumps(res.value["document"]),
        mimetype="application/json",
        headers={"Content-Disposition": f'attachment; filename="{backup_filename()}"'},
    )

@app.route("/backup/import", methods=["POST"])
def backup_import():
    f = request.files.get("backup")
    if not f or not f.filename:
        return respond(Result.failure(ValidationError("Please select a backup file")))
    if not f.filename.lower().endswith(".json"):
        return respond(Result.failure(ValidationError("Please select a JSON file")))
    return respond(service().import_snapshot(f.read()))

@app.route("/reset", methods=["POST"])
def reset():
    return respond(service().reset_database())
