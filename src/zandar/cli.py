# cli.py: command line helpers: inspect and edit the store, export/import
# backups, run the web front end.

import argparse
import logging
import sys

from . import config
from .ordering import ABOVE, SIDES
from .service import StartPage, seed_defaults
from .store import JsonStore


def build_parser():
    parser = argparse.ArgumentParser(prog="zandar", description="Manage the start page store / backups")
    parser.add_argument("--data", default=config.DATA_FILE, help="Store file (default: %(default)s)")
    sub = parser.add_subparsers(dest="cmd")

    sub.add_parser("list-pages", help="List pages in tab order")

    lw = sub.add_parser("list-widgets", help="List widgets and links of a page")
    lw.add_argument("--page", type=int, required=True, help="Page ID")

    ap = sub.add_parser("add-page", help="Add a page")
    ap.add_argument("--title", required=True)

    aw = sub.add_parser("add-widget", help="Add a widget to a page column")
    aw.add_argument("--page", type=int, required=True)
    aw.add_argument("--column", type=int, default=config.DEFAULT_COLUMN)
    aw.add_argument("--title", default=None)

    al = sub.add_parser("add-link", help="Add a link to a widget")
    al.add_argument("--widget", type=int, required=True)
    al.add_argument("--url", required=True)
    al.add_argument("--name", default="")

    rw = sub.add_parser("rename-widget", help="Rename a widget")
    rw.add_argument("--id", type=int, required=True)
    rw.add_argument("--title", required=True)

    for kind in ("page", "widget", "link"):
        d = sub.add_parser(f"delete-{kind}", help=f"Delete a {kind} and everything in it")
        d.add_argument("--id", type=int, required=True)

    mw = sub.add_parser("move-widget", help="Move a widget to another column / page / position")
    mw.add_argument("--id", type=int, required=True)
    mw.add_argument("--column", type=int, default=None)
    mw.add_argument("--page", type=int, default=None)
    mw.add_argument("--target", type=int, default=None, help="Drop next to this widget (default: end)")
    mw.add_argument("--side", choices=SIDES, default=ABOVE)

    ex = sub.add_parser("export", help="Write a JSON backup")
    ex.add_argument("--dir", default=".")

    im = sub.add_parser("import", help="Replace everything with a JSON backup")
    im.add_argument("--file", required=True)

    sub.add_parser("stats", help="Record counts")

    rs = sub.add_parser("reset", help="Delete ALL data")
    rs.add_argument("--yes", action="store_true", help="Confirm")

    sv = sub.add_parser("serve", help="Run the web front end")
    sv.add_argument("--host", default=config.HOST)
    sv.add_argument("--port", type=int, default=config.PORT)
    sv.add_argument("--debug", action="store_true")
    return parser


def fail(res):
    e = res.error
    print(f"error: {e.kind}: {e.message}", file=sys.stderr)
    return 1


def main(argv=None):
    logging.basicConfig(level=config.LOG_LEVEL, format="%(levelname)s %(name)s: %(message)s")
    parser = build_parser()
    args = parser.parse_args(argv)
    sp = StartPage(JsonStore(args.data))

    if args.cmd == "list-pages":
        res = sp.list_pages()
        if not res.ok: return fail(res)
        for p in res.value["pages"]:
            print(f"{p['id']}\t{p.get('title', '')}")
        return 0

    if args.cmd == "list-widgets":
        res = sp.page_layout(args.page)
        if not res.ok: return fail(res)
        for col in res.value["columns"]:
            for w in col["widgets"]:
                print(f"{w['id']}\tcol {col['columnId']}\t{w['title']}")
                for l in w["links"]:
                    print(f"  {l['id']}\t{l.get('name', '')}\t{l.get('url', '')}")
        return 0

    if args.cmd == "add-page":
        res = sp.create_page(args.title)
        if not res.ok: return fail(res)
        print(f"page={res.value['page']['id']}")
        return 0

    if args.cmd == "add-widget":
        res = sp.create_widget(args.page, args.column, args.title)
        if not res.ok: return fail(res)
        print(f"widget={res.value['widget']['id']}")
        return 0

    if args.cmd == "add-link":
        res = sp.add_link(args.widget, args.name or args.url, args.url)
        if not res.ok: return fail(res)
        print(f"link={res.value['link']['id']} url={res.value['link']['url']}")
        return 0

    if args.cmd == "rename-widget":
        res = sp.rename_widget(args.id, args.title)
        return 0 if res.ok else fail(res)

    if args.cmd in ("delete-page", "delete-widget", "delete-link"):
        res = sp.delete(args.cmd.split("-", 1)[1], args.id)
        if not res.ok: return fail(res)
        if res.value is None:
            print("nothing to delete")
        else:
            d = res.value["deleted"]
            print(f"deleted pages={d['pages']} widgets={d['widgets']} links={d['links']}")
        return 0

    if args.cmd == "move-widget":
        res = sp.move("widget", args.id, args.target, args.side, columnId=args.column, pageId=args.page)
        return 0 if res.ok else fail(res)

    if args.cmd == "export":
        res = sp.export_to(args.dir)
        if not res.ok: return fail(res)
        m = res.value["metadata"]
        print(f"{res.value['path']}\tpages={m['totalPages']} widgets={m['totalWidgets']} links={m['totalLinks']}")
        return 0

    if args.cmd == "import":
        res = sp.import_from(args.file)
        if not res.ok: return fail(res)
        s = res.value["stats"]
        print(f"Imported pages={s['pagesImported']} widgets={s['widgetsImported']} links={s['linksImported']} "
              f"(backup {res.value['backupVersion']} @ {res.value['backupTimestamp']})")
        return 0

    if args.cmd == "stats":
        res = sp.statistics()
        if not res.ok: return fail(res)
        s = res.value
        print(f"pages={s['pages']} widgets={s['widgets']} links={s['links']} total={s['total']}")
        return 0

    if args.cmd == "reset":
        if not args.yes:
            print("Refusing to delete everything without --yes", file=sys.stderr)
            return 1
        res = sp.reset_database()
        return 0 if res.ok else fail(res)

    if args.cmd == "serve":
        from .web import app
        if seed_defaults(sp):
            logging.getLogger(__name__).info("seeded empty store %s", args.data)
        app.config["DATA_FILE"] = args.data
        app.run(debug=args.debug, host=args.host, port=args.port)
        return 0

    parser.print_help()
    return 0
