#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
PiScan client store (SQLite)

Commands:
  init                Create the database and make sure the anonymous account exists
  account-add         Register an account (email + API code)
  account-update      Change an account's email and/or API code
  accounts            List registered accounts
  scan                Record a scanned barcode
  items               List scanned items (optionally favorites only, or export CSV)
  favorite            Mark an item as favorite
  unfavorite          Clear an item's favorite flag
  delete              Delete an item

Notes:
- Without --email, item commands act on the anonymous account.
- Database location comes from PISCAN_DB_PATH, config.yaml (db_path) or ~/.piscan.
"""

import argparse
import logging
import os
import sys

from .db import get_coordinates
from .services import scan_svc


def cmd_init(args):
    anon = scan_svc.ensure_anonymous()
    print("DB initialized at", get_coordinates().db_location)
    print(f"anonymous account id={anon.id}")


def cmd_account_add(args):
    acct = scan_svc.register_account(args.email, args.api_code)
    print(f"Account added: id={acct.id} email={acct.email}")


def cmd_account_update(args):
    acct = scan_svc.change_account(args.email, args.new_email or args.email, args.api_code)
    print(f"Account updated: id={acct.id} email={acct.email}")


def cmd_accounts(args):
    accounts = scan_svc.list_accounts()
    if not accounts:
        print("(empty)")
    for a in accounts:
        print(f"{a.id}\t{a.email}\t{a.api_code}")


def cmd_scan(args):
    acct = scan_svc.record_scan(args.barcode, args.desc or "", args.index, args.email)
    print(f"Scan recorded for {acct.email}")


def cmd_items(args):
    if args.csv:
        n = scan_svc.export_scans_csv(args.csv, args.email, args.favorites)
        print(f"{n} items exported to {args.csv}")
        return
    df = scan_svc.scans_frame(args.email, args.favorites)
    if df.empty:
        print("(empty)")
    else:
        print(df.to_string(index=False))


def cmd_favorite(args):
    scan_svc.set_favorite(args.id, True, args.email)
    print(f"Item {args.id} marked as favorite")


def cmd_unfavorite(args):
    scan_svc.set_favorite(args.id, False, args.email)
    print(f"Item {args.id} unmarked")


def cmd_delete(args):
    scan_svc.remove_scan(args.id, args.email)
    print(f"Item {args.id} deleted")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="piscan", description="PiScan client store (SQLite)")
    parser.add_argument("--config", default=None, help="config.yaml path")
    parser.add_argument("-v", "--verbose", action="store_true")
    sub = parser.add_subparsers()

    p_init = sub.add_parser("init", help="init db and anonymous account")
    p_init.set_defaults(func=cmd_init)

    p_acc = sub.add_parser("account-add", help="register an account")
    p_acc.add_argument("--email", required=True)
    p_acc.add_argument("--api-code", required=True)
    p_acc.set_defaults(func=cmd_account_add)

    p_upd = sub.add_parser("account-update", help="update an account")
    p_upd.add_argument("--email", required=True)
    p_upd.add_argument("--new-email", required=False)
    p_upd.add_argument("--api-code", required=True)
    p_upd.set_defaults(func=cmd_account_update)

    p_list = sub.add_parser("accounts", help="list accounts")
    p_list.set_defaults(func=cmd_accounts)

    p_scan = sub.add_parser("scan", help="record a scanned barcode")
    p_scan.add_argument("barcode")
    p_scan.add_argument("--desc", required=False)
    p_scan.add_argument("--index", type=int, default=0)
    p_scan.add_argument("--email", required=False)
    p_scan.set_defaults(func=cmd_scan)

    p_items = sub.add_parser("items", help="list scanned items")
    p_items.add_argument("--email", required=False)
    p_items.add_argument("--favorites", action="store_true")
    p_items.add_argument("--csv", required=False, help="export to this CSV file")
    p_items.set_defaults(func=cmd_items)

    for name, func, hlp in (
        ("favorite", cmd_favorite, "mark an item as favorite"),
        ("unfavorite", cmd_unfavorite, "clear an item's favorite flag"),
        ("delete", cmd_delete, "delete an item"),
    ):
        p = sub.add_parser(name, help=hlp)
        p.add_argument("id", type=int)
        p.add_argument("--email", required=False)
        p.set_defaults(func=func)

    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if not hasattr(args, "func"):
        parser.print_help()
        return 0

    prev_config = os.environ.get("PISCAN_CONFIG")
    if args.config:
        os.environ["PISCAN_CONFIG"] = args.config
    try:
        args.func(args)
    except ValueError as ve:
        print(f"error: {ve}", file=sys.stderr)
        return 2
    finally:
        if args.config:
            if prev_config is None:
                os.environ.pop("PISCAN_CONFIG", None)
            else:
                os.environ["PISCAN_CONFIG"] = prev_config
    return 0


if __name__ == "__main__":
    sys.exit(main())
