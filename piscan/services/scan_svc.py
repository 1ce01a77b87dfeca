from __future__ import annotations

import logging
from sqlite3 import Connection
from typing import Any

import pandas as pd

from ..db import get_conn
from ..models import Account, Item
from ..repository import account_repo, item_repo

logger = logging.getLogger(__name__)

SCAN_COLUMNS = ["id", "barcode", "desc", "index", "since", "favorite"]


def ensure_anonymous() -> Account:
    with get_conn() as conn:
        return account_repo.fetch_or_create_anonymous(conn)


def register_account(email: str, api_code: str) -> Account:
    with get_conn() as conn:
        # 同一 email 只允许一条记录
        if account_repo.get_by_email(conn, email) is not None:
            raise ValueError("account_exists")
        account_repo.add(conn, Account(email=email, api_code=api_code))
        acct = account_repo.get_by_email(conn, email)
    logger.info(f"registered account {acct.id} <{email}>")
    return acct


def change_account(email: str, new_email: str, new_api_code: str) -> Account:
    with get_conn() as conn:
        acct = account_repo.get_by_email(conn, email)
        if acct is None:
            raise ValueError("account_not_found")
        if new_email != email and account_repo.get_by_email(conn, new_email) is not None:
            raise ValueError("account_exists")
        account_repo.update(conn, acct, new_email, new_api_code)
        updated = account_repo.get_by_email(conn, new_email)
    logger.info(f"updated account {acct.id}: <{email}> -> <{new_email}>")
    return updated


def list_accounts() -> list[Account]:
    with get_conn() as conn:
        return account_repo.list_all(conn)


def resolve_account(conn: Connection, email: str | None = None) -> Account:
    """Account for ``email``; the anonymous account when no email is given."""
    if email is None:
        return account_repo.fetch_or_create_anonymous(conn)
    acct = account_repo.get_by_email(conn, email)
    if acct is None:
        raise ValueError("account_not_found")
    return acct


def _owned_item(conn: Connection, item_id: int, acct: Account) -> Item:
    item = item_repo.get(conn, item_id)
    if item is None or item.account_id != acct.id:
        raise ValueError("item_not_found")
    return item


def record_scan(barcode: str, desc: str = "", index: int = 0, email: str | None = None) -> Account:
    barcode = (barcode or "").strip()
    if not barcode:
        raise ValueError("barcode_required")
    with get_conn() as conn:
        acct = resolve_account(conn, email)
        item_repo.add(conn, Item(barcode=barcode, desc=desc, index=index), acct)
    logger.info(f"scan {barcode} recorded for account {acct.id}")
    return acct


def list_scans(email: str | None = None, favorites_only: bool = False) -> list[dict[str, Any]]:
    with get_conn() as conn:
        acct = resolve_account(conn, email)
        if favorites_only:
            items = item_repo.list_favorites_by_account(conn, acct)
        else:
            items = item_repo.list_by_account(conn, acct)
    logger.debug(f"{len(items)} items for account {acct.id} (favorites_only={favorites_only})")
    return [it.model_dump(include=set(SCAN_COLUMNS)) for it in items]


def set_favorite(item_id: int, favorite: bool, email: str | None = None):
    with get_conn() as conn:
        acct = resolve_account(conn, email)
        item = _owned_item(conn, item_id, acct)
        if favorite:
            item_repo.favorite(conn, item)
        else:
            item_repo.unfavorite(conn, item)
    logger.info(f"item {item_id} favorite={favorite}")


def remove_scan(item_id: int, email: str | None = None):
    with get_conn() as conn:
        acct = resolve_account(conn, email)
        item = _owned_item(conn, item_id, acct)
        item_repo.delete(conn, item)
    logger.info(f"item {item_id} deleted from account {acct.id}")


def scans_frame(email: str | None = None, favorites_only: bool = False) -> pd.DataFrame:
    rows = list_scans(email, favorites_only)
    return pd.DataFrame(rows, columns=SCAN_COLUMNS)


def export_scans_csv(path: str, email: str | None = None, favorites_only: bool = False) -> int:
    df = scans_frame(email, favorites_only)
    df.to_csv(path, index=False, encoding="utf-8")
    logger.info(f"exported {len(df)} items to {path}")
    return len(df)
