from __future__ import annotations

from sqlite3 import Connection
from typing import List, Optional

from ..models import Account, Item

_SELECT = (
    "SELECT id, barcode, product_desc, product_ind, "
    "datetime(posted, 'unixepoch') AS posted, is_favorite, account FROM product"
)


def _decode(rows) -> List[Item]:
    out: List[Item] = []
    for row in rows:
        item = Item.from_row(row)
        if item is not None:
            out.append(item)
    return out


def add(conn: Connection, item: Item, account: Account):
    conn.execute(
        "INSERT INTO product(barcode, product_desc, product_ind, posted, account) "
        "VALUES(:b, :d, :i, strftime('%s','now'), :a)",
        {"b": item.barcode, "d": item.desc, "i": item.index, "a": account.id},
    )


def delete(conn: Connection, item: Item):
    # no ownership check here, see scan_svc.remove_scan
    conn.execute("DELETE FROM product WHERE id=:i", {"i": item.id})


def favorite(conn: Connection, item: Item):
    conn.execute("UPDATE product SET is_favorite=1 WHERE id=:i", {"i": item.id})


def unfavorite(conn: Connection, item: Item):
    conn.execute("UPDATE product SET is_favorite=0 WHERE id=:i", {"i": item.id})


def get(conn: Connection, item_id: int) -> Optional[Item]:
    row = conn.execute(_SELECT + " WHERE id=:i", {"i": item_id}).fetchone()
    return Item.from_row(row) if row else None


def list_by_account(conn: Connection, account: Account) -> List[Item]:
    rows = conn.execute(_SELECT + " WHERE account=:a ORDER BY id", {"a": account.id})
    return _decode(rows)


def list_favorites_by_account(conn: Connection, account: Account) -> List[Item]:
    rows = conn.execute(
        _SELECT + " WHERE is_favorite=1 AND account=:a ORDER BY id",
        {"a": account.id},
    )
    return _decode(rows)
