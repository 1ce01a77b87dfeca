"""Account and Item records plus the decode step from store rows.

``from_row`` returns None for a row that is missing a required column value;
callers skip such rows instead of raising.
"""
from __future__ import annotations

from sqlite3 import Row
from typing import Any, Optional

from pydantic import BaseModel

# Anonymous Account
ANONYMOUS_EMAIL = "anonymous@example.org"
ANONYMOUS_API_CODE = "12345678-abcd-9ef0-1234-567890abcdef"


def _col(row: Row, key: str) -> Any:
    return row[key] if key in row.keys() else None


class Account(BaseModel):
    id: Optional[int] = None
    email: str
    api_code: str

    @property
    def is_anonymous(self) -> bool:
        return self.email == ANONYMOUS_EMAIL

    @classmethod
    def from_row(cls, row: Row, email: Optional[str] = None) -> Optional["Account"]:
        api_code = _col(row, "api_code")
        email = email if email is not None else _col(row, "email")
        if api_code is None or email is None:
            return None
        return cls(id=row["id"], email=email, api_code=api_code)


class Item(BaseModel):
    id: Optional[int] = None
    barcode: str
    desc: str = ""
    index: int = 0
    since: str = ""
    favorite: bool = False
    account_id: Optional[int] = None

    @classmethod
    def from_row(cls, row: Row) -> Optional["Item"]:
        barcode = _col(row, "barcode")
        if not barcode:
            return None
        return cls(
            id=row["id"],
            barcode=barcode,
            desc=_col(row, "product_desc") or "",
            index=_col(row, "product_ind") or 0,
            since=_col(row, "posted") or "",
            favorite=bool(_col(row, "is_favorite")),
            account_id=_col(row, "account"),
        )
