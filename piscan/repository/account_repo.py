from __future__ import annotations

from sqlite3 import Connection
from typing import List, Optional

from ..models import Account, ANONYMOUS_EMAIL, ANONYMOUS_API_CODE


def add(conn: Connection, account: Account):
    # account.id is not filled in; re-fetch by email for the assigned id
    conn.execute(
        "INSERT INTO account(email, api_code) VALUES(:e, :a)",
        {"e": account.email, "a": account.api_code},
    )


def update(conn: Connection, account: Account, new_email: str, new_api_code: str):
    conn.execute(
        "UPDATE account SET email=:e, api_code=:a WHERE id=:i",
        {"i": account.id, "e": new_email, "a": new_api_code},
    )


def get_by_email(conn: Connection, email: str) -> Optional[Account]:
    cur = conn.execute("SELECT id, api_code FROM account WHERE email=:e", {"e": email})
    for row in cur:
        acct = Account.from_row(row, email=email)
        if acct is not None:
            return acct
    return None


def list_all(conn: Connection) -> List[Account]:
    out: List[Account] = []
    for row in conn.execute("SELECT id, email, api_code FROM account"):
        acct = Account.from_row(row)
        if acct is not None:
            out.append(acct)
    return out


def fetch_or_create_anonymous(conn: Connection) -> Account:
    """
    Return the anonymous account, creating it on first use.

    Lookup, insert and re-fetch are separate statements, so two callers
    bootstrapping at the same time on different connections can both insert.
    """
    anon = get_by_email(conn, ANONYMOUS_EMAIL)
    if anon is not None:
        return anon

    add(conn, Account(email=ANONYMOUS_EMAIL, api_code=ANONYMOUS_API_CODE))
    # re-fetch so the id is the store-assigned one
    return get_by_email(conn, ANONYMOUS_EMAIL)
