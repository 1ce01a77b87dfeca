"""Repository layer: DB access helpers (SQLite).

Every function takes the connection as its first argument and performs one
round trip; store errors propagate unchanged.
"""
from __future__ import annotations
