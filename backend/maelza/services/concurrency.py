# Overview: Locking helpers for document transactions.

from __future__ import annotations


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    SQLite writers are serialized with begin_immediate() instead.
    """
    return query.with_for_update()


def begin_immediate(session) -> bool:
    """
    On SQLite, take the database write lock before the first read.

    Returns True when BEGIN IMMEDIATE was issued. Other dialects rely on
    row locks and are left alone.
    """
    connection = session.connection()
    if connection.dialect.name != "sqlite":
        return False
    raw = connection.connection.dbapi_connection
    if raw.in_transaction:
        return False
    connection.exec_driver_sql("BEGIN IMMEDIATE")
    return True
