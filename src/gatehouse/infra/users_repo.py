# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from sqlalchemy import Column, MetaData, Table, Text, create_engine, insert, select, text
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import IntegrityError

from gatehouse.errors import DuplicateUserError

metadata = MetaData()

# Uniqueness lives in the table, not in application code.
users = Table(
    "users",
    metadata,
    Column("username", Text, unique=True, nullable=False),
    Column("password", Text, nullable=False),
)


@dataclass(frozen=True)
class UserRecord:
    username: str
    password_hash: str


def make_engine(database_url: str) -> Engine:
    url = make_url(database_url)
    if url.get_backend_name() == "sqlite":
        if url.database and url.database != ":memory:":
            Path(url.database).parent.mkdir(parents=True, exist_ok=True)
        return create_engine(url, connect_args={"check_same_thread": False})
    return create_engine(url, pool_pre_ping=True)


def init_db(engine: Engine) -> None:
    metadata.create_all(bind=engine)


def check_connection(engine: Engine) -> None:
    """Open and release one connection; raises on failure."""
    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))


def insert_user(engine: Engine, username: str, password_hash: str) -> None:
    try:
        with engine.begin() as conn:
            conn.execute(insert(users).values(username=username, password=password_hash))
    except IntegrityError as e:
        raise DuplicateUserError(f"Username '{username}' already exists") from e


def get_user_by_username(engine: Engine, username: str) -> UserRecord:
    """Return the single row for username.

    Raises sqlalchemy's NoResultFound when nothing matches and
    MultipleResultsFound when more than one row does.
    """
    with engine.connect() as conn:
        row = conn.execute(
            select(users.c.username, users.c.password).where(users.c.username == username)
        ).one()
    return UserRecord(username=row.username, password_hash=row.password)
