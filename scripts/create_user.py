#!/usr/bin/env python3
from __future__ import annotations

from getpass import getpass

from gatehouse.auth.users import register_user
from gatehouse.config import resolve_database_url
from gatehouse.errors import DuplicateUserError, RegistrationError
from gatehouse.infra.users_repo import init_db, make_engine


def main() -> None:
    url = resolve_database_url()
    engine = make_engine(url)
    init_db(engine)

    username = input("Username: ").strip()
    pw1 = getpass("Password: ")
    pw2 = getpass("Repeat password: ")
    if pw1 != pw2:
        raise SystemExit("Passwords do not match")

    try:
        register_user(engine, username, pw1)
    except DuplicateUserError:
        raise SystemExit(f"User '{username}' already exists")
    except RegistrationError as e:
        raise SystemExit(f"Could not create user: {e}")
    print(f"OK -> {username} @ {engine.url.render_as_string(hide_password=True)}")


if __name__ == "__main__":
    main()
