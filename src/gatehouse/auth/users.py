# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Optional

from loguru import logger
from sqlalchemy.engine import Engine
from sqlalchemy.exc import MultipleResultsFound, NoResultFound, SQLAlchemyError

from gatehouse.auth.passwords import hash_password, verify_password
from gatehouse.errors import RegistrationError
from gatehouse.infra.users_repo import UserRecord, get_user_by_username, insert_user


class LoginStatus(enum.Enum):
    OK = "ok"
    BAD_PASSWORD = "bad_password"
    UNKNOWN_USER = "unknown_user"
    ERROR = "error"


@dataclass(frozen=True)
class LoginOutcome:
    status: LoginStatus
    user: Optional[UserRecord] = None


def register_user(engine: Engine, username: str, password: str) -> None:
    """Hash password and insert the user.

    Raises DuplicateUserError when the store rejects the username and
    RegistrationError for any other failure.
    """
    u = (username or "").strip()
    if not u:
        raise RegistrationError("Empty username")
    try:
        ph = hash_password(password)
    except ValueError as e:
        raise RegistrationError(str(e)) from e
    try:
        insert_user(engine, u, ph)
    except SQLAlchemyError as e:
        raise RegistrationError("Database error during registration") from e
    logger.info("Registered user {}", u)


def login_user(engine: Engine, username: str, password: str) -> LoginOutcome:
    u = (username or "").strip()
    try:
        user = get_user_by_username(engine, u)
    except NoResultFound:
        return LoginOutcome(LoginStatus.UNKNOWN_USER)
    except MultipleResultsFound:
        logger.error("Several rows match username {}", u)
        return LoginOutcome(LoginStatus.ERROR)
    except SQLAlchemyError:
        logger.exception("User lookup failed")
        return LoginOutcome(LoginStatus.ERROR)

    if not verify_password(user.password_hash, password):
        return LoginOutcome(LoginStatus.BAD_PASSWORD)
    return LoginOutcome(LoginStatus.OK, user)
