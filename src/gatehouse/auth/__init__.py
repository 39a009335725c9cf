# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Authentication helpers.

This package provides:
- Password hashing/verification (argon2)
- Registration and login against the users table
- Server-side sessions referenced by a signed cookie (itsdangerous)
"""
