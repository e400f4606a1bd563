"""
peopleguard.auth.passwords

Password hashing and policy.
"""

from __future__ import annotations

import re

from werkzeug.security import check_password_hash, generate_password_hash

_POLICY = re.compile(r"^(?=.*[A-Za-z])(?=.*\d)[A-Za-z\d]{8,}$")


def hash_password(password: str) -> str:
    return generate_password_hash(password)


def verify_password(password_hash: str, password: str) -> bool:
    return check_password_hash(password_hash, password)


def meets_policy(password: str) -> bool:
    # At least 8 characters, letters and digits only, at least one of each.
    return bool(_POLICY.match(password))
