from __future__ import annotations

import hashlib
import hmac


def _digest(value: str) -> bytes:
    return hashlib.sha256(value.encode("utf-8")).digest()


def verify_credentials(
    *,
    username: str,
    password: str,
    expected_username: str,
    expected_password: str,
) -> bool:
    username_ok = hmac.compare_digest(_digest(username), _digest(expected_username))
    password_ok = hmac.compare_digest(_digest(password), _digest(expected_password))
    return username_ok and password_ok


def header_fingerprint(value: str) -> str:
    return hashlib.sha256(value.encode("utf-8")).hexdigest()[:24]
