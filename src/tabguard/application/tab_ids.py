from __future__ import annotations

import hashlib
import secrets
import time

TAB_ID_LENGTH = 64  # hex digits of a SHA-256 digest


def generate_tab_id(*, session_id: str, user_agent: str, ip: str) -> str:
    """Derive an opaque, fixed-width tab id.

    The random nonce keeps ids unguessable even for someone who knows the
    session id, user agent and IP.
    """
    components = [
        session_id,
        user_agent,
        ip,
        str(time.time_ns()),
        secrets.token_hex(16),
    ]
    return hashlib.sha256("|".join(components).encode("utf-8")).hexdigest()


def is_valid_tab_id(value: str) -> bool:
    if len(value) != TAB_ID_LENGTH:
        return False
    return all(ch in "0123456789abcdef" for ch in value)
