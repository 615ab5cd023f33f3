"""
Request guards for the HTTP transport

Origin allowlisting and bearer-token extraction. Neither function raises:
a missing or malformed Authorization header simply means "no per-request key".
"""

import re
from typing import Optional, Sequence

BEARER_PATTERN = re.compile(r"^Bearer\s+(\S{10,256})$", re.IGNORECASE)


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    """
    Extract the BuiltWith key from an Authorization header.

    Args:
        authorization: Raw header value, e.g. "Bearer abc123..."

    Returns:
        The token (10-256 non-whitespace characters), or None if the header
        is missing or malformed
    """
    if not authorization:
        return None
    match = BEARER_PATTERN.match(authorization.strip())
    if match is None:
        return None
    return match.group(1)


def is_origin_allowed(origin: Optional[str], allowed_origins: Sequence[str]) -> bool:
    """
    Check a request's Origin header against the allowlist.

    Requests without an Origin header (CLI clients, server-to-server) always
    pass, as does everything when the allowlist is empty.
    """
    if not allowed_origins or not origin:
        return True
    return origin in allowed_origins
