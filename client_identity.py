# client_identity.py
"""Best-effort caller identity used as the rate-limit key.

This is NOT authentication: the left-most x-forwarded-for entry is whatever the
client (or the first proxy) claims. Anything security sensitive needs its own
auth layer.
"""
from typing import Mapping

# Checked in order; first non-empty value wins.
IDENTITY_HEADERS = (
    "x-forwarded-for",
    "x-real-ip",
    "cf-connecting-ip",
    "x-vercel-forwarded-for",
)

USER_AGENT_PREFIX = "unknown:"
USER_AGENT_MAX_CHARS = 40
ANONYMOUS_USER_AGENT = "ua"


def _lookup(headers: Mapping[str, str], name: str) -> str:
    value = headers.get(name)
    if value is None and not hasattr(headers, "getlist"):
        # plain dicts are case-sensitive; starlette Headers is not
        for key, val in headers.items():
            if key.lower() == name:
                return val or ""
        return ""
    return value or ""


def resolve_client_identity(headers: Mapping[str, str]) -> str:
    for name in IDENTITY_HEADERS:
        value = _lookup(headers, name)
        if value:
            first = value.split(",")[0].strip()
            if first:
                return first

    ua = _lookup(headers, "user-agent") or ANONYMOUS_USER_AGENT
    return f"{USER_AGENT_PREFIX}{ua[:USER_AGENT_MAX_CHARS]}"
