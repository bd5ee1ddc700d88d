"""Edge routing policy applied before a page is served."""

from __future__ import annotations

from urllib.parse import quote

PUBLIC_PATHS = ("/login", "/register")
PROTECTED_PREFIXES = ("/dashboard", "/profile", "/tickets", "/admin")
HOME_PATH = "/dashboard"
LOGIN_PATH = "/login"


def _matches(pathname: str, prefix: str) -> bool:
    return pathname == prefix or pathname.startswith(prefix + "/")


def is_public(pathname: str) -> bool:
    return pathname in PUBLIC_PATHS


def is_protected(pathname: str) -> bool:
    return any(_matches(pathname, prefix) for prefix in PROTECTED_PREFIXES)


def resolve_route(pathname: str, token: str | None) -> str | None:
    """Return the redirect location for ``pathname``, or None to let it through."""
    if is_public(pathname):
        return HOME_PATH if token and pathname == LOGIN_PATH else None
    if not token and is_protected(pathname):
        return f"{LOGIN_PATH}?redirect={quote(pathname, safe='/')}"
    return None
