"""
Token cookies.

Names and attributes are a fixed contract with the browser client: the
access token lives in `token`, the refresh token in `refreshToken`.
"""

from typing import Optional

from fastapi import Response

from coachdesk.config import Settings, get_settings

ACCESS_COOKIE = "token"
REFRESH_COOKIE = "refreshToken"


def _cookie_options(settings: Settings) -> dict:
    options = {
        "httponly": True,
        "secure": settings.is_production,
        "samesite": "lax",
        "path": "/",
    }
    if settings.cookie_domain:
        options["domain"] = settings.cookie_domain
    return options


def set_access_cookie(response: Response, token: str, settings: Optional[Settings] = None) -> None:
    settings = settings or get_settings()
    response.set_cookie(
        ACCESS_COOKIE,
        token,
        max_age=settings.access_token_expire_minutes * 60,
        **_cookie_options(settings),
    )


def set_refresh_cookie(response: Response, token: str, settings: Optional[Settings] = None) -> None:
    settings = settings or get_settings()
    response.set_cookie(
        REFRESH_COOKIE,
        token,
        max_age=settings.refresh_token_expire_days * 24 * 60 * 60,
        **_cookie_options(settings),
    )


def set_auth_cookies(response: Response, access_token: str, refresh_token: str) -> None:
    """Set both token cookies."""
    settings = get_settings()
    set_access_cookie(response, access_token, settings)
    set_refresh_cookie(response, refresh_token, settings)


def clear_auth_cookies(response: Response) -> None:
    """Expire both token cookies with the attributes they were set with."""
    options = _cookie_options(get_settings())
    for name in (ACCESS_COOKIE, REFRESH_COOKIE):
        response.delete_cookie(name, **options)
