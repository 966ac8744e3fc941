"""
Cookie Helpers

Auth cookies are HTTP-only; preference cookies are readable by the web
client so it can render the right theme and language before the user
projection has loaded.
"""

from fastapi import Response

from dispatch_api.config import settings


# One year, in seconds
PREFERENCE_COOKIE_MAX_AGE = 60 * 60 * 24 * 365


def clear_auth_cookies(response: Response) -> None:
    """Expire both the access and refresh token cookies."""
    for name in (settings.ACCESS_TOKEN_COOKIE, settings.REFRESH_TOKEN_COOKIE):
        response.delete_cookie(
            key=name,
            path="/",
            httponly=True,
            samesite="lax",
            secure=settings.is_production,
        )


def set_user_preferences_cookies(
    response: Response,
    is_dark_theme: bool,
    locale: str | None,
) -> None:
    """
    Mirror the theme and locale preferences into cookies.

    A missing locale removes the locale cookie so the client falls back to
    the default language.
    """
    response.set_cookie(
        key=settings.THEME_COOKIE,
        value="true" if is_dark_theme else "false",
        max_age=PREFERENCE_COOKIE_MAX_AGE,
        path="/",
        samesite="lax",
        secure=settings.is_production,
    )

    if locale:
        response.set_cookie(
            key=settings.LOCALE_COOKIE,
            value=locale,
            max_age=PREFERENCE_COOKIE_MAX_AGE,
            path="/",
            samesite="lax",
            secure=settings.is_production,
        )
    else:
        response.delete_cookie(key=settings.LOCALE_COOKIE, path="/")
