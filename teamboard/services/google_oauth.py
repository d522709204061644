from __future__ import annotations

import httpx

from teamboard.core.config import settings


class GoogleOAuthError(Exception):
    """Base exception for the Google access-token exchange."""


class GoogleProfileError(GoogleOAuthError):
    """Raised when Google rejects the token or the call fails."""


def fetch_google_profile(access_token: str) -> dict[str, str | None]:
    """
    Exchange a Google OAuth access token for the user's profile.

    Returns:
        {"email": ..., "name": ...} with a lowercase, verified email.

    Raises:
        GoogleProfileError: if the token is missing/rejected, the call fails,
            or Google does not report a verified email.
    """
    candidate = (access_token or "").strip()
    if not candidate:
        raise GoogleProfileError("Missing OAuth token.")

    try:
        response = httpx.get(
            settings.GOOGLE_USERINFO_URL,
            headers={"Authorization": f"Bearer {candidate}"},
            timeout=settings.GOOGLE_HTTP_TIMEOUT,
        )
    except httpx.HTTPError as exc:
        raise GoogleProfileError("Unable to reach Google.") from exc

    if response.status_code != 200:
        raise GoogleProfileError("Google rejected the OAuth token.")

    try:
        payload = response.json()
    except ValueError as exc:
        raise GoogleProfileError("Invalid Google response.") from exc

    email = (payload.get("email") or "").strip().lower()
    if not email:
        raise GoogleProfileError("Google profile has no email.")
    if payload.get("verified_email") is False:
        raise GoogleProfileError("Google email is not verified.")

    return {"email": email, "name": payload.get("name")}
