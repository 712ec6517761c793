"""
Credential extraction: find a candidate token in an inbound request.
Cookie first, then the Authorization header. Absence is not an error here.
"""

from starlette.requests import HTTPConnection

# Logout overwrites the session cookie with this value
LOGGED_OUT = "loggedout"


class CredentialExtractor:
    def __init__(self, cookie_name: str = "jwt"):
        self.cookie_name = cookie_name

    def from_cookie(self, request: HTTPConnection) -> str | None:
        value = (request.cookies.get(self.cookie_name) or "").strip()
        if not value or value == LOGGED_OUT:
            return None
        return value

    def from_header(self, request: HTTPConnection) -> str | None:
        raw = (request.headers.get("authorization") or "").strip()
        parts = raw.split(" ", 1)
        if len(parts) != 2 or parts[0].lower() != "bearer":
            return None
        return parts[1].strip() or None

    def extract(self, request: HTTPConnection) -> str | None:
        """Return the token, or None when neither channel yields one."""
        return self.from_cookie(request) or self.from_header(request)
