"""Request admission: path classification, authn/authz decisions, header stamping.

Every inbound request is classified against an ordered route table
(first match wins, unmatched paths require authentication):

- PUBLIC: forwarded without any identity check.
- ADMIN: requires an identity whose role claim equals the admin role
  (case-insensitive). No identity redirects to sign-in; any other role
  redirects to the non-admin landing page.
- AUTHENTICATED: requires an identity; otherwise redirects to sign-in.

Role checks trust the identity provider's claims and do no further
verification. Redirects are absolute URLs built from the request origin;
sign-in redirects carry the original URL in ``redirect_url``.
"""

from __future__ import annotations

import enum
import logging
import re
from dataclasses import dataclass
from typing import Any, Iterable, Mapping
from urllib.parse import urlencode

from starlette.datastructures import MutableHeaders
from starlette.requests import Request
from starlette.responses import RedirectResponse, Response

from portfolio_api.adapters.identity import Identity
from portfolio_api.core.config import AuthSettings

logger = logging.getLogger(__name__)


class RouteClass(str, enum.Enum):
    PUBLIC = "public"
    ADMIN = "admin"
    AUTHENTICATED = "authenticated"


PUBLIC_ROUTES: tuple[str, ...] = (
    "/",
    "/sign-in(.*)",
    "/sign-up(.*)",
    "/api/public(.*)",
    "/mcp-security",
    "/security(.*)",
    "/mcp-integration(.*)",
    "/health",
    "/static(.*)",
    "/favicon.ico",
)

ADMIN_ROUTES: tuple[str, ...] = (
    "/admin(.*)",
    "/api/admin(.*)",
)

BASELINE_SECURITY_HEADERS: dict[str, str] = {
    "X-DNS-Prefetch-Control": "on",
    "X-Frame-Options": "DENY",
    "X-Content-Type-Options": "nosniff",
    "X-XSS-Protection": "1; mode=block",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "Permissions-Policy": "camera=(), microphone=(), geolocation=(), interest-cohort=()",
}
HSTS_VALUE = "max-age=31536000; includeSubDomains; preload"
API_CACHE_CONTROL = "no-store, max-age=0"
FRAMEWORK_HEADERS = ("x-powered-by", "server")

_COOKIE_FORCED_ATTRS = {"httponly", "samesite", "secure"}


def compile_route_pattern(pattern: str) -> re.Pattern[str]:
    """Compile a matcher-style pattern; ``(.*)`` matches any suffix.

    Everything else in the pattern is literal.

    Examples:
        >>> bool(compile_route_pattern("/admin(.*)").match("/admin/users"))
        True
        >>> bool(compile_route_pattern("/health").match("/health/deep"))
        False
    """
    parts = pattern.split("(.*)")
    return re.compile("^" + ".*".join(re.escape(part) for part in parts) + "$")


@dataclass(frozen=True)
class RouteRule:
    pattern: str
    route_class: RouteClass
    regex: re.Pattern[str]


class RouteTable:
    """Ordered path rules; the first rule matching a path decides its class."""

    def __init__(
        self,
        rules: Iterable[tuple[str, RouteClass]],
        *,
        default: RouteClass = RouteClass.AUTHENTICATED,
    ) -> None:
        self.rules = [
            RouteRule(pattern=pattern, route_class=route_class, regex=compile_route_pattern(pattern))
            for pattern, route_class in rules
        ]
        self.default = default

    @classmethod
    def default_table(cls) -> "RouteTable":
        rules = [(p, RouteClass.PUBLIC) for p in PUBLIC_ROUTES]
        rules += [(p, RouteClass.ADMIN) for p in ADMIN_ROUTES]
        return cls(rules)

    def classify(self, path: str) -> RouteClass:
        for rule in self.rules:
            if rule.regex.match(path):
                return rule.route_class
        return self.default


def extract_role(
    claims: Mapping[str, Any] | None,
    claim_path: str = "publicMetadata.role",
    default: str = "viewer",
) -> str:
    """Read the role claim at a dotted path, lower-cased.

    An absent or non-string claim yields ``default``.

    Examples:
        >>> extract_role({"publicMetadata": {"role": "Admin"}})
        'admin'
        >>> extract_role({})
        'viewer'
    """
    value: Any = claims or {}
    for part in claim_path.split("."):
        if not isinstance(value, Mapping):
            value = None
            break
        value = value.get(part)

    if not isinstance(value, str) or not value.strip():
        value = default
    return value.strip().lower()


def _absolute_url(request: Request, path: str, query: Mapping[str, str] | None = None) -> str:
    origin = f"{request.url.scheme}://{request.url.netloc}"
    url = origin + path
    if query:
        url += "?" + urlencode(query)
    return url


def sign_in_redirect(request: Request, auth_settings: AuthSettings) -> RedirectResponse:
    """Redirect to sign-in, remembering where the user was headed."""
    location = _absolute_url(
        request,
        auth_settings.sign_in_path,
        {"redirect_url": str(request.url)},
    )
    return RedirectResponse(location, status_code=307)


def decide_admission(
    request: Request,
    route_class: RouteClass,
    identity: Identity | None,
    auth_settings: AuthSettings,
) -> Response | None:
    """Return a redirect response, or None when the request may proceed."""

    if route_class is RouteClass.PUBLIC:
        return None

    if identity is None:
        logger.info(
            "admission.redirect",
            extra={"reason": "unauthenticated", "route_class": route_class.value, "path": request.url.path},
        )
        return sign_in_redirect(request, auth_settings)

    if route_class is RouteClass.ADMIN:
        role = extract_role(identity.claims, auth_settings.role_claim, auth_settings.default_role)
        if role != auth_settings.admin_role.lower():
            logger.info(
                "admission.redirect",
                extra={"reason": "insufficient_role", "role": role, "path": request.url.path},
            )
            return RedirectResponse(
                _absolute_url(request, auth_settings.non_admin_redirect_path),
                status_code=307,
            )

    return None


def harden_cookie(set_cookie: str, *, secure: bool) -> str:
    """Rewrite a Set-Cookie value to force HttpOnly, SameSite=Lax and,
    when ``secure``, the Secure flag. Other attributes are kept.

    Examples:
        >>> harden_cookie("sid=abc; Path=/; SameSite=None", secure=False)
        'sid=abc; Path=/; HttpOnly; SameSite=Lax'
    """
    parts = [part.strip() for part in set_cookie.split(";") if part.strip()]
    if not parts:
        return set_cookie

    kept = [parts[0]]
    for attr in parts[1:]:
        name = attr.split("=", 1)[0].strip().lower()
        if name not in _COOKIE_FORCED_ATTRS:
            kept.append(attr)

    kept += ["HttpOnly", "SameSite=Lax"]
    if secure:
        kept.append("Secure")
    return "; ".join(kept)


def stamp_security_headers(response: Response, path: str, *, production: bool) -> Response:
    """Apply security headers and cookie hardening to any response."""

    headers: MutableHeaders = response.headers

    for name, value in BASELINE_SECURITY_HEADERS.items():
        headers[name] = value
    if production:
        headers["Strict-Transport-Security"] = HSTS_VALUE
    if path.startswith("/api/"):
        headers["Cache-Control"] = API_CACHE_CONTROL

    for name in FRAMEWORK_HEADERS:
        if name in headers:
            del headers[name]

    cookies = headers.getlist("set-cookie")
    if cookies:
        del headers["set-cookie"]
        for cookie in cookies:
            headers.append("set-cookie", harden_cookie(cookie, secure=production))

    return response
