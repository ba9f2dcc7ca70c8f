"""
core/gate.py -- Route classification and the authorization decision table.

Pattern: pure functions over (path, session presence, GateConfig). Nothing
here touches the identity store, the network, or module state, so the gate
is safe to run on the hot path of every request and calling it twice with the
same inputs always yields the same Decision.

Decision table:

    route class        session   decision
    -----------------  --------  -------------------------------
    PROTECTED          yes       Continue
    PROTECTED          no        RedirectTo(config.login_path)
    AUTH_ENTRY_POINT   yes       RedirectTo(config.protected_home)
    AUTH_ENTRY_POINT   no        Continue
    PUBLIC             either    Continue

The HTTP binding lives in api/main.py (authorization_gate middleware).

Layer rule: core/ is the kernel. No imports from api/, web/, or auth/.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Union

from core.config import GateConfig


class RouteClass(str, Enum):
    PROTECTED = "protected"
    AUTH_ENTRY_POINT = "auth_entry_point"
    PUBLIC = "public"


@dataclass(frozen=True)
class Continue:
    """Let the request through to its handler."""


@dataclass(frozen=True)
class RedirectTo:
    path: str


Decision = Union[Continue, RedirectTo]


def is_excluded(path: str, config: GateConfig) -> bool:
    """Return True if path matches the static allowlist and skips the gate entirely."""
    return any(pattern.search(path) for pattern in config.excluded)


def classify(path: str, config: GateConfig) -> RouteClass:
    """Map any request path to exactly one RouteClass.

    The sign-in path is checked first and tolerates a trailing slash. The
    protected prefix is a plain prefix match, so /dashboard, /dashboard/ and
    /dashboard/invoices are all protected.
    """
    if path == config.login_path or path.rstrip("/") == config.login_path:
        return RouteClass.AUTH_ENTRY_POINT
    if path.startswith(config.protected_prefix):
        return RouteClass.PROTECTED
    return RouteClass.PUBLIC


def decide(route_class: RouteClass, signed_in: bool, config: GateConfig) -> Decision:
    if route_class is RouteClass.PROTECTED:
        return Continue() if signed_in else RedirectTo(config.login_path)
    if route_class is RouteClass.AUTH_ENTRY_POINT:
        return RedirectTo(config.protected_home) if signed_in else Continue()
    return Continue()


def authorize(path: str, signed_in: bool, config: GateConfig) -> Decision:
    """Classify path and apply the decision table."""
    return decide(classify(path, config), signed_in, config)
