from teamboard.client.cache import STATIC_VIEWS, ComponentCache
from teamboard.client.context import ClientContext
from teamboard.client.csrf import CsrfTokenProvider
from teamboard.client.events import AuthEvents, TokenRevokedEvent
from teamboard.client.gateway import ApiGateway, ApiResult, RotationResult
from teamboard.client.monitor import SessionMonitor
from teamboard.client.oauth_poller import OAuthStatus, OAuthStatusPoller, PollOutcome
from teamboard.client.retry import with_retry
from teamboard.client.session import LOGIN_ROUTE, AuthSession

__all__ = [
    "STATIC_VIEWS",
    "ApiGateway",
    "ApiResult",
    "AuthEvents",
    "AuthSession",
    "ClientContext",
    "ComponentCache",
    "CsrfTokenProvider",
    "LOGIN_ROUTE",
    "OAuthStatus",
    "OAuthStatusPoller",
    "PollOutcome",
    "RotationResult",
    "SessionMonitor",
    "TokenRevokedEvent",
    "with_retry",
]
