"""Structured logging helpers for the authorization server.

Every module logs through these helpers instead of creating its own logger, so
that all records land under the ``oauth_server.<component>`` namespace and carry
their structured fields in a uniform way.

Usage:
    from oauth_server.shared.logger import log_info, log_warning

    log_info("Authorization code issued", component="grant_store", client_id="test-client")
    log_warning("Token request rejected", component="oauth_token", error="invalid_client")

Field values whose key looks sensitive (tokens, codes, secrets) are masked by
``OAuthSanitizer`` before they reach a handler.
"""

import logging
from typing import Any, Dict, Optional

from .python_logger_config import TRACE, ROOT_LOGGER_NAME
from .sanitizer import OAuthSanitizer

DEFAULT_COMPONENT = "global"


def get_logger(component: Optional[str] = None) -> logging.Logger:
    """Get the stdlib logger for a component.

    Args:
        component: Component name (defaults to ``global``)

    Returns:
        Logger named ``oauth_server.<component>``
    """
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{component or DEFAULT_COMPONENT}")


def _log(level: int, message: str, component: Optional[str], fields: Dict[str, Any]) -> None:
    logger = get_logger(component)
    if not logger.isEnabledFor(level):
        return
    sanitized = OAuthSanitizer.sanitize_fields(fields)
    logger.log(level, message, extra={"fields": sanitized, "component": component or DEFAULT_COMPONENT})


def log_trace(message: str, component: Optional[str] = None, **kwargs):
    """Trace log (very verbose debugging)."""
    _log(TRACE, message, component, kwargs)


def log_debug(message: str, component: Optional[str] = None, **kwargs):
    """Debug log.

    Args:
        message: Log message
        component: Optional component name
        **kwargs: Additional structured data
    """
    _log(logging.DEBUG, message, component, kwargs)


def log_info(message: str, component: Optional[str] = None, **kwargs):
    """Info log.

    Args:
        message: Log message
        component: Optional component name
        **kwargs: Additional structured data
    """
    _log(logging.INFO, message, component, kwargs)


def log_warning(message: str, component: Optional[str] = None, **kwargs):
    """Warning log.

    Args:
        message: Log message
        component: Optional component name
        **kwargs: Additional structured data
    """
    _log(logging.WARNING, message, component, kwargs)


def log_error(message: str, component: Optional[str] = None, error: Optional[Exception] = None, **kwargs):
    """Error log.

    Args:
        message: Log message
        component: Optional component name
        error: Optional exception to log
        **kwargs: Additional structured data
    """
    if error:
        kwargs['error'] = str(error)
        kwargs['error_type'] = type(error).__name__
    _log(logging.ERROR, message, component, kwargs)


# Specialized logging helpers

def log_request(method: str, path: str, client_ip: str, **kwargs):
    """HTTP request log.

    Args:
        method: HTTP method
        path: Request path
        client_ip: Client IP address
        **kwargs: Additional request data
    """
    _log(logging.INFO, f"REQUEST: {method} {path}", "http",
         {"request_method": method, "request_path": path, "client_ip": client_ip, **kwargs})


def log_response(status: int, duration_ms: float, **kwargs):
    """HTTP response log.

    Args:
        status: HTTP status code
        duration_ms: Request duration in milliseconds
        **kwargs: Additional response data
    """
    level = logging.WARNING if status >= 400 else logging.INFO
    _log(level, f"RESPONSE: {status} in {duration_ms:.2f}ms", "http",
         {"status": status, "duration_ms": round(duration_ms, 2), **kwargs})
