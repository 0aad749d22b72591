"""Runtime-configurable debug logging utilities."""

from __future__ import annotations

import json
import logging
import threading
from typing import Any, Dict

_logger = logging.getLogger("exoscale_store")
_state_lock = threading.Lock()
_enabled = False

# Never echoed into request/response logs.
_REDACTED_KEYS = {"kubeconfig", "authorization", "secret", "exoscaleSecretKey"}


def configure_root(level: int = logging.INFO) -> None:
    """Ensure standard logging configuration is present."""

    if not logging.getLogger().handlers:
        logging.basicConfig(level=level)


def get_logger(name: str) -> logging.Logger:
    """Return a child of the package logger."""

    return _logger.getChild(name)


def is_enabled() -> bool:
    """Return whether verbose debug logging is active."""

    with _state_lock:
        return _enabled


def enable() -> None:
    """Enable verbose logging globally."""

    global _enabled
    with _state_lock:
        _enabled = True
    _logger.setLevel(logging.DEBUG)
    _logger.debug("Verbose debug mode enabled")


def _redact(payload: Dict[str, Any]) -> Dict[str, Any]:
    return {
        key: "<redacted>" if key in _REDACTED_KEYS else value
        for key, value in payload.items()
    }


def _normalise(payload: Dict[str, Any]) -> str:
    try:
        return json.dumps(_redact(payload), separators=(",", ":"))
    except TypeError:
        return str(_redact(payload))


def log_request(context: str, payload: Dict[str, Any]) -> None:
    """Emit structured debug log for outgoing requests."""

    if not is_enabled():
        return
    logging.getLogger("exoscale_store.request").debug(
        "%s request: %s", context, _normalise(payload)
    )


def log_response(context: str, payload: Dict[str, Any]) -> None:
    """Emit structured debug log for responses."""

    if not is_enabled():
        return
    logging.getLogger("exoscale_store.response").debug(
        "%s response: %s", context, _normalise(payload)
    )
