"""Audit logging utilities."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from functools import wraps
from typing import Any, Callable, Dict, Tuple

from global311.core.exceptions import PinServiceError
from global311.utils.monitoring import observe_pin_operation

logger = logging.getLogger("global311.audit")


class AuditLogger:
    """Structured audit logger."""

    def record(self, action: str, actor: str, details: Dict[str, Any]) -> None:
        payload = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "action": action,
            "actor": actor,
            "details": details,
        }
        logger.info(json.dumps(payload, default=str))


audit_logger = AuditLogger()


def audit_log(func: Callable) -> Callable:
    """Emit audit records and operation metrics around an async engine call.

    The actor is taken from the ``caller`` argument, the pin from ``pin_id``.
    """

    @wraps(func)
    async def async_wrapper(*args, **kwargs):
        user_id = _resolve_user(args, kwargs)
        metadata = _build_metadata(func, args, kwargs)
        audit_logger.record("start", user_id, metadata)
        try:
            result = await func(*args, **kwargs)
        except PinServiceError as exc:
            audit_logger.record("rejected", user_id, metadata | {"error": exc.code})
            observe_pin_operation(func.__name__, exc.code)
            raise
        except Exception as exc:
            audit_logger.record("error", user_id, metadata | {"error": str(exc)})
            observe_pin_operation(func.__name__, "error")
            raise
        audit_logger.record("success", user_id, metadata)
        observe_pin_operation(func.__name__, "success")
        return result

    return async_wrapper


def _argument(name: str, position: int, args: Tuple[Any, ...], kwargs: Dict[str, Any]) -> Any:
    if name in kwargs:
        return kwargs[name]
    # position counts ``self`` at index 0
    if len(args) > position:
        return args[position]
    return None


def _resolve_user(args: Tuple[Any, ...], kwargs: Dict[str, Any]) -> str:
    caller = _argument("caller", 1, args, kwargs)
    if caller is not None and getattr(caller, "id", None):
        return str(caller.id)
    return "anonymous"


def _build_metadata(func: Callable, args: Tuple[Any, ...], kwargs: Dict[str, Any]) -> Dict[str, Any]:
    metadata: Dict[str, Any] = {
        "action": func.__qualname__,
    }
    pin_id = _argument("pin_id", 2, args, kwargs)
    if isinstance(pin_id, str):
        metadata["pin_id"] = pin_id
    if "patch" in kwargs and isinstance(kwargs["patch"], dict):
        metadata["patch_keys"] = sorted(kwargs["patch"].keys())
    return metadata


__all__ = ["audit_logger", "audit_log", "AuditLogger"]
