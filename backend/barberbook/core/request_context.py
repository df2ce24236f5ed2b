from __future__ import annotations

from contextvars import ContextVar, Token
import logging
from typing import Optional

_request_id_var: ContextVar[str] = ContextVar("request_id", default="")
_actor_id_var: ContextVar[Optional[int]] = ContextVar("actor_id", default=None)


def set_request_id(request_id: Optional[str]) -> Token[str]:
    return _request_id_var.set(request_id or "")


def reset_request_id(token: Token[str]) -> None:
    _request_id_var.reset(token)


def get_request_id(default: Optional[str] = None) -> Optional[str]:
    value = _request_id_var.get()
    return value if value else default


def get_request_id_value(default: str = "no-request") -> str:
    value = _request_id_var.get()
    return value if value else default


def set_actor_id(actor_id: Optional[int]) -> Token[Optional[int]]:
    return _actor_id_var.set(actor_id)


def reset_actor_id(token: Token[Optional[int]]) -> None:
    _actor_id_var.reset(token)


def get_actor_id() -> Optional[int]:
    return _actor_id_var.get()


class RequestIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "request_id"):
            record.request_id = get_request_id_value()
        if not hasattr(record, "actor_id"):
            actor_id = get_actor_id()
            record.actor_id = actor_id if actor_id is not None else "-"
        return True


def attach_request_id_filter(logger: Optional[logging.Logger] = None) -> None:
    target = logger or logging.getLogger()
    for handler in target.handlers:
        if not any(isinstance(f, RequestIdFilter) for f in handler.filters):
            handler.addFilter(RequestIdFilter())
