from __future__ import annotations

import logging
from contextvars import ContextVar, Token
from typing import Any

import sentry_sdk

_log_context: ContextVar[dict[str, Any] | None] = ContextVar("log_context", default=None)


class RequestContextFilter(logging.Filter):
    """Inject request metadata from ContextVars into every log record."""

    def filter(self, record: logging.LogRecord) -> bool:  # pragma: no cover - formatting only
        context = _log_context.get() or {}
        record.request_id = context.get("request_id")
        if getattr(record, "account_id", None) is None:
            record.account_id = context.get("account_id")
        return True


def push_request_context(request_id: str) -> Token:
    return _log_context.set({"request_id": request_id, "account_id": None})


def pop_request_context(token: Token) -> None:
    _log_context.reset(token)


def set_account_context(account_id: str | None, *, email: str | None = None) -> None:
    context = _log_context.get()
    if context is not None:
        context["account_id"] = account_id
    else:  # fallback when middleware is bypassed (tests)
        _log_context.set({"request_id": None, "account_id": account_id})
    if account_id:
        sentry_sdk.set_user({"id": account_id, "email": email})
    else:
        sentry_sdk.set_user(None)


__all__ = [
    "RequestContextFilter",
    "push_request_context",
    "pop_request_context",
    "set_account_context",
]
