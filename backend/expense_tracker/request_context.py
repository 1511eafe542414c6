"""
Request-scoped context shared with the logging layer.
"""
import contextvars
import uuid
from typing import Optional

REQUEST_ID_HEADER = "x-request-id"

_request_id: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "request_id",
    default=None,
)


def new_request_id() -> str:
    return uuid.uuid4().hex


def set_request_id(request_id: str) -> contextvars.Token:
    return _request_id.set(request_id)


def clear_request_id(token: contextvars.Token) -> None:
    _request_id.reset(token)


def get_request_id() -> Optional[str]:
    return _request_id.get()
