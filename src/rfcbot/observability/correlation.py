"""Correlation IDs for webhook deliveries and worker tasks.

An incoming request keeps the first id it already carries, in this order:
our own X-Correlation-ID (set by the task backends when enqueueing),
GitHub's X-GitHub-Delivery GUID, then the Cloud Tasks task name. Only a
request with none of them gets a fresh uuid4.
"""

import uuid
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from contextvars import ContextVar

correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="")

CORRELATION_ID_HEADER = "X-Correlation-ID"

INHERITED_ID_HEADERS = (
    CORRELATION_ID_HEADER,
    "X-GitHub-Delivery",
    "X-CloudTasks-TaskName",
)


def correlation_id_from_headers(headers: Mapping[str, str]) -> str:
    for header in INHERITED_ID_HEADERS:
        value = headers.get(header)
        if value:
            return value
    return str(uuid.uuid4())


def get_correlation_id() -> str:
    return correlation_id_var.get()


@contextmanager
def correlation_scope(cid: str) -> Iterator[str]:
    """Bind cid for the duration of the block, restoring the previous id after."""
    token = correlation_id_var.set(cid)
    try:
        yield cid
    finally:
        correlation_id_var.reset(token)
