"""Request context carrying session and tracing details."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

_FIELDS = ("sid", "device_id", "trace_id", "auth_type", "protocol_type", "ext_info")


class ConvertError(TypeError):
    """Raised when a value cannot be used as a request context."""


@dataclass
class BaseUCtx:
    """A plain request context."""

    sid: str = ""
    device_id: str = ""
    trace_id: str = ""
    auth_type: str = ""
    protocol_type: str = ""
    ext_info: Any = None


def to_uctx(ctx: Any) -> Any:
    """Return ``ctx`` if it carries every request-context attribute."""
    if isinstance(ctx, BaseUCtx) or all(hasattr(ctx, name) for name in _FIELDS):
        return ctx
    raise ConvertError("convert ctx failed")