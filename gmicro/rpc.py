"""A JSON-over-HTTP client for calling other services."""

from __future__ import annotations

import json
import logging
import posixpath
from typing import Any, Optional
from urllib.parse import urlsplit, urlunsplit

import requests

logger = logging.getLogger(__name__)

DEFAULT_TARGET = "http://127.0.0.1:20002"


class RpcError(Exception):
    """A failed remote call; ``code`` holds the service's error code, if any."""

    def __init__(self, message: str, code: Optional[int] = None) -> None:
        super().__init__(message)
        self.code = code


def _join_url(base: str, path: str) -> str:
    parts = urlsplit(base)
    joined = posixpath.normpath(posixpath.join(parts.path or "/", path.lstrip("/")))
    if joined.startswith("//"):
        joined = "/" + joined.lstrip("/")
    if path.endswith("/") and not joined.endswith("/"):
        joined += "/"
    return urlunsplit((parts.scheme, parts.netloc, joined, parts.query, parts.fragment))


class RpcClient:
    """Posts JSON requests to a service and unpacks its reply envelope."""

    def __init__(
        self, target: str = DEFAULT_TARGET, session: Optional[requests.Session] = None
    ) -> None:
        self.target = target
        self.session = session if session is not None else requests.Session()

    def do_request(self, path: str, method: str, req: Any) -> dict:
        """Send ``req`` to ``path`` and return the decoded ``data`` of the reply.

        Raises RpcError when the call fails or the service reports an error code.
        """
        try:
            body = json.dumps(req).encode()
        except (TypeError, ValueError) as exc:
            raise RpcError(f"cannot encode request: {exc}") from exc
        url = _join_url(self.target, path)
        try:
            resp = self.session.request(method, url, data=body, headers={})
        except requests.RequestException as exc:
            raise RpcError(str(exc)) from exc

        raw = resp.content
        logger.info("rpc resp: %s", raw.decode("utf-8", errors="replace"))
        try:
            envelope = json.loads(raw)
        except ValueError as exc:
            raise RpcError(f"invalid response: {exc}") from exc
        if not isinstance(envelope, dict):
            raise RpcError("invalid response: not an object")

        code = envelope.get("errcode", 0)
        if code is None:
            code = 0
        if isinstance(code, bool) or not isinstance(code, int):
            raise RpcError(f"invalid response errcode: {code!r}")
        if code > 0:
            raise RpcError(str(envelope.get("errmsg") or ""), code)

        data = envelope.get("data", "")
        if not isinstance(data, str):
            raise RpcError("invalid response: data is not a string")
        try:
            out = json.loads(data)
        except ValueError as exc:
            raise RpcError(f"invalid response data: {exc}") from exc
        if not isinstance(out, dict):
            raise RpcError("invalid response data: not an object")
        return out


_default_client: Optional[RpcClient] = None


def do_request(path: str, method: str, req: Any) -> dict:
    """Call ``path`` on the default target with a shared client."""
    global _default_client
    if _default_client is None:
        _default_client = RpcClient()
    return _default_client.do_request(path, method, req)