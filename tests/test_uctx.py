from types import SimpleNamespace

import pytest

from gmicro.uctx import BaseUCtx, ConvertError, to_uctx


def test_defaults_are_empty():
    ctx = BaseUCtx()
    assert (ctx.sid, ctx.device_id, ctx.trace_id) == ("", "", "")
    assert (ctx.auth_type, ctx.protocol_type) == ("", "")
    assert ctx.ext_info is None


def test_fields_are_assignable():
    ctx = BaseUCtx()
    ctx.sid = "session"
    ctx.ext_info = {"k": 1}
    assert ctx.sid == "session"
    assert ctx.ext_info == {"k": 1}


def test_to_uctx_returns_same_object():
    ctx = BaseUCtx(trace_id="abc")
    assert to_uctx(ctx) is ctx


def test_to_uctx_accepts_duck_typed_context():
    other = SimpleNamespace(
        sid="", device_id="", trace_id="t", auth_type="", protocol_type="", ext_info=None
    )
    assert to_uctx(other) is other


def test_to_uctx_rejects_other_values():
    with pytest.raises(ConvertError, match="convert ctx failed"):
        to_uctx(object())