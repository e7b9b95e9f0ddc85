import threading
import uuid

from gmicro.trace import TraceContext, ctx, gen_trace_id


def test_set_and_get_round_trip():
    context = TraceContext()
    context.set(1, "trace-a")
    assert context.get(1) == "trace-a"


def test_get_missing_returns_none():
    assert TraceContext().get(42) is None


def test_set_overwrites():
    context = TraceContext()
    context.set(1, "old")
    context.set(1, "new")
    assert context.get(1) == "new"


def test_remove():
    context = TraceContext()
    context.set(5, "trace")
    context.remove(5)
    assert context.get(5) is None
    context.remove(5)
    assert context.get(5) is None


def test_concurrent_sets_are_all_kept():
    context = TraceContext()

    def worker(i):
        context.set(i, f"t{i}")

    threads = [threading.Thread(target=worker, args=(i,)) for i in range(20)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert [context.get(i) for i in range(20)] == [f"t{i}" for i in range(20)]


def test_gen_trace_id_is_uuid_and_unique():
    first = gen_trace_id()
    second = gen_trace_id()
    assert str(uuid.UUID(first)) == first
    assert first != second
    assert len({gen_trace_id() for _ in range(50)}) == 50


def test_module_context_is_shared():
    ctx.set(-1, "shared")
    try:
        assert ctx.get(-1) == "shared"
    finally:
        ctx.remove(-1)