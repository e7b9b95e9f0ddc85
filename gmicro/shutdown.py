"""Run registered hooks when the process receives a termination signal."""

from __future__ import annotations

import logging
import signal
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)

_SIGNAL_NAMES = ("SIGHUP", "SIGINT", "SIGTERM", "SIGQUIT")
_CHAIN_MARK = "_gmicro_shutdown_handler"

Hook = Callable[[Any], Any]


def _watched_signals() -> list[signal.Signals]:
    return [getattr(signal, name) for name in _SIGNAL_NAMES if hasattr(signal, name)]


def _as_signal(signum: Any) -> Any:
    try:
        return signal.Signals(signum)
    except (ValueError, TypeError):
        return signum


class ShutdownHooks:
    """A set of hooks run once, in registration order, on the first termination signal."""

    def __init__(self) -> None:
        self._hooks: list[Hook] = []
        self._fired = False

    def register(self, fn: Hook) -> Hook:
        """Add a hook; returns it so this can be used as a decorator."""
        self._hooks.append(fn)
        return fn

    def run(self, signum: Any) -> list[Exception]:
        """Call every hook with ``signum``; failures are logged and collected."""
        errors: list[Exception] = []
        for hook in list(self._hooks):
            try:
                hook(signum)
            except Exception as exc:
                logger.error("err:%s", exc)
                errors.append(exc)
        return errors

    def install(self) -> dict[int, Any]:
        """Install handlers for the termination signals.

        Returns the handlers that were replaced, keyed by signal number.
        With no hooks registered nothing is installed.
        """
        if not self._hooks:
            return {}
        previous: dict[int, Any] = {}
        for signum in _watched_signals():
            prior = signal.getsignal(signum)
            previous[signum] = prior
            signal.signal(signum, self._make_handler(prior))
        return previous

    def _make_handler(self, prior: Any) -> Callable[[int, Any], None]:
        def handler(signum: int, frame: Any) -> None:
            if not self._fired:
                self._fired = True
                logger.info("exit: signal[%s]", _as_signal(signum))
                self.run(_as_signal(signum))
            if getattr(prior, _CHAIN_MARK, False):
                prior(signum, frame)

        setattr(handler, _CHAIN_MARK, True)
        return handler


def watch(fn: Hook) -> ShutdownHooks:
    """Call ``fn`` with the signal once a termination signal arrives.

    Several watchers may be active at once; each is called once.
    """
    hooks = ShutdownHooks()
    hooks.register(fn)
    hooks.install()
    return hooks