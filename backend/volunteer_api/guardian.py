"""
Volunteer API — Process Guardian
=================================

What:  Terminates the process when an error escapes every per-request
       handler: an uncaught exception on any thread, or a failed background
       task nobody awaited.
Why:   Such an error leaves the process in an unknown state (half-open
       sessions, a dead notification task). A supervisor (systemd, Docker,
       Render) restarts a process that exits non-zero; one that limps on
       serves wrong answers.
How:   install() hooks sys.excepthook and threading.excepthook;
       attach(loop) installs an asyncio exception handler. Each hook logs the
       error with its stack, flushes logging, then calls `exit_func`.

Exit codes (distinct per cause so the supervisor log tells them apart):
    70 STARTUP_FAILURE       database unreachable / schema sync failed / bind failed
    71 UNHANDLED_REJECTION   background task or future failed unobserved
    72 UNCAUGHT_EXCEPTION    exception escaped a thread
    78 MISSING_ENVIRONMENT   required environment variable absent

Not fatal: errors inside a request (the error normalizer owns those) and
asyncio loop messages that carry no exception (e.g. "Unclosed client
session"), which go to the loop's default handler.
"""

import asyncio
import logging
import os
import sys
import threading
from enum import IntEnum
from typing import Any, Callable, Dict, Optional

logger = logging.getLogger(__name__)


class ExitCode(IntEnum):
    STARTUP_FAILURE = 70
    UNHANDLED_REJECTION = 71
    UNCAUGHT_EXCEPTION = 72
    MISSING_ENVIRONMENT = 78


class ProcessGuardian:
    """
    Args:
        exit_func: Called with the exit code after logging. Defaults to
                   os._exit, which ends the process without unwinding other
                   threads or awaiting the event loop. Tests pass a recorder.
        flush_logs: Flushes handlers before exiting (logging.shutdown).
    """

    def __init__(
        self,
        exit_func: Callable[[int], Any] = os._exit,
        flush_logs: Callable[[], None] = logging.shutdown,
    ):
        self.exit_func = exit_func
        self.flush_logs = flush_logs
        self.triggered: Optional[ExitCode] = None

    # ── Installation ──────────────────────────────────────────────────────
    def install(self) -> None:
        sys.excepthook = self.handle_uncaught
        threading.excepthook = self.handle_thread_exception

    def attach(self, loop: asyncio.AbstractEventLoop) -> None:
        loop.set_exception_handler(self.handle_loop_exception)

    # ── Hooks ─────────────────────────────────────────────────────────────
    def handle_uncaught(self, exc_type, exc_value, exc_traceback) -> None:
        if issubclass(exc_type, KeyboardInterrupt):
            sys.__excepthook__(exc_type, exc_value, exc_traceback)
            return
        self.terminate(
            ExitCode.UNCAUGHT_EXCEPTION,
            "Uncaught exception",
            (exc_type, exc_value, exc_traceback),
        )

    def handle_thread_exception(self, args: "threading.ExceptHookArgs") -> None:
        if args.exc_type is SystemExit:
            return
        thread_name = args.thread.name if args.thread is not None else "unknown"
        self.terminate(
            ExitCode.UNCAUGHT_EXCEPTION,
            f"Uncaught exception in thread {thread_name}",
            (args.exc_type, args.exc_value, args.exc_traceback),
        )

    def handle_loop_exception(self, loop: asyncio.AbstractEventLoop, context: Dict[str, Any]) -> None:
        exc = context.get("exception")
        if exc is None or not ("future" in context or "task" in context):
            loop.default_exception_handler(context)
            return
        self.terminate(
            ExitCode.UNHANDLED_REJECTION,
            f"Unhandled task failure: {context.get('message', 'no message')}",
            (type(exc), exc, exc.__traceback__),
        )

    # ── Termination ───────────────────────────────────────────────────────
    def terminate(self, code: ExitCode, message: str, exc_info=None) -> None:
        self.triggered = code
        logger.critical("%s; exiting with code %d", message, int(code), exc_info=exc_info)
        self.flush_logs()
        self.exit_func(int(code))


# Process-wide instance; the server entry point installs it, the lifespan attaches it.
guardian = ProcessGuardian()
