import os
import signal
import subprocess
import sys
import threading
from typing import Callable, List, Optional, Sequence

from portwait.config.settings import default_handoff_mode
from portwait.core.exceptions.exceptions import HandoffError
from portwait.utils.log import app_logger


FORWARDED_SIGNALS = tuple(
    getattr(signal, name)
    for name in ("SIGTERM", "SIGINT", "SIGHUP", "SIGQUIT", "SIGUSR1", "SIGUSR2")
    if hasattr(signal, name)
)

HANDOFF_MODES = ("exec", "supervise")

# sent by the tty driver to the whole foreground process group
TERMINAL_SIGNALS = tuple(
    getattr(signal, name) for name in ("SIGINT", "SIGQUIT") if hasattr(signal, name)
)


def exit_code_for(returncode: int) -> int:
    """Map a Popen returncode to what a shell would report (signal N -> 128 + N)."""
    if returncode < 0:
        return 128 - returncode
    return returncode


def _launch_error(command: str, e: OSError) -> HandoffError:
    # same conventions as sh: 127 command not found, 126 found but not runnable
    code = 127 if isinstance(e, FileNotFoundError) else 126
    return HandoffError(command, f"{type(e).__name__}: {e.strerror or e}", exit_code=code)


class HandoffService:
    """Transfers control to the long-running server once its dependencies are ready.

    `exec` replaces the current process image, so the server inherits the PID
    and receives signals directly. `supervise` runs the server as a child,
    forwards termination signals to it and returns its exit code. SIGINT and
    SIGQUIT are not forwarded when the tty already delivered them to the child.
    """

    def __init__(self,
                 execvp: Callable[[str, Sequence[str]], None] = os.execvp,
                 popen: Callable[..., subprocess.Popen] = subprocess.Popen):
        self._execvp = execvp
        self._popen = popen

    def launch(self, argv: List[str], mode: Optional[str] = None) -> int:
        mode = (mode or default_handoff_mode()).lower()
        if mode not in HANDOFF_MODES:
            raise ValueError(f"unknown handoff mode '{mode}'")
        if mode == "exec":
            self.exec_replace(argv)
            # only reachable when execvp is replaced in tests
            return 0
        return self.supervise(argv)

    def exec_replace(self, argv: List[str]) -> None:
        argv = self._validate(argv)
        app_logger.info("handoff.exec", command=argv[0], argv=argv)

        # exec discards anything still buffered in this process
        app_logger.flush()
        sys.stdout.flush()
        sys.stderr.flush()

        try:
            self._execvp(argv[0], argv)
        except OSError as e:
            raise _launch_error(argv[0], e) from e

    def supervise(self, argv: List[str]) -> int:
        argv = self._validate(argv)
        app_logger.info("handoff.spawn", command=argv[0], argv=argv)
        sys.stdout.flush()

        try:
            proc = self._popen(argv)
        except OSError as e:
            raise _launch_error(argv[0], e) from e

        app_logger.debug("handoff.child_started", pid=proc.pid)
        previous = self._install_forwarders(proc)
        try:
            returncode = proc.wait()
        finally:
            self._restore(previous)

        code = exit_code_for(returncode)
        app_logger.info("handoff.child_exited", pid=proc.pid, returncode=returncode, exit_code=code)
        return code

    def _validate(self, argv: List[str]) -> List[str]:
        argv = [str(a) for a in (argv or [])]
        if not argv or not argv[0]:
            raise HandoffError("", "no command given", exit_code=127)
        return argv

    def _install_forwarders(self, proc) -> dict:
        # signal handlers can only be installed from the main thread
        if threading.current_thread() is not threading.main_thread():
            return {}

        # Ctrl-C already reached a child sharing our foreground process group
        skip = TERMINAL_SIGNALS if self._shares_terminal(proc) else ()

        def forward(signum, frame):
            if signum in skip:
                return
            if proc.poll() is None:
                app_logger.debug("handoff.forward_signal", signal=signal.Signals(signum).name, pid=proc.pid)
                proc.send_signal(signum)

        previous = {}
        for sig in FORWARDED_SIGNALS:
            try:
                previous[sig] = signal.signal(sig, forward)
            except (OSError, ValueError):
                continue
        return previous

    def _shares_terminal(self, proc) -> bool:
        try:
            fd = sys.stdin.fileno()
            return os.isatty(fd) and os.tcgetpgrp(fd) == os.getpgid(proc.pid)
        except (AttributeError, OSError, ValueError):
            return False

    def _restore(self, previous: dict) -> None:
        for sig, handler in previous.items():
            signal.signal(sig, handler if handler is not None else signal.SIG_DFL)
