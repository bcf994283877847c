import time
from typing import Callable, List, Optional

from portwait.core.exceptions.exceptions import DependencyUnavailableError
from portwait.schemas.target import ProbeResult, ProbeTarget
from portwait.services.handoff_service import HandoffService
from portwait.services.prober_service import ProberService
from portwait.utils.log import app_logger


def _print(line: str) -> None:
    print(line, flush=True)


def wait_for_all(
    targets: List[ProbeTarget],
    prober: ProberService,
    interval: float = 0.1,
    timeout: Optional[float] = None,
    max_attempts: Optional[int] = None,
    announce: Optional[Callable[[str], None]] = _print,
    clock: Callable[[], float] = time.monotonic,
) -> List[ProbeResult]:
    """Wait for each target in order. `timeout` is shared by all targets.

    A DependencyUnavailableError from the prober is re-raised with the total
    time spent across all targets.
    """
    results = []
    start = clock()
    for target in targets:
        remaining = None
        if timeout is not None:
            remaining = max(timeout - (clock() - start), 0.0)

        if announce:
            announce(f"Waiting for {target}...")
        try:
            res = prober.wait_until_ready(target, interval=interval, timeout=remaining, max_attempts=max_attempts)
        except DependencyUnavailableError as e:
            raise DependencyUnavailableError(
                e.target, e.attempts, e.elapsed_s, e.last_error, total_elapsed_s=clock() - start
            ) from e
        if announce:
            announce(f"{target} is ready!")
        results.append(res)
    return results


def run_gate(
    targets: List[ProbeTarget],
    command: Optional[List[str]] = None,
    prober: Optional[ProberService] = None,
    handoff: Optional[HandoffService] = None,
    interval: float = 0.1,
    timeout: Optional[float] = None,
    max_attempts: Optional[int] = None,
    mode: Optional[str] = None,
    announce: Optional[Callable[[str], None]] = _print,
) -> int:
    """Dependency-gated process launch.

    - Waits for every target (see wait_for_all)
    - Hands off to `command` exactly once, after the last target is ready
    - With no command, returns 0 once everything is ready

    Returns the exit code the calling process should use. In exec mode a
    successful handoff never returns.
    """
    prober = prober or ProberService()
    handoff = handoff or HandoffService()

    app_logger.info("gate.start", targets=[str(t) for t in targets], command=command or None, mode=mode)
    try:
        results = wait_for_all(
            targets,
            prober,
            interval=interval,
            timeout=timeout,
            max_attempts=max_attempts,
            announce=announce,
        )
    finally:
        prober.close()

    app_logger.info("gate.ready", targets=len(results), attempts=sum(r.attempts for r in results))

    if not command:
        app_logger.info("gate.no_command")
        return 0

    return handoff.launch(command, mode=mode)
