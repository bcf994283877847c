import time
from datetime import datetime
from typing import Callable, Dict, Optional

from portwait.clients.http_client import HealthHTTPClient
from portwait.clients.tcp_client import TcpClient
from portwait.core.exceptions.exceptions import DependencyUnavailableError
from portwait.schemas.target import ProbeResult, ProbeTarget
from portwait.utils.log import app_logger


class ProberService:
    """Readiness prober for a single dependency.

    - One attempt is a TCP connect/close. When an HTTP health path is
      configured, the attempt also requires the health endpoint to answer
      below 400.
    - Failures of any kind (refused, DNS, timeout, HTTP 5xx) are retried the
      same way, at a fixed interval.
    - Without a timeout or attempt budget the wait is unbounded.
    """

    def __init__(
        self,
        timeout: float = 1.0,
        http_path: Optional[str] = None,
        tcp_client: Optional[object] = None,
        http_client: Optional[object] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.timeout = timeout
        self.tcp_client = tcp_client or TcpClient(timeout=timeout)
        if http_client is None and http_path:
            http_client = HealthHTTPClient(path=http_path, timeout=timeout)
        self.http_client = http_client
        self._sleep = sleep
        self._clock = clock

    def probe(self, target: ProbeTarget) -> Dict:
        """Single attempt. Returns dict with keys: target, is_ready, probed_at, error."""
        probed_at = datetime.now()
        is_ready, error = self.tcp_client.check(target)
        if is_ready and self.http_client is not None:
            is_ready, error = self.http_client.check(target)
        return {"target": str(target), "is_ready": is_ready, "probed_at": probed_at, "error": error}

    def wait_until_ready(
        self,
        target: ProbeTarget,
        interval: float = 0.1,
        timeout: Optional[float] = None,
        max_attempts: Optional[int] = None,
    ) -> ProbeResult:
        """Block until target accepts connections.

        Raises DependencyUnavailableError once max_attempts attempts failed or
        sleeping again would go past timeout seconds. With neither set this
        only returns on success.
        """
        start = self._clock()
        attempts = 0
        app_logger.info(
            "probe.waiting",
            target=str(target),
            interval=interval,
            timeout=timeout,
            max_attempts=max_attempts,
            http=self.http_client is not None,
        )

        while True:
            attempts += 1
            res = self.probe(target)
            elapsed = self._clock() - start

            if res["is_ready"]:
                app_logger.info("probe.ready", target=str(target), attempts=attempts, elapsed_s=round(elapsed, 3))
                return ProbeResult(target=target, ready=True, attempts=attempts, elapsed_s=max(elapsed, 0.0))

            last_error = res["error"]
            app_logger.debug("probe.attempt_failed", target=str(target), attempt=attempts, error=last_error)

            if max_attempts is not None and attempts >= max_attempts:
                raise DependencyUnavailableError(str(target), attempts, elapsed, last_error or "")
            if timeout is not None and elapsed + interval > timeout:
                raise DependencyUnavailableError(str(target), attempts, elapsed, last_error or "")

            self._sleep(interval)

    def close(self):
        if self.http_client is not None and hasattr(self.http_client, "close"):
            self.http_client.close()
