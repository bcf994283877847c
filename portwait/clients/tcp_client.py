import re
import socket
from typing import Optional, Tuple

from portwait.schemas.target import ProbeTarget


def sanitize_error(e: BaseException) -> str:
    # remove memory addresses like <socket.socket ... at 0x...> from error text
    raw = str(e) or type(e).__name__
    return f"{type(e).__name__}: {re.sub(r'0x[0-9a-fA-F]+', '<ptr>', raw)}"


class TcpClient:
    """Bare connect/close reachability check, the equivalent of `nc -z host port`."""

    def __init__(self, timeout: float = 1.0):
        self.timeout = timeout

    def check(self, target: ProbeTarget) -> Tuple[bool, Optional[str]]:
        """Open and immediately close one TCP connection to target.

        Refused connections, DNS failures and timeouts are all reported the
        same way: (False, error text).
        """
        try:
            with socket.create_connection((target.host, target.port), timeout=self.timeout):
                return True, None
        except OSError as e:
            return False, sanitize_error(e)
