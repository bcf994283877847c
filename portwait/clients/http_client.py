import requests

from typing import Optional, Tuple
from portwait.clients.tcp_client import sanitize_error
from portwait.schemas.target import ProbeTarget
from portwait.utils.log import app_logger

class HealthHTTPClient:
    """HTTP health check used on top of the TCP check when a health path is configured.

    Any response below 400 means the application finished initialising.
    Network errors and error statuses mean "not ready yet".
    """
    
    USER_AGENT = "portwait/0.1"
    
    def __init__(self,
                 path: str = "/",
                 timeout: float = 1.0,
                 scheme: str = "http",
                 ):
        self.path = path if path.startswith('/') else f"/{path}"
        self.timeout = timeout
        self.scheme = scheme
        self.session = requests.Session()
        
        # setup default headers
        self._setup_default_headers()
    
    def _setup_default_headers(self):
        """setup default headers for the client"""
        self.session.headers.update({
            'User-Agent': self.USER_AGENT,
            'Accept': '*/*',
        })
    
    def build_url(self, target: ProbeTarget) -> str:
        """build full URL"""
        return f"{self.scheme}://{target}{self.path}"
    
    def check(self, target: ProbeTarget) -> Tuple[bool, Optional[str]]:
        """do one GET against the health path"""
        url = self.build_url(target)
        try:
            response = self.session.get(url, timeout=self.timeout, allow_redirects=True)
        except requests.exceptions.RequestException as e:
            return False, sanitize_error(e)

        if response.status_code >= 400:
            app_logger.debug("health.status", url=url, status_code=response.status_code)
            return False, f"HTTP {response.status_code}"
        return True, None
    
    def close(self):
        """close HTTP session"""
        self.session.close()
