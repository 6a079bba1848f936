"""
HTTP client for a running kiwirec service.

Provides the RecorderClient class used by the control CLI to list, start,
stop, and remove jobs over the JSON API.
"""
from __future__ import annotations

import json
from typing import Any, Dict, List, Optional
from urllib import error as urlerr
from urllib import request as urlreq


class ServiceError(RuntimeError):
    """A request failed; ``status`` is the HTTP code, or None if unreachable."""

    def __init__(self, message: str, status: Optional[int] = None, payload: Any = None) -> None:
        super().__init__(message)
        self.status = status
        self.payload = payload


class RecorderClient:
    """
    HTTP client for communicating with the kiwirec API.

    Wraps the service's REST API with typed methods for job management.
    """

    def __init__(self, base_url: str, timeout: float = 10.0) -> None:
        """
        Initialize the client.

        Args:
            base_url: Base URL of the service (e.g., http://127.0.0.1:5004).
            timeout: Socket timeout per request in seconds.
        """
        self.base = base_url.rstrip('/')
        self.timeout = timeout

    def _req(
        self,
        method: str,
        path: str,
        body: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """
        Make an HTTP request to the service.

        Args:
            method: HTTP method (GET, POST, DELETE).
            path: URL path (e.g., /api/recorder/status).
            body: Optional JSON body for POST requests.

        Returns:
            Parsed JSON response or raw text.

        Raises:
            ServiceError: On HTTP errors or connection failures.
        """
        url = self.base + path
        data = None
        headers = {"Content-Type": "application/json"}
        if body is not None:
            data = json.dumps(body).encode('utf-8')

        req = urlreq.Request(url, data, headers=headers, method=method.upper())
        try:
            with urlreq.urlopen(req, timeout=self.timeout) as resp:
                ct = resp.headers.get('Content-Type', '')
                raw = resp.read()
                if not ct.startswith('application/json'):
                    return raw.decode('utf-8', errors='replace')
                return json.loads(raw.decode('utf-8'))
        except urlerr.HTTPError as e:
            text = e.read().decode('utf-8', errors='replace')
            try:
                payload = json.loads(text)
            except ValueError:
                payload = None
            message = payload.get("message", text) if isinstance(payload, dict) else text
            raise ServiceError(f"HTTP {e.code}: {message}", status=e.code, payload=payload)
        except (urlerr.URLError, OSError) as e:
            raise ServiceError(f"service unreachable at {self.base}: {e}")

    # -----------------------------------------------------------------------
    # Job management
    # -----------------------------------------------------------------------

    def list_jobs(self) -> List[Dict[str, Any]]:
        """List all jobs with their most recent log lines."""
        return self._req('GET', '/api/recorder/status')

    def job_detail(self, job_id: int) -> Dict[str, Any]:
        """Get one job with its full log buffer."""
        return self._req('GET', f'/api/recorder/status/{int(job_id)}')

    def start_job(self, settings: Dict[str, Any]) -> Dict[str, Any]:
        """
        Create a recording job.

        Args:
            settings: {rec_type, frequency (Hz), zoom?, duration, interval?}.

        Returns:
            The created job view.
        """
        return self._req('POST', '/api/recorder/start', body=settings)

    def stop_job(self, job_id: int) -> Dict[str, Any]:
        """Stop the current run of a job."""
        return self._req('POST', f'/api/recorder/stop/{int(job_id)}')

    def remove_job(self, job_id: int) -> Dict[str, Any]:
        """Remove a job, killing its capture process."""
        return self._req('DELETE', f'/api/recorder/{int(job_id)}')
