"""
Medicine snapshot providers: the pharmacy REST backend, or a JSON file.

Every fetch returns the complete current medicine list; there is no
incremental sync.
"""

import json
from typing import Any, Callable, List, Optional

import requests

from rxalerts.config import HTTP_TIMEOUT_SECONDS, MEDICINES_API_URL, MEDICINES_FILE
from rxalerts.models import Medicine, usable_id


class SnapshotError(Exception):
    """The medicine snapshot could not be fetched or understood."""


def parse_snapshot(payload: Any) -> List[Medicine]:
    """Turn a decoded ``GET /medicines`` body into Medicine records."""
    if not isinstance(payload, list):
        raise SnapshotError(f"expected a JSON list of medicines, got {type(payload).__name__}")
    return [
        Medicine.from_dict(item) for item in payload
        if isinstance(item, dict) and usable_id(item.get("id"))
    ]


class MedicineApiClient:
    """Fetches ``GET <base_url>/medicines`` with the caller's bearer token."""

    def __init__(
        self,
        base_url: str = MEDICINES_API_URL,
        token: Optional[str] = None,
        session: Optional[requests.Session] = None,
        timeout: float = HTTP_TIMEOUT_SECONDS,
    ):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.session = session or requests.Session()
        self.timeout = timeout

    @property
    def medicines_url(self) -> str:
        return f"{self.base_url}/medicines"

    def _headers(self) -> dict:
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def fetch_medicines(self) -> List[Medicine]:
        try:
            resp = self.session.get(self.medicines_url, headers=self._headers(), timeout=self.timeout)
        except requests.RequestException as e:
            raise SnapshotError(f"request to {self.medicines_url} failed: {e}") from e
        if resp.status_code >= 400:
            raise SnapshotError(f"backend returned HTTP {resp.status_code} for {self.medicines_url}")
        try:
            payload = resp.json()
        except ValueError as e:
            raise SnapshotError(f"backend returned invalid JSON: {e}") from e
        return parse_snapshot(payload)

    def check_connection(self) -> bool:
        """True if the backend answers at all (any status below 500)."""
        try:
            resp = self.session.get(self.medicines_url, headers=self._headers(), timeout=self.timeout)
        except requests.RequestException:
            return False
        return resp.status_code < 500


class FileSnapshotProvider:
    """Reads the medicine list from a JSON file (offline / demo mode)."""

    def __init__(self, path: str):
        self.path = path

    def fetch_medicines(self) -> List[Medicine]:
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                payload = json.load(f)
        except (OSError, ValueError) as e:
            raise SnapshotError(f"could not read {self.path}: {e}") from e
        return parse_snapshot(payload)

    def check_connection(self) -> bool:
        try:
            with open(self.path, "r", encoding="utf-8"):
                return True
        except OSError:
            return False


def init_provider_factory() -> Callable[[Optional[str]], Any]:
    """Return ``token -> provider`` according to configuration."""
    if MEDICINES_FILE:
        print(f"[init] Reading medicine snapshots from {MEDICINES_FILE}")
        return lambda token: FileSnapshotProvider(MEDICINES_FILE)

    print(f"[init] Using medicines API at {MEDICINES_API_URL}")
    return lambda token: MedicineApiClient(MEDICINES_API_URL, token=token)
