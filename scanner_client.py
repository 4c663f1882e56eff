"""
scanner_client.py

Client for handheld scanner terminals talking to the stock ledger API.

What it provides:
- A small requests-based client for the ledger HTTP API
- Helpers for the scanner flows:
  - Putaway (single item, or a batch of items into one location)
  - Remove stock lines (optionally pinned to the scanned location)
  - Move stock lines between two locations
  - Undo one transaction
  - List what is stored at a location

Environment variables expected:
- STOCK_LEDGER_API_URL: e.g. "https://your-domain.com/api"

Optional:
- STOCK_LEDGER_USER_ID: operator id recorded on every movement

Dependencies:
- requests (pip install requests)
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple

import requests


class ApiError(RuntimeError):
    """Non-2xx response. `code` is the ledger error code ("insufficient_stock", ...)."""

    def __init__(self, status_code: int, code: str, detail: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(f"{code} ({status_code}): {detail}")
        self.status_code = status_code
        self.code = code
        self.detail = detail
        self.context = context or {}


def _lines(pairs: Iterable[Tuple[str, int]], key: str) -> List[Dict[str, Any]]:
    return [{key: str(ref), "quantity": int(qty)} for ref, qty in pairs]


@dataclass
class StockLedgerClient:
    base_url: str
    user_id: Optional[str] = None
    timeout: float = 30
    session: requests.Session = field(default_factory=requests.Session)

    def _request(self, method: str, path: str, *, json: Any = None, params: Dict[str, Any] | None = None) -> Any:
        url = f"{self.base_url.rstrip('/')}/{path.lstrip('/')}"
        resp = self.session.request(
            method,
            url,
            json=json,
            params={k: v for k, v in (params or {}).items() if v is not None} or None,
            headers={"Accept": "application/json"},
            timeout=self.timeout,
        )

        if resp.status_code >= 400:
            try:
                body = resp.json()
            except ValueError:
                body = {}
            if not isinstance(body, dict):
                body = {}
            raise ApiError(
                resp.status_code,
                str(body.get("error") or "http_error"),
                str(body.get("detail") or resp.text),
                body.get("context") if isinstance(body.get("context"), dict) else None,
            )

        if resp.status_code == 204:
            return None
        return resp.json()

    # ----------------------------
    # Movement helpers
    # ----------------------------

    def putaway(self, *, item_id: str, location_label: str, quantity: int) -> Any:
        """Calls: POST /stock/putaway (the location is created on first use)."""
        payload = {
            "item_id": str(item_id),
            "location_label": location_label,
            "quantity": int(quantity),
            "user_id": self.user_id,
        }
        return self._request("POST", "/stock/putaway", json=payload)

    def putaway_batch(self, *, location_label: str, items: Iterable[Tuple[str, int]]) -> Any:
        """
        Calls: POST /stock/putaway-batch
        items: (item_id, quantity) pairs. Either every line is stored or none is.
        """
        payload = {
            "location_label": location_label,
            "items": _lines(items, "item_id"),
            "user_id": self.user_id,
        }
        return self._request("POST", "/stock/putaway-batch", json=payload)

    def remove(self, *, items: Iterable[Tuple[str, int]], location_label: Optional[str] = None) -> Any:
        """Calls: POST /stock/remove with (stock_id, quantity) pairs."""
        payload = {
            "items": _lines(items, "stock_id"),
            "location_label": location_label,
            "user_id": self.user_id,
        }
        return self._request("POST", "/stock/remove", json=payload)

    def move(self, *, from_location_label: str, to_location_label: str, items: Iterable[Tuple[str, int]]) -> Any:
        """Calls: POST /stock/move with (stock_id, quantity) pairs taken from the source location."""
        payload = {
            "from_location_label": from_location_label,
            "to_location_label": to_location_label,
            "items": _lines(items, "stock_id"),
            "user_id": self.user_id,
        }
        return self._request("POST", "/stock/move", json=payload)

    def undo(self, transaction_id: str) -> Any:
        return self._request(
            "POST", f"/transactions/{transaction_id}/undo", params={"user_id": self.user_id}
        )

    def stock_at(self, location_label: str) -> Any:
        return self._request("GET", f"/stock/location/{location_label}")


def make_client_from_env() -> StockLedgerClient:
    base_url = os.getenv("STOCK_LEDGER_API_URL", "").strip()
    user_id = os.getenv("STOCK_LEDGER_USER_ID", "").strip() or None

    if not base_url:
        raise RuntimeError("Missing STOCK_LEDGER_API_URL")

    return StockLedgerClient(base_url=base_url, user_id=user_id)


if __name__ == "__main__":
    client = make_client_from_env()
    print(client.stock_at(os.getenv("STOCK_LEDGER_LOCATION", "A-01-01")))
