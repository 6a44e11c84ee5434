"""
kya.client — Python SDK for a running KYA registry.

Usage:
    from kya.client import KyaClient

    with KyaClient("http://localhost:3001") as client:
        c = client.commitment("agent-42")
        assert client.verify(c)["valid"]
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

import httpx

from kya.models import Commitment, EvmCommitment


class KyaError(Exception):
    """Raised when the registry returns an error status."""
    def __init__(self, status: int, detail: str):
        self.status = status
        self.detail = detail
        super().__init__(f"[{status}] {detail}")


@dataclass
class KyaClient:
    """Lightweight client for the KYA registry API."""

    base_url: str = "http://localhost:3001"
    timeout: float = 10.0
    transport: Optional[httpx.BaseTransport] = None
    _http: httpx.Client = field(init=False, repr=False)

    def __post_init__(self):
        self._http = httpx.Client(base_url=self.base_url, timeout=self.timeout,
                                  transport=self.transport)

    def close(self):
        self._http.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    # -- internal --

    def _request(self, method: str, path: str, *, allow: tuple[int, ...] = (), **kwargs) -> dict:
        r = self._http.request(method, path, **kwargs)
        if r.status_code >= 400 and r.status_code not in allow:
            if r.headers.get("content-type", "").startswith("application/json"):
                body = r.json()
                detail = body.get("error") or body.get("detail") or r.text
            else:
                detail = r.text
            raise KyaError(r.status_code, str(detail))
        return r.json()

    # -- Agents --

    def agent(self, agent_id: str) -> dict:
        return self._request("GET", f"/api/agents/{agent_id}")

    def score(self, agent_id: str) -> dict:
        return self._request("GET", f"/api/agents/{agent_id}/score")

    # -- Commitments --

    def commitment(self, agent_id: str) -> Commitment:
        """Fetch a freshly issued HMAC commitment."""
        return Commitment.from_dict(self._request("GET", f"/api/agents/{agent_id}/commitment"))

    def evm_commitment(self, agent_id: str) -> EvmCommitment:
        """Fetch an EVM commitment. Raises KyaError(503) when the oracle has no key."""
        return EvmCommitment.from_dict(self._request("GET", f"/api/agents/{agent_id}/evm-commitment"))

    def verify(self, commitment: Commitment) -> dict:
        """Ask the registry to verify a commitment. Returns {valid, error?}."""
        return self._request("POST", "/api/agents/verify", allow=(400,), json={
            "payload_data": commitment.payload_data(),
            "signature": commitment.signature,
        })

    def lookup(self, commitment_hash: str) -> Commitment:
        """Audit lookup by content hash."""
        return Commitment.from_dict(self._request("GET", f"/api/commitments/{commitment_hash}"))
