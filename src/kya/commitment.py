"""
kya.commitment — HMAC commitments: issuance and stateless verification.

Issuance signs the canonical payload string with HMAC-SHA256 under a
server-held secret and records the result with an audit sink. Verification
rebuilds the canonical string from the fields the caller supplies, recomputes
the MAC, and only then looks at expiry. Nothing is cached: every call
recomputes from raw fields.

Usage:
    scheme = HmacCommitmentScheme(secret="...", sink=MemoryAuditSink())
    c = scheme.issue(agent)
    result = scheme.verify(c.payload, c.signature)
    assert result.valid
"""

from __future__ import annotations

import hashlib
import hmac
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional, Protocol, Union

from kya.audit import AuditSink
from kya.errors import CommitmentError
from kya.models import AgentSnapshot, Commitment
from kya.payload import CommitmentPayload, format_timestamp, parse_timestamp

logger = logging.getLogger(__name__)

VALIDITY = timedelta(hours=1)
REQUIRED_FIELDS = ("agent_id", "score", "tier", "timestamp", "expires_at")

Secret = Union[str, bytes]


def _key(secret: Secret) -> bytes:
    return secret.encode("utf-8") if isinstance(secret, str) else bytes(secret)


def sign_payload(payload: CommitmentPayload, secret: Secret) -> str:
    """HMAC-SHA256 of the canonical payload, lowercase hex."""
    return hmac.new(_key(secret), payload.canonical_bytes(), hashlib.sha256).hexdigest()


# ─── Issuance ──────────────────────────────────────────────────────

def issue_commitment(agent: AgentSnapshot, secret: Secret, *,
                     now: Optional[datetime] = None,
                     sink: Optional[AuditSink] = None) -> Commitment:
    """Sign the agent's current score and tier for the next hour.

    Raises InvalidAgentId when the id is empty or contains the delimiter.
    A failing sink is logged and ignored.
    """
    issued = now or datetime.now(timezone.utc)
    payload = CommitmentPayload(
        agent_id=agent.id,
        score=agent.reputation_score,
        tier=agent.tier,
        issued_at=format_timestamp(issued),
        expires_at=format_timestamp(issued + VALIDITY),
    )
    commitment = Commitment(
        agent_id=payload.agent_id,
        score=payload.score,
        tier=payload.tier,
        issued_at=payload.issued_at,
        expires_at=payload.expires_at,
        content_hash=payload.content_hash(),
        signature=sign_payload(payload, secret),
    )

    if sink is not None:
        record_commitment(sink, commitment)

    return commitment


def record_commitment(sink: AuditSink, commitment: Commitment) -> bool:
    """Write to the audit trail. Failures are logged, never raised."""
    try:
        sink.record(commitment)
    except Exception as e:
        logger.warning("Failed to record commitment %s for %s: %s",
                       commitment.content_hash[:16], commitment.agent_id, e)
        return False
    return True


# ─── Verification ──────────────────────────────────────────────────

class InvalidReason(str, Enum):
    """Why a commitment was rejected. Values are the messages shown to callers."""
    MISSING_FIELDS = "Missing payload_data or signature"
    MALFORMED_PAYLOAD = "Malformed payload"
    INVALID_SIGNATURE = "Invalid signature"
    EXPIRED = "Commitment expired"


@dataclass(frozen=True)
class VerificationResult:
    valid: bool
    reason: Optional[InvalidReason] = None

    @property
    def error(self) -> Optional[str]:
        return self.reason.value if self.reason else None

    def to_dict(self) -> dict:
        if self.valid:
            return {"valid": True}
        return {"valid": False, "error": self.error}

    def __bool__(self) -> bool:
        return self.valid


VALID = VerificationResult(valid=True)


def _reject(reason: InvalidReason) -> VerificationResult:
    return VerificationResult(valid=False, reason=reason)


def verify_commitment(payload: CommitmentPayload, signature: str, secret: Secret, *,
                      now: Optional[datetime] = None) -> VerificationResult:
    """Check `signature` against the payload, then check expiry.

    Never raises for a bad commitment; the reason is in the result.
    """
    if not signature or not isinstance(signature, str):
        return _reject(InvalidReason.MISSING_FIELDS)

    expected = sign_payload(payload, secret)
    if not hmac.compare_digest(expected.encode("ascii"), signature.encode("utf-8")):
        return _reject(InvalidReason.INVALID_SIGNATURE)

    current = now or datetime.now(timezone.utc)
    if current.tzinfo is None:
        current = current.replace(tzinfo=timezone.utc)
    try:
        expires = parse_timestamp(payload.expires_at)
    except ValueError:
        # Signed but unreadable: fail closed
        return _reject(InvalidReason.EXPIRED)
    if expires < current:
        return _reject(InvalidReason.EXPIRED)

    return VALID


def verify_payload_data(payload_data: Optional[dict], signature: Optional[str],
                        secret: Secret, *, now: Optional[datetime] = None) -> VerificationResult:
    """Verify the wire shape {agent_id, score, tier, timestamp, expires_at}.

    Missing fields are rejected before any cryptographic work.
    """
    if not isinstance(payload_data, dict) or not payload_data or not signature:
        return _reject(InvalidReason.MISSING_FIELDS)
    if any(payload_data.get(k) in (None, "") for k in REQUIRED_FIELDS):
        return _reject(InvalidReason.MISSING_FIELDS)

    try:
        payload = CommitmentPayload.from_dict(payload_data)
    except (CommitmentError, ValueError, TypeError):
        return _reject(InvalidReason.MALFORMED_PAYLOAD)

    return verify_commitment(payload, signature, secret, now=now)


# ─── Schemes ───────────────────────────────────────────────────────

class CommitmentScheme(Protocol):
    """A way of turning an agent snapshot into a signed commitment."""
    name: str

    def issue(self, agent: AgentSnapshot, *, now=None): ...


class HmacCommitmentScheme:
    """Symmetric scheme for off-chain consumers holding (or trusting) the secret."""
    name = "hmac-sha256"

    def __init__(self, secret: Secret, sink: Optional[AuditSink] = None):
        self._secret = secret
        self.sink = sink

    def issue(self, agent: AgentSnapshot, *, now: Optional[datetime] = None,
              record: bool = True) -> Commitment:
        """Sign a commitment. With record=False the caller writes it via `record`."""
        return issue_commitment(agent, self._secret, now=now, sink=self.sink if record else None)

    def record(self, commitment: Commitment) -> bool:
        if self.sink is None:
            return False
        return record_commitment(self.sink, commitment)

    def verify(self, payload: CommitmentPayload, signature: str, *,
               now: Optional[datetime] = None) -> VerificationResult:
        return verify_commitment(payload, signature, self._secret, now=now)

    def verify_payload_data(self, payload_data: Optional[dict], signature: Optional[str], *,
                            now: Optional[datetime] = None) -> VerificationResult:
        return verify_payload_data(payload_data, signature, self._secret, now=now)
