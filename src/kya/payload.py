"""
kya.payload — Canonical signing payloads for both commitment schemes.

HMAC scheme: the fields are joined with ":" in the fixed order
    agent_id:score:tier:issued_at:expires_at
and that exact string is both hashed (SHA-256) and MAC'd (HMAC-SHA256).
Score is an integer and tier a fixed word, and agent ids may not contain the
delimiter, so the join is unambiguous.

EVM scheme: the fields are packed the way Solidity's abi.encodePacked packs
    (string agentId, uint16 score, uint8 tier, uint64 issuedAt, uint64 expiresAt)
and hashed with keccak256. Field order and widths are part of the on-chain
contract.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from datetime import datetime, timezone

from eth_abi.packed import encode_packed
from eth_utils import keccak

from kya.errors import InvalidAgentId
from kya.tiers import Tier, parse_tier

DELIMITER = ":"
MAX_SCORE = 1000
EVM_FIELD_TYPES = ("string", "uint16", "uint8", "uint64", "uint64")


# ─── Timestamps ────────────────────────────────────────────────────

def format_timestamp(dt: datetime) -> str:
    """UTC, millisecond precision, Z suffix: 2024-01-01T00:00:00.000Z"""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt = dt.astimezone(timezone.utc)
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp. Naive values are taken as UTC."""
    text = value.strip()
    if text.endswith("Z") or text.endswith("z"):
        text = text[:-1] + "+00:00"
    dt = datetime.fromisoformat(text)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def require_agent_id(agent_id: str) -> str:
    if not isinstance(agent_id, str) or not agent_id:
        raise InvalidAgentId("Agent id must be a non-empty string")
    return agent_id


def check_agent_id(agent_id: str) -> str:
    """Agent id usable in the colon-joined HMAC payload."""
    require_agent_id(agent_id)
    if DELIMITER in agent_id:
        raise InvalidAgentId(f"Agent id may not contain '{DELIMITER}'")
    return agent_id


def check_score(score: int) -> int:
    if isinstance(score, bool) or not isinstance(score, int):
        raise ValueError(f"Score must be an integer, got {score!r}")
    if not 0 <= score <= MAX_SCORE:
        raise ValueError(f"Score {score} outside [0, {MAX_SCORE}]")
    return score


# ─── HMAC payload ──────────────────────────────────────────────────

@dataclass(frozen=True)
class CommitmentPayload:
    """Fields covered by an HMAC commitment, timestamps as signed strings."""
    agent_id: str
    score: int
    tier: Tier
    issued_at: str
    expires_at: str

    def __post_init__(self):
        check_agent_id(self.agent_id)
        check_score(self.score)
        object.__setattr__(self, "tier", parse_tier(self.tier))
        for name in ("issued_at", "expires_at"):
            if not isinstance(getattr(self, name), str):
                raise TypeError(f"{name} must be an ISO-8601 string")

    def canonical(self) -> str:
        return DELIMITER.join((
            self.agent_id,
            str(self.score),
            self.tier.value,
            self.issued_at,
            self.expires_at,
        ))

    def canonical_bytes(self) -> bytes:
        return self.canonical().encode("utf-8")

    def content_hash(self) -> str:
        return hashlib.sha256(self.canonical_bytes()).hexdigest()

    @classmethod
    def from_dict(cls, data: dict) -> "CommitmentPayload":
        """Build from the wire shape {agent_id, score, tier, timestamp, expires_at}."""
        return cls(
            agent_id=data["agent_id"],
            score=data["score"],
            tier=data["tier"],
            issued_at=data["timestamp"],
            expires_at=data["expires_at"],
        )


# ─── EVM payload ───────────────────────────────────────────────────

@dataclass(frozen=True)
class EvmCommitmentPayload:
    """Fields covered by an EVM commitment, timestamps in Unix seconds."""
    agent_id: str
    score: int
    tier_code: int
    issued_at: int
    expires_at: int

    def __post_init__(self):
        # packed encoding has no delimiter, so any non-empty id is unambiguous
        require_agent_id(self.agent_id)
        check_score(self.score)
        Tier.from_code(self.tier_code)
        for name in ("issued_at", "expires_at"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value < 2 ** 64:
                raise ValueError(f"{name} must be a uint64, got {value!r}")

    @property
    def tier(self) -> Tier:
        return Tier.from_code(self.tier_code)

    def packed(self) -> bytes:
        """abi.encodePacked(agentId, score, tier, issuedAt, expiresAt)"""
        return encode_packed(
            list(EVM_FIELD_TYPES),
            [self.agent_id, self.score, self.tier_code, self.issued_at, self.expires_at],
        )

    def digest(self) -> bytes:
        """keccak256 of the packed payload (32 bytes)."""
        return keccak(self.packed())
