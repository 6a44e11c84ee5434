"""
kya.evm — EVM-compatible commitments for on-chain verification.

The digest is keccak256(abi.encodePacked(agentId, score, tier, issuedAt,
expiresAt)) and is signed as an EIP-191 personal message, so a verifier
contract recovers the oracle address with:

    bytes32 h = keccak256(abi.encodePacked(agentId, score, tier, issuedAt, expiresAt));
    address signer = ECDSA.recover(MessageHashUtils.toEthSignedMessageHash(h), sig);

Whether the recovered address is trusted is the contract's allowlist
decision, not ours.
"""

from __future__ import annotations

import logging
import time
from datetime import datetime
from typing import Optional, Union

from eth_account import Account
from eth_account.messages import encode_defunct

from kya.commitment import InvalidReason, VerificationResult
from kya.errors import CommitmentError, SignerUnavailable, SigningFailed
from kya.models import AgentSnapshot, EvmCommitment
from kya.payload import EvmCommitmentPayload

logger = logging.getLogger(__name__)

VALIDITY_SECONDS = 3600
DEFAULT_VERIFIER_ADDRESS = "Not deployed yet"
DEFAULT_CHAIN = "base_sepolia"

Clock = Union[datetime, int, float, None]


def _unix(now: Clock) -> int:
    if now is None:
        return int(time.time())
    if isinstance(now, datetime):
        return int(now.timestamp())
    return int(now)


# ─── Key holder ────────────────────────────────────────────────────

class EvmSigner:
    """secp256k1 key holder. Signs 32-byte digests as personal messages."""

    def __init__(self, private_key: str):
        self._account = Account.from_key(private_key)

    @property
    def address(self) -> str:
        """Checksummed 0x address derived from the key."""
        return self._account.address

    def sign_digest(self, digest: bytes) -> str:
        """65-byte r||s||v signature, 0x-prefixed hex."""
        signed = self._account.sign_message(encode_defunct(primitive=digest))
        return "0x" + bytes(signed.signature).hex()

    @classmethod
    def generate(cls) -> "EvmSigner":
        return cls(Account.create().key)

    def __repr__(self):
        return f"EvmSigner({self.address})"


def load_signer(private_key: Optional[str]) -> Optional[EvmSigner]:
    """Signer for a configured key. Missing or unusable keys give None (degraded mode)."""
    if not private_key:
        return None
    try:
        return EvmSigner(private_key)
    except Exception as e:
        logger.error("EVM signer key rejected: %s", type(e).__name__)
        return None


# ─── Issuance ──────────────────────────────────────────────────────

def issue_evm_commitment(agent: AgentSnapshot, signer: Optional[EvmSigner], *,
                         now: Clock = None,
                         verifier_address: str = DEFAULT_VERIFIER_ADDRESS,
                         chain: str = DEFAULT_CHAIN) -> EvmCommitment:
    """Sign the agent's score and tier for on-chain consumption.

    Raises SignerUnavailable without a signer and SigningFailed when the
    signing call itself fails. Never returns a partially signed commitment.
    """
    if signer is None:
        raise SignerUnavailable(hint="Set EVM_SIGNER_PRIVATE_KEY in the environment")

    issued_at = _unix(now)
    payload = EvmCommitmentPayload(
        agent_id=agent.id,
        score=agent.reputation_score,
        tier_code=agent.tier.code,
        issued_at=issued_at,
        expires_at=issued_at + VALIDITY_SECONDS,
    )

    try:
        signature = signer.sign_digest(payload.digest())
        oracle_address = signer.address
    except Exception as e:
        logger.exception("Failed to sign EVM commitment for %s", agent.id)
        raise SigningFailed() from e

    return EvmCommitment(
        agent_id=payload.agent_id,
        score=payload.score,
        tier_code=payload.tier_code,
        issued_at=payload.issued_at,
        expires_at=payload.expires_at,
        signature=signature,
        oracle_address=oracle_address,
        verifier_address=verifier_address,
        chain=chain,
    )


# ─── Recovery / verification ───────────────────────────────────────

def recover_evm_signer(payload: EvmCommitmentPayload, signature: str) -> str:
    """Address that produced `signature` over the payload (what ecrecover returns)."""
    return Account.recover_message(encode_defunct(primitive=payload.digest()),
                                   signature=signature)


def verify_evm_commitment(commitment: EvmCommitment, *, now: Clock = None,
                          expected_signer: Optional[str] = None) -> VerificationResult:
    """Off-chain equivalent of the verifier contract's check.

    The recovered address must equal `expected_signer`, or the commitment's
    own oracle_address when no expected signer is given.
    """
    try:
        payload = commitment.payload
    except (CommitmentError, ValueError, TypeError):
        return VerificationResult(valid=False, reason=InvalidReason.MALFORMED_PAYLOAD)

    try:
        recovered = recover_evm_signer(payload, commitment.signature)
    except Exception:
        return VerificationResult(valid=False, reason=InvalidReason.INVALID_SIGNATURE)

    expected = expected_signer or commitment.oracle_address
    if not expected or recovered.lower() != expected.lower():
        return VerificationResult(valid=False, reason=InvalidReason.INVALID_SIGNATURE)

    if payload.expires_at < _unix(now):
        return VerificationResult(valid=False, reason=InvalidReason.EXPIRED)

    return VerificationResult(valid=True)


# ─── Scheme ────────────────────────────────────────────────────────

class EvmCommitmentScheme:
    """Asymmetric scheme for smart contracts and anyone who knows the oracle address."""
    name = "evm-personal-sign"

    def __init__(self, signer: Optional[EvmSigner],
                 verifier_address: str = DEFAULT_VERIFIER_ADDRESS,
                 chain: str = DEFAULT_CHAIN):
        self.signer = signer
        self.verifier_address = verifier_address
        self.chain = chain

    @property
    def available(self) -> bool:
        return self.signer is not None

    def issue(self, agent: AgentSnapshot, *, now: Clock = None) -> EvmCommitment:
        return issue_evm_commitment(agent, self.signer, now=now,
                                    verifier_address=self.verifier_address,
                                    chain=self.chain)

    def verify(self, commitment: EvmCommitment, *, now: Clock = None) -> VerificationResult:
        expected = self.signer.address if self.signer else None
        return verify_evm_commitment(commitment, now=now, expected_signer=expected)
