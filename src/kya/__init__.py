"""kya — Signed reputation commitments for autonomous agents."""

__version__ = "0.2.0"

from kya.tiers import Tier, best_tier, parse_tier
from kya.errors import (
    CommitmentError, AgentNotFound, InvalidAgentId,
    SignerUnavailable, SigningFailed,
)
from kya.payload import CommitmentPayload, EvmCommitmentPayload
from kya.models import AgentSnapshot, Commitment, EvmCommitment
from kya.audit import AuditSink, MemoryAuditSink, SQLiteAuditSink, NullAuditSink
from kya.commitment import (
    issue_commitment, verify_commitment, verify_payload_data,
    InvalidReason, VerificationResult,
    CommitmentScheme, HmacCommitmentScheme,
)
from kya.evm import (
    EvmSigner, EvmCommitmentScheme,
    issue_evm_commitment, recover_evm_signer, verify_evm_commitment,
)
from kya.directory import AgentDirectory, InMemoryAgentDirectory

__all__ = [
    "__version__",
    "Tier",
    "best_tier",
    "parse_tier",
    "CommitmentError",
    "AgentNotFound",
    "InvalidAgentId",
    "SignerUnavailable",
    "SigningFailed",
    "CommitmentPayload",
    "EvmCommitmentPayload",
    "AgentSnapshot",
    "Commitment",
    "EvmCommitment",
    "AuditSink",
    "MemoryAuditSink",
    "SQLiteAuditSink",
    "NullAuditSink",
    "issue_commitment",
    "verify_commitment",
    "verify_payload_data",
    "InvalidReason",
    "VerificationResult",
    "CommitmentScheme",
    "HmacCommitmentScheme",
    "EvmSigner",
    "EvmCommitmentScheme",
    "issue_evm_commitment",
    "recover_evm_signer",
    "verify_evm_commitment",
    "AgentDirectory",
    "InMemoryAgentDirectory",
]
