"""
kya.config — Service settings read from the environment.

    SIGNING_SECRET          HMAC key for off-chain commitments
    EVM_SIGNER_PRIVATE_KEY  secp256k1 key; unset disables /evm-commitment (503)
    KYA_VERIFIER_ADDRESS    deployed verifier contract, echoed in EVM commitments
    KYA_CHAIN               chain label, echoed in EVM commitments
    KYA_AUDIT_DB            SQLite audit database; unset keeps audit in memory
    KYA_AGENTS_FILE         JSON file seeding the agent directory
    ALLOWED_ORIGINS         comma separated CORS origins
    KYA_PRODUCTION          hide /docs and /redoc
    LOG_LEVEL               logging level
"""

import logging
import os
from dataclasses import dataclass, field
from typing import Optional

from kya.evm import DEFAULT_CHAIN, DEFAULT_VERIFIER_ADDRESS

logger = logging.getLogger(__name__)

DEV_SIGNING_SECRET = "dev-signing-secret-do-not-use-in-prod"


def _origins(raw: str) -> list[str]:
    return [o.strip() for o in raw.split(",") if o.strip()]


@dataclass
class Settings:
    signing_secret: str = DEV_SIGNING_SECRET
    evm_private_key: Optional[str] = field(default=None, repr=False)
    verifier_address: str = DEFAULT_VERIFIER_ADDRESS
    chain: str = DEFAULT_CHAIN
    audit_db: Optional[str] = None
    agents_file: Optional[str] = None
    allowed_origins: list[str] = field(default_factory=list)
    production: bool = False
    log_level: str = "INFO"

    @property
    def uses_dev_secret(self) -> bool:
        return self.signing_secret == DEV_SIGNING_SECRET

    @classmethod
    def from_env(cls) -> "Settings":
        settings = cls(
            signing_secret=os.environ.get("SIGNING_SECRET", "") or DEV_SIGNING_SECRET,
            evm_private_key=os.environ.get("EVM_SIGNER_PRIVATE_KEY") or None,
            verifier_address=os.environ.get("KYA_VERIFIER_ADDRESS", DEFAULT_VERIFIER_ADDRESS),
            chain=os.environ.get("KYA_CHAIN", DEFAULT_CHAIN),
            audit_db=os.environ.get("KYA_AUDIT_DB") or None,
            agents_file=os.environ.get("KYA_AGENTS_FILE") or None,
            allowed_origins=_origins(os.environ.get("ALLOWED_ORIGINS", "")),
            production=bool(os.environ.get("KYA_PRODUCTION")),
            log_level=os.environ.get("LOG_LEVEL", "INFO"),
        )
        if settings.uses_dev_secret:
            logger.warning("SIGNING_SECRET not set; using the development secret")
        return settings
