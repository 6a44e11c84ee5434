"""
kya API — Commitment endpoints for the agent registry.

    GET  /api/health
    GET  /api/agents                          — list agents
    POST /api/agents/search                   — filter by tier / min_score / capability
    GET  /api/agents/{agent_id}               — agent snapshot
    GET  /api/agents/{agent_id}/score         — lightweight score check
    GET  /api/agents/{agent_id}/commitment    — HMAC-signed commitment
    GET  /api/agents/{agent_id}/evm-commitment — ECDSA commitment for on-chain use (503 without key)
    GET  /api/agents/{agent_id}/commitments   — audit history
    POST /api/agents/verify  (alias /api/verify) — stateless HMAC verification
    POST /api/verify/evm                      — recover and check an EVM commitment
    GET  /api/commitments/{commitment_hash}   — audit lookup by content hash
"""

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, FastAPI, HTTPException, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from kya import __version__
from kya.audit import AuditSink, open_sink
from kya.commitment import CommitmentScheme, HmacCommitmentScheme, InvalidReason
from kya.config import Settings
from kya.directory import AgentDirectory, InMemoryAgentDirectory
from kya.errors import SignerUnavailable
from kya.evm import EvmCommitmentScheme, EvmSigner, load_signer
from kya.models import AgentSnapshot, EvmCommitment
from kya.security import (
    apply_security, limiter, sanitize_input, setup_structured_logging, validation_error_handler,
)
from kya.tiers import Tier

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Pydantic models
# ---------------------------------------------------------------------------

class AgentResponse(BaseModel):
    id: str
    name: str = ""
    reputation_score: int = Field(ge=0, le=1000)
    tier: Tier
    capabilities: list[str] = []


class ScoreResponse(BaseModel):
    id: str
    score: int
    tier: Tier


class CommitmentResponse(BaseModel):
    """HMAC commitment in wire shape."""
    agent_id: str
    score: int
    tier: Tier
    timestamp: str
    expires_at: str
    commitment_hash: str
    signature: str


class EvmCommitmentResponse(BaseModel):
    agent_id: str
    score: int
    tier: int = Field(ge=0, le=3)
    tier_name: Tier
    timestamp: int
    expires_at: int
    signature: str
    oracle_address: str
    verifier_address: str
    chain: str


class VerifyRequest(BaseModel):
    """Untyped; verify_payload_data sorts missing from malformed fields."""
    payload_data: Any = None
    signature: Any = None
    commitment_hash: Optional[str] = None


class VerifyResponse(BaseModel):
    valid: bool
    error: Optional[str] = None


class EvmVerifyRequest(BaseModel):
    agent_id: str
    score: int
    tier: int
    timestamp: int
    expires_at: int
    signature: str
    oracle_address: str = ""


class SearchRequest(BaseModel):
    tier: Optional[Tier] = None
    min_score: Optional[int] = Field(None, ge=0, le=1000)
    capability: Optional[str] = Field(None, max_length=200)


class HealthResponse(BaseModel):
    status: str = "ok"
    version: str = __version__
    evm_signer: bool = False
    agents: int = 0
    schemes: list[str] = []


# ---------------------------------------------------------------------------
# Service container (one per app)
# ---------------------------------------------------------------------------

@dataclass
class CommitmentService:
    directory: AgentDirectory
    hmac: HmacCommitmentScheme
    evm: EvmCommitmentScheme
    sink: AuditSink

    @property
    def schemes(self) -> list[CommitmentScheme]:
        """Schemes that can issue right now."""
        schemes: list[CommitmentScheme] = [self.hmac]
        if self.evm.available:
            schemes.append(self.evm)
        return schemes


def build_service(settings: Settings, *,
                  directory: Optional[AgentDirectory] = None,
                  sink: Optional[AuditSink] = None,
                  signer: Optional[EvmSigner] = None) -> CommitmentService:
    """Wire collaborators from settings, letting callers inject any of them."""
    if directory is None:
        if settings.agents_file:
            directory = InMemoryAgentDirectory.load_json(settings.agents_file)
        else:
            directory = InMemoryAgentDirectory()
    if sink is None:
        sink = open_sink(settings.audit_db)
    if signer is None:
        signer = load_signer(settings.evm_private_key)
    return CommitmentService(
        directory=directory,
        hmac=HmacCommitmentScheme(settings.signing_secret, sink=sink),
        evm=EvmCommitmentScheme(signer, verifier_address=settings.verifier_address,
                                chain=settings.chain),
        sink=sink,
    )


def get_service(request: Request) -> CommitmentService:
    return request.app.state.kya


def _agent(service: CommitmentService, agent_id: str) -> AgentSnapshot:
    sanitize_input(agent_id, "agent_id")
    return service.directory.require(agent_id)


def _verify_response(valid: bool, error: Optional[str]) -> JSONResponse:
    body = VerifyResponse(valid=valid, error=error).model_dump(exclude_none=True)
    return JSONResponse(status_code=200 if valid else 400, content=body)


VERIFY_PATHS = frozenset({"/api/agents/verify", "/api/verify", "/api/verify/evm"})


async def verify_validation_handler(request: Request, exc: RequestValidationError):
    """Verify routes answer unparsable bodies with {valid: false, error}."""
    if request.url.path not in VERIFY_PATHS:
        return await validation_error_handler(request, exc)
    missing = any(e.get("type") == "missing" for e in exc.errors())
    reason = InvalidReason.MISSING_FIELDS if missing else InvalidReason.MALFORMED_PAYLOAD
    return _verify_response(False, reason.value)


# ---------------------------------------------------------------------------
# Router
# ---------------------------------------------------------------------------

router = APIRouter(prefix="/api")


@router.get("/health", response_model=HealthResponse)
async def health(service: CommitmentService = Depends(get_service)):
    """Health check — always returns 200 if the service is up."""
    return HealthResponse(evm_signer=service.evm.available,
                          agents=service.directory.count(),
                          schemes=[s.name for s in service.schemes])


@router.get("/agents", response_model=list[AgentResponse])
async def list_agents(
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    service: CommitmentService = Depends(get_service),
):
    return [a.to_dict() for a in service.directory.list(limit=limit, offset=offset)]


@router.post("/agents/search", response_model=list[AgentResponse])
async def search_agents(body: SearchRequest, service: CommitmentService = Depends(get_service)):
    if body.capability:
        sanitize_input(body.capability, "capability")
    agents = service.directory.search(tier=body.tier, min_score=body.min_score,
                                      capability=body.capability)
    return [a.to_dict() for a in agents]


@router.post("/agents/verify", response_model=VerifyResponse)
@router.post("/verify", response_model=VerifyResponse, include_in_schema=False)
@limiter.limit("120/minute")
async def verify_commitment(request: Request, body: VerifyRequest,
                            service: CommitmentService = Depends(get_service)):
    """Stateless verification: the caller resupplies every signed field."""
    result = service.hmac.verify_payload_data(body.payload_data, body.signature)
    if not result.valid:
        data = body.payload_data if isinstance(body.payload_data, dict) else {}
        agent_id = data.get("agent_id", "")
        logger.info("commitment rejected",
                    extra={"reason": result.reason.name, "agent_id": str(agent_id)[:64]})
    return _verify_response(result.valid, result.error)


@router.post("/verify/evm", response_model=VerifyResponse)
@limiter.limit("120/minute")
async def verify_evm(request: Request, body: EvmVerifyRequest,
                     service: CommitmentService = Depends(get_service)):
    """Recover the signer of an EVM commitment and compare it with our oracle."""
    if not service.evm.available and not body.oracle_address:
        return _verify_response(False, InvalidReason.MISSING_FIELDS.value)
    commitment = EvmCommitment(
        agent_id=body.agent_id,
        score=body.score,
        tier_code=body.tier,
        issued_at=body.timestamp,
        expires_at=body.expires_at,
        signature=body.signature,
        oracle_address=body.oracle_address,
    )
    result = service.evm.verify(commitment)
    return _verify_response(result.valid, result.error)


@router.get("/agents/{agent_id}", response_model=AgentResponse)
async def get_agent(agent_id: str, service: CommitmentService = Depends(get_service)):
    return _agent(service, agent_id).to_dict()


@router.get("/agents/{agent_id}/score", response_model=ScoreResponse)
async def get_score(agent_id: str, service: CommitmentService = Depends(get_service)):
    agent = _agent(service, agent_id)
    return ScoreResponse(id=agent.id, score=agent.reputation_score, tier=agent.tier)


@router.get("/agents/{agent_id}/commitment", response_model=CommitmentResponse)
@limiter.limit("60/minute")
async def get_commitment(request: Request, agent_id: str, background_tasks: BackgroundTasks,
                         service: CommitmentService = Depends(get_service)):
    """Issue a fresh HMAC commitment, valid for one hour."""
    agent = _agent(service, agent_id)
    commitment = service.hmac.issue(agent, record=False)
    # Sync task, so the audit write runs in the threadpool
    background_tasks.add_task(service.hmac.record, commitment)
    return commitment.to_dict()


@router.get("/agents/{agent_id}/evm-commitment", response_model=EvmCommitmentResponse)
@limiter.limit("60/minute")
async def get_evm_commitment(request: Request, agent_id: str,
                             service: CommitmentService = Depends(get_service)):
    """Issue an ECDSA commitment for on-chain verification."""
    if not service.evm.available:
        # Checked before the lookup: an unconfigured oracle answers 503 for every id
        raise SignerUnavailable(hint="Set EVM_SIGNER_PRIVATE_KEY in the environment")
    agent = _agent(service, agent_id)
    return service.evm.issue(agent).to_dict()


@router.get("/agents/{agent_id}/commitments", response_model=list[CommitmentResponse])
async def commitment_history(agent_id: str, limit: int = Query(50, ge=1, le=200),
                             service: CommitmentService = Depends(get_service)):
    sanitize_input(agent_id, "agent_id")
    return [c.to_dict() for c in service.sink.history(agent_id, limit=limit)]


@router.get("/commitments/{commitment_hash}", response_model=CommitmentResponse)
async def get_commitment_by_hash(commitment_hash: str,
                                 service: CommitmentService = Depends(get_service)):
    """Audit lookup. Verification never depends on this."""
    commitment = service.sink.get(commitment_hash.lower())
    if commitment is None:
        raise HTTPException(status_code=404, detail="Commitment not found")
    return commitment.to_dict()


# ---------------------------------------------------------------------------
# App factory
# ---------------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    service: CommitmentService = app.state.kya
    try:
        service.sink.close()
    except Exception as e:
        logger.warning("Audit sink close failed: %s", e)


def create_app(settings: Optional[Settings] = None, *,
               directory: Optional[AgentDirectory] = None,
               sink: Optional[AuditSink] = None,
               signer: Optional[EvmSigner] = None) -> FastAPI:
    """Create the FastAPI app. Collaborators not passed in come from settings."""
    settings = settings or Settings.from_env()
    setup_structured_logging(settings.log_level)

    app = FastAPI(
        title="KYA Registry API",
        description="Signed score and tier commitments for autonomous agents",
        version=__version__,
        lifespan=lifespan,
        docs_url=None if settings.production else "/docs",
        redoc_url=None if settings.production else "/redoc",
    )
    app.state.kya = build_service(settings, directory=directory, sink=sink, signer=signer)
    apply_security(app, settings.allowed_origins or None)
    app.add_exception_handler(RequestValidationError, verify_validation_handler)
    app.include_router(router)

    if not app.state.kya.evm.available:
        logger.info("EVM signer not configured; /evm-commitment will return 503")
    return app
