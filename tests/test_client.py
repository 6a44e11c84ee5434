"""Tests for the kya SDK client against a mocked transport."""

import json

import httpx
import pytest

from kya.client import KyaClient, KyaError
from kya.commitment import issue_commitment
from kya.evm import issue_evm_commitment

SECRET = "test-secret"


@pytest.fixture
def routes(gold_agent, platinum_agent, signer, fixed_now):
    commitment = issue_commitment(gold_agent, SECRET, now=fixed_now)
    evm = issue_evm_commitment(platinum_agent, signer, now=fixed_now)
    return {
        ("GET", "/api/agents/a1"): (200, gold_agent.to_dict()),
        ("GET", "/api/agents/a1/score"): (200, {"id": "a1", "score": 750, "tier": "GOLD"}),
        ("GET", "/api/agents/a1/commitment"): (200, commitment.to_dict()),
        ("GET", "/api/agents/agent-42/evm-commitment"): (200, evm.to_dict()),
        ("GET", f"/api/commitments/{commitment.content_hash}"): (200, commitment.to_dict()),
        ("GET", "/api/agents/nobody/evm-commitment"): (
            503, {"error": "EVM signer not configured", "hint": "Set EVM_SIGNER_PRIVATE_KEY"}),
    }


@pytest.fixture
def client(routes):
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        if request.url.path == "/api/agents/verify":
            body = json.loads(request.content)
            if body["payload_data"]["score"] == 750:
                return httpx.Response(200, json={"valid": True})
            return httpx.Response(400, json={"valid": False, "error": "Invalid signature"})
        status, body = routes.get((request.method, request.url.path),
                                  (404, {"error": "Agent not found"}))
        return httpx.Response(status, json=body)

    with KyaClient("http://registry.test", transport=httpx.MockTransport(handler)) as c:
        c.seen = seen
        yield c


def test_agent(client):
    assert client.agent("a1")["tier"] == "GOLD"


def test_score(client):
    assert client.score("a1")["score"] == 750


def test_not_found(client):
    with pytest.raises(KyaError) as exc:
        client.agent("ghost")
    assert exc.value.status == 404
    assert exc.value.detail == "Agent not found"


def test_commitment_parsed(client):
    c = client.commitment("a1")
    assert c.signature == "a922c7f7cc88986085e920952932822d1310ed5162c8cf113828599169ea0fc1"
    assert c.payload.canonical().startswith("a1:750:GOLD:")


def test_evm_commitment(client, signer):
    c = client.evm_commitment("agent-42")
    assert c.tier_code == 3
    assert c.oracle_address == signer.address


def test_evm_unavailable(client):
    with pytest.raises(KyaError) as exc:
        client.evm_commitment("nobody")
    assert exc.value.status == 503
    assert "EVM signer not configured" in str(exc.value)


def test_verify_sends_payload_data(client):
    c = client.commitment("a1")
    assert client.verify(c) == {"valid": True}
    body = json.loads(client.seen[-1].content)
    assert set(body) == {"payload_data", "signature"}
    assert body["payload_data"]["timestamp"] == c.issued_at


def test_verify_invalid_is_not_an_exception(client):
    from dataclasses import replace

    forged = replace(client.commitment("a1"), score=751)
    assert client.verify(forged) == {"valid": False, "error": "Invalid signature"}


def test_lookup(client):
    c = client.commitment("a1")
    assert client.lookup(c.content_hash) == c
