"""Tests for kya.config."""

from kya.config import DEV_SIGNING_SECRET, Settings

ENV_VARS = ("SIGNING_SECRET", "EVM_SIGNER_PRIVATE_KEY", "KYA_VERIFIER_ADDRESS", "KYA_CHAIN",
            "KYA_AUDIT_DB", "KYA_AGENTS_FILE", "ALLOWED_ORIGINS", "KYA_PRODUCTION")


def _clear(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults(monkeypatch, caplog):
    _clear(monkeypatch)
    s = Settings.from_env()
    assert s.signing_secret == DEV_SIGNING_SECRET
    assert s.uses_dev_secret
    assert s.evm_private_key is None
    assert s.verifier_address == "Not deployed yet"
    assert s.chain == "base_sepolia"
    assert s.audit_db is None
    assert s.allowed_origins == []
    assert s.production is False
    assert any("development secret" in r.getMessage() for r in caplog.records)


def test_from_env(monkeypatch):
    _clear(monkeypatch)
    monkeypatch.setenv("SIGNING_SECRET", "s3cret")
    monkeypatch.setenv("EVM_SIGNER_PRIVATE_KEY", "0xabc")
    monkeypatch.setenv("KYA_VERIFIER_ADDRESS", "0x" + "22" * 20)
    monkeypatch.setenv("KYA_CHAIN", "base")
    monkeypatch.setenv("KYA_AUDIT_DB", "/tmp/audit.db")
    monkeypatch.setenv("ALLOWED_ORIGINS", "https://a.example, https://b.example,")
    monkeypatch.setenv("KYA_PRODUCTION", "1")
    s = Settings.from_env()
    assert s.signing_secret == "s3cret"
    assert not s.uses_dev_secret
    assert s.evm_private_key == "0xabc"
    assert s.verifier_address == "0x" + "22" * 20
    assert s.chain == "base"
    assert s.audit_db == "/tmp/audit.db"
    assert s.allowed_origins == ["https://a.example", "https://b.example"]
    assert s.production is True


def test_empty_secret_falls_back(monkeypatch):
    _clear(monkeypatch)
    monkeypatch.setenv("SIGNING_SECRET", "")
    assert Settings.from_env().uses_dev_secret


def test_repr_hides_private_key():
    s = Settings(evm_private_key="0xdeadbeef")
    assert "deadbeef" not in repr(s)
