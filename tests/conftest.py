"""Global test configuration — runs before any test module imports."""
import os
import sys
from datetime import datetime, timezone

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

# Must be set BEFORE any kya imports; slowapi reads this at init
os.environ["RATELIMIT_ENABLED"] = "False"
os.environ.setdefault("SIGNING_SECRET", "test-secret-global")
os.environ.pop("EVM_SIGNER_PRIVATE_KEY", None)

# Well-known throwaway key from the eth-account docs. Never fund it.
TEST_PRIVATE_KEY = "0x4c0883a69102937d6231471b5dbb6204fe5129617082792ae468d01a3f362318"


def pytest_configure(config):
    """Disable rate limiter after all imports."""
    try:
        from kya.security import limiter
        limiter.enabled = False
    except ImportError:
        pass


@pytest.fixture
def fixed_now():
    return datetime(2024, 1, 1, 0, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def gold_agent():
    from kya.models import AgentSnapshot
    from kya.tiers import Tier
    return AgentSnapshot(id="a1", reputation_score=750, tier=Tier.GOLD,
                         capabilities=("code-review", "Data-Analysis"), name="Alpha")


@pytest.fixture
def platinum_agent():
    from kya.models import AgentSnapshot
    from kya.tiers import Tier
    return AgentSnapshot(id="agent-42", reputation_score=900, tier=Tier.PLATINUM)


@pytest.fixture
def signer():
    from kya.evm import EvmSigner
    return EvmSigner(TEST_PRIVATE_KEY)
