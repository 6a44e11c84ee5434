#!/usr/bin/env python3
"""
kya CLI — Issue and check commitments offline (no server required).

Commands:
    issue       - Issue an HMAC commitment for an agent snapshot
    verify      - Verify an HMAC commitment from a JSON file or stdin
    evm-issue   - Issue an EVM (ECDSA) commitment
    evm-recover - Recover the signer of an EVM commitment
    tier        - Show tier, code and rate limit for a score or code
    serve       - Run the HTTP API
"""

import argparse
import json
import os
import sys
from datetime import datetime
from typing import Optional


def _output(data: dict, args: argparse.Namespace, human_fn=None):
    """Output data as JSON or pretty-printed."""
    if getattr(args, 'json', False) or human_fn is None:
        print(json.dumps(data, indent=2, default=str))
    else:
        human_fn(data)


def _read_json(path: str) -> dict:
    if path == '-':
        return json.load(sys.stdin)
    with open(path) as f:
        return json.load(f)


def _snapshot(args):
    from kya.models import AgentSnapshot
    from kya.tiers import Tier

    tier = args.tier or Tier.from_score(args.score)
    return AgentSnapshot(id=args.agent_id, reputation_score=args.score, tier=tier)


def _secret(args) -> str:
    from kya.config import DEV_SIGNING_SECRET
    return args.secret or os.environ.get("SIGNING_SECRET") or DEV_SIGNING_SECRET


def _parse_now(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    from kya.payload import parse_timestamp
    return parse_timestamp(value)


# ─── Commands ──────────────────────────────────────────────────────

def cmd_issue(args):
    """Issue an HMAC commitment."""
    from kya.commitment import issue_commitment

    commitment = issue_commitment(_snapshot(args), _secret(args), now=_parse_now(args.now))
    result = commitment.to_dict()

    if args.output:
        with open(args.output, 'w') as f:
            json.dump(result, f, indent=2)

    def human(d):
        print(f"✅ Commitment issued")
        print(f"   Agent:     {d['agent_id']}")
        print(f"   Score:     {d['score']} ({d['tier']})")
        print(f"   Issued:    {d['timestamp']}")
        print(f"   Expires:   {d['expires_at']}")
        print(f"   Hash:      {d['commitment_hash']}")
        print(f"   Signature: {d['signature']}")
        if args.output:
            print(f"   Saved to:  {args.output}")

    _output(result, args, human)
    return result


def cmd_verify(args):
    """Verify a commitment file: either the issued JSON or {payload_data, signature}."""
    from kya.commitment import verify_payload_data

    data = _read_json(args.file)
    if "payload_data" in data:
        payload_data, signature = data.get("payload_data"), data.get("signature")
    else:
        payload_data = {k: data.get(k) for k in ("agent_id", "score", "tier", "timestamp", "expires_at")}
        signature = data.get("signature")

    outcome = verify_payload_data(payload_data, signature, _secret(args), now=_parse_now(args.now))
    result = outcome.to_dict()

    def human(d):
        if d['valid']:
            print(f"✅ VALID commitment for {payload_data.get('agent_id')}")
        else:
            print(f"❌ INVALID: {d['error']}")

    _output(result, args, human)
    return result


def cmd_evm_issue(args):
    """Issue an EVM commitment signed with a secp256k1 key."""
    from kya.evm import issue_evm_commitment, load_signer

    key = args.key or os.environ.get("EVM_SIGNER_PRIVATE_KEY")
    signer = load_signer(key)
    commitment = issue_evm_commitment(
        _snapshot(args), signer,
        now=args.now,
        verifier_address=args.verifier_address,
        chain=args.chain,
    )
    result = commitment.to_dict()

    if args.output:
        with open(args.output, 'w') as f:
            json.dump(result, f, indent=2)

    def human(d):
        print(f"✅ EVM commitment issued")
        print(f"   Agent:     {d['agent_id']}")
        print(f"   Score:     {d['score']} (tier {d['tier']} = {d['tier_name']})")
        print(f"   Window:    {d['timestamp']} → {d['expires_at']}")
        print(f"   Oracle:    {d['oracle_address']}")
        print(f"   Signature: {d['signature']}")

    _output(result, args, human)
    return result


def cmd_evm_recover(args):
    """Recover the signer address of an EVM commitment."""
    from kya.evm import recover_evm_signer, verify_evm_commitment
    from kya.models import EvmCommitment

    commitment = EvmCommitment.from_dict(_read_json(args.file))
    recovered = recover_evm_signer(commitment.payload, commitment.signature)
    outcome = verify_evm_commitment(commitment, now=args.now, expected_signer=args.expect)
    result = {
        "recovered_address": recovered,
        "oracle_address": commitment.oracle_address,
        **outcome.to_dict(),
    }

    def human(d):
        status = "✅ VALID" if d['valid'] else f"❌ INVALID: {d['error']}"
        print(status)
        print(f"   Recovered: {d['recovered_address']}")
        print(f"   Claimed:   {d['oracle_address']}")

    _output(result, args, human)
    return result


def cmd_tier(args):
    """Show tier information."""
    from kya.tiers import Tier

    tier = Tier.from_code(args.code) if args.code is not None else Tier.from_score(args.score)
    limit = tier.rate_limit
    result = {
        "tier": tier.value,
        "code": tier.code,
        "rate_limit": limit,
    }
    if args.code is None:
        result["score"] = args.score

    def human(d):
        rl = "unlimited" if d['rate_limit'] is None else f"{d['rate_limit']} req/s"
        print(f"{d['tier']} (code {d['code']}) — {rl}")

    _output(result, args, human)
    return result


def cmd_serve(args):
    """Run the API with uvicorn."""
    import uvicorn
    from kya.api import create_app

    uvicorn.run(create_app(), host=args.host, port=args.port)
    return {"host": args.host, "port": args.port}


# ─── Parser ────────────────────────────────────────────────────────

def _add_agent_args(p):
    from kya.tiers import Tier

    p.add_argument("agent_id", help="Agent ID")
    p.add_argument("score", type=int, help="Reputation score (0-1000)")
    p.add_argument("-t", "--tier", choices=[t.value for t in Tier],
                   help="Tier (default: derived from score)")
    p.add_argument("-o", "--output", help="Save commitment to file")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="kya",
        description="kya — agent reputation commitments CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--json", action="store_true", help="Machine-readable JSON output")

    sub = parser.add_subparsers(dest="command", help="Available commands")

    # issue
    p = sub.add_parser("issue", help="Issue an HMAC commitment")
    _add_agent_args(p)
    p.add_argument("-s", "--secret", help="Signing secret (default: $SIGNING_SECRET)")
    p.add_argument("--now", help="Issue time, ISO-8601 (default: now)")

    # verify
    p = sub.add_parser("verify", help="Verify an HMAC commitment")
    p.add_argument("file", help="Commitment JSON file (- for stdin)")
    p.add_argument("-s", "--secret", help="Signing secret (default: $SIGNING_SECRET)")
    p.add_argument("--now", help="Verification time, ISO-8601 (default: now)")

    # evm-issue
    p = sub.add_parser("evm-issue", help="Issue an EVM commitment")
    _add_agent_args(p)
    p.add_argument("-k", "--key", help="Private key hex (default: $EVM_SIGNER_PRIVATE_KEY)")
    p.add_argument("--now", type=int, help="Issue time, Unix seconds (default: now)")
    p.add_argument("--chain", default=os.environ.get("KYA_CHAIN", "base_sepolia"))
    p.add_argument("--verifier-address",
                   default=os.environ.get("KYA_VERIFIER_ADDRESS", "Not deployed yet"))

    # evm-recover
    p = sub.add_parser("evm-recover", help="Recover the signer of an EVM commitment")
    p.add_argument("file", help="EVM commitment JSON file (- for stdin)")
    p.add_argument("-e", "--expect", help="Expected oracle address")
    p.add_argument("--now", type=int, help="Verification time, Unix seconds (default: now)")

    # tier
    p = sub.add_parser("tier", help="Show tier for a score or code")
    p.add_argument("score", type=int, nargs="?", default=0, help="Reputation score")
    p.add_argument("-c", "--code", type=int, choices=range(4), help="Tier code instead of score")

    # serve
    p = sub.add_parser("serve", help="Run the HTTP API")
    p.add_argument("--host", default="127.0.0.1")
    p.add_argument("--port", type=int, default=3001)

    return parser


def main(argv: Optional[list[str]] = None) -> Optional[dict]:
    """CLI entry point. Returns result dict for testing."""
    from kya.errors import CommitmentError

    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    commands = {
        "issue": cmd_issue,
        "verify": cmd_verify,
        "evm-issue": cmd_evm_issue,
        "evm-recover": cmd_evm_recover,
        "tier": cmd_tier,
        "serve": cmd_serve,
    }

    try:
        return commands[args.command](args)
    except FileNotFoundError as e:
        print(f"❌ File not found: {e}", file=sys.stderr)
        sys.exit(1)
    except CommitmentError as e:
        print(f"❌ {e.detail}" + (f" ({e.hint})" if e.hint else ""), file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        print(f"❌ Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
