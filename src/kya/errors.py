"""kya.errors — Failures raised while issuing commitments."""


class CommitmentError(Exception):
    """Base class. `detail` is safe to show to API callers."""
    status_code = 500
    detail = "Commitment error"

    def __init__(self, detail: str = "", *, hint: str = ""):
        self.detail = detail or self.detail
        self.hint = hint
        super().__init__(self.detail)

    def to_dict(self) -> dict:
        body = {"error": self.detail}
        if self.hint:
            body["hint"] = self.hint
        return body


class AgentNotFound(CommitmentError):
    status_code = 404
    detail = "Agent not found"


class InvalidAgentId(CommitmentError):
    """Agent id is empty or would make the canonical payload ambiguous."""
    status_code = 400
    detail = "Invalid agent id"


class SignerUnavailable(CommitmentError):
    status_code = 503
    detail = "EVM signer not configured"


class SigningFailed(CommitmentError):
    status_code = 500
    detail = "Failed to sign commitment"
