"""
Error taxonomy shared by the providers, the pipeline and the HTTP layer.

Each class carries a machine-readable ``category`` and the HTTP status the
API maps it to.
"""
from typing import Optional


class StoryMakerError(Exception):
    category = "internal_error"
    status_code = 500

    def __init__(self, message: str, details: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.details = details if details is not None else message


class ClientInputError(StoryMakerError):
    """Malformed or missing request input; the stage is never attempted."""
    category = "client_error"
    status_code = 400


class ProviderError(StoryMakerError):
    """A remote generation call failed or answered with an unusable body."""
    category = "provider_error"
    status_code = 502

    def __init__(self, code: str, message: str):
        super().__init__(message)
        self.code = code

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"


class StageFatalError(StoryMakerError):
    """The text stage produced no usable story; nothing downstream runs."""
    category = "stage_fatal"
    status_code = 500


class AssemblyContractError(StoryMakerError):
    category = "assembly_contract"
    status_code = 500


def suggestion_for(message: str) -> str:
    lowered = (message or "").lower()
    if "authentication" in lowered or "unauthorized" in lowered or "missing_credentials" in lowered:
        return "Check that the provider API key is configured and valid"
    if "rate limit" in lowered or "429" in lowered:
        return "The provider rate limit was reached. Try again in a few minutes"
    if "insufficient funds" in lowered or "payment" in lowered:
        return "The provider account has insufficient funds"
    return "Check the provider configuration and try again"
