"""
Transfer pipeline errors.

Every failure the pipeline can produce is one of these. Each carries a
category and whether retrying the same action can succeed, so the
orchestrator can decide what the user is allowed to do next.
"""

from enum import Enum
from typing import Optional


class ErrorCategory(str, Enum):
    """Where in the pipeline an error originated."""

    VALIDATION = "validation"          # Rejected locally, no network call
    TRANSPORT = "transport"            # Parser unreachable or non-2xx
    CLARIFICATION = "clarification"    # Parser needs a better prompt
    PROVIDER = "provider"              # No wallet attached
    AUTHORIZATION = "authorization"    # Wallet refused account access
    SUBMISSION = "submission"          # Wallet rejected signing or broadcast


class PipelineError(Exception):
    """Base class for all transfer pipeline failures."""

    category: ErrorCategory = ErrorCategory.VALIDATION
    retryable: bool = False

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class EmptyPromptError(PipelineError):
    """Prompt was empty or whitespace only."""

    def __init__(self, message: str = "Please enter a transaction prompt."):
        super().__init__(message)


class TransportFailure(PipelineError):
    """The parser could not be reached or answered with a non-2xx status."""

    category = ErrorCategory.TRANSPORT
    retryable = True

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class UnresolvedPrompt(PipelineError):
    """The parser understood the prompt but produced no transaction."""

    category = ErrorCategory.CLARIFICATION


class UnsupportedAssetError(PipelineError):
    """Currency label is neither the native asset nor a registered token."""

    def __init__(self, label: str):
        super().__init__(f"Unsupported token: {label}")
        self.label = label


class AmountParseError(PipelineError):
    """Amount text is not a non-negative decimal numeral the asset can hold."""

    def __init__(self, amount_text: str, reason: str = "not a valid non-negative decimal number"):
        super().__init__(f"Invalid amount {amount_text!r}: {reason}")
        self.amount_text = amount_text


class RecipientEncodingError(PipelineError):
    """Recipient cannot be ABI-encoded as a 20-byte address for a token call."""

    def __init__(self, recipient: str):
        super().__init__(f"Recipient {recipient!r} is not a 20-byte hex address")
        self.recipient = recipient


class InvalidActionError(PipelineError):
    """The requested action is not allowed in the current pipeline state."""


class NoProviderError(PipelineError):
    """No wallet capability is attached to the session."""

    category = ErrorCategory.PROVIDER

    def __init__(self, message: str = "No wallet provider found. Connect a wallet first."):
        super().__init__(message)


class AuthorizationDeniedError(PipelineError):
    """The wallet refused to expose an account."""

    category = ErrorCategory.AUTHORIZATION
    retryable = True


class SubmissionFailure(PipelineError):
    """The wallet rejected signing or the provider rejected the broadcast."""

    category = ErrorCategory.SUBMISSION
    retryable = True

    def __init__(self, message: str, code: Optional[int] = None):
        super().__init__(message)
        self.code = code
