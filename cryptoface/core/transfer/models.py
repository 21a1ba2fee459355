"""
Transfer pipeline models and types.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from .errors import PipelineError


# =============================================================================
# Parse outcomes
# =============================================================================

@dataclass(frozen=True)
class Resolved:
    """Parser produced a complete transfer intent."""
    amount: str                 # Human units, e.g. "0.1"
    currency: str               # Case-insensitive asset symbol
    recipient: str              # Passed through unvalidated


@dataclass(frozen=True)
class Unresolved:
    """Parser needs clarification; a new prompt is required."""
    messages: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class Failed:
    """Parser could not be reached or rejected the request; retryable."""
    reason: str
    status_code: Optional[int] = None
    retryable: bool = True


ParseOutcome = Union[Resolved, Unresolved, Failed]


# =============================================================================
# Transfer strategies
# =============================================================================

@dataclass(frozen=True)
class NativeTransfer:
    """Value moved through the transaction's value field."""
    symbol: str
    decimals: int


@dataclass(frozen=True)
class TokenTransfer:
    """Value moved through an ERC-20 ``transfer`` call."""
    symbol: str
    contract_address: str
    decimals: int
    transfer_selector: str = "0xa9059cbb"  # transfer(address,uint256)


@dataclass(frozen=True)
class UnsupportedAsset:
    """Label matched neither the native aliases nor the token registry."""
    label: str


TransferStrategy = Union[NativeTransfer, TokenTransfer, UnsupportedAsset]


# =============================================================================
# Transactions
# =============================================================================

@dataclass(frozen=True)
class UnsignedTransactionRequest:
    """A transaction ready to hand to the wallet for signing."""
    to: str
    value: Optional[int] = None                 # Base units; native transfers only
    data: Optional[str] = None                  # Hex calldata; token transfers only

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the ``eth_sendTransaction`` parameter shape."""
        tx: Dict[str, Any] = {"to": self.to}
        if self.value is not None:
            tx["value"] = hex(self.value)
        if self.data is not None:
            tx["data"] = self.data
        return tx


@dataclass(frozen=True)
class SubmissionResult:
    """Successful hand-off to the wallet. Not proof of confirmation."""
    transaction_handle: str
    from_address: Optional[str] = None
    submitted_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


# =============================================================================
# Orchestrator state
# =============================================================================

class PipelineState(str, Enum):
    """Pipeline lifecycle state for one user session."""
    IDLE = "idle"
    PARSING = "parsing"
    PARSE_RESOLVED = "parse_resolved"
    PARSE_UNRESOLVED = "parse_unresolved"
    PARSE_FAILED = "parse_failed"
    SIGNING = "signing"
    SUBMITTED = "submitted"
    SIGN_FAILED = "sign_failed"


@dataclass
class PipelineSnapshot:
    """What the caller should display right now."""
    state: PipelineState
    prompt: Optional[str] = None
    outcome: Optional[ParseOutcome] = None
    transaction_handle: Optional[str] = None
    error: Optional[PipelineError] = None

    @property
    def error_message(self) -> Optional[str]:
        return self.error.message if self.error else None

    @property
    def can_sign(self) -> bool:
        return self.state in {PipelineState.PARSE_RESOLVED, PipelineState.SIGN_FAILED}

    @property
    def can_retry_parse(self) -> bool:
        if self.state != PipelineState.PARSE_FAILED:
            return False
        return self.error is None or self.error.retryable

    @property
    def is_busy(self) -> bool:
        return self.state in {PipelineState.PARSING, PipelineState.SIGNING}

    def to_dict(self) -> Dict[str, Any]:
        parsed: Optional[Dict[str, str]] = None
        messages: List[str] = []
        if isinstance(self.outcome, Resolved):
            parsed = {
                "amount": self.outcome.amount,
                "currency": self.outcome.currency,
                "recipient": self.outcome.recipient,
            }
        elif isinstance(self.outcome, Unresolved):
            messages = list(self.outcome.messages)
        return {
            "state": self.state.value,
            "prompt": self.prompt,
            "parsed": parsed,
            "messages": messages,
            "transaction_handle": self.transaction_handle,
            "error": self.error_message,
            "error_category": self.error.category.value if self.error else None,
            "can_sign": self.can_sign,
            "can_retry_parse": self.can_retry_parse,
        }
