"""
Prompt-to-transaction pipeline

Turns a natural-language instruction into a signed, submitted transfer:
- ParserClient: sends the prompt to the parsing service
- AssetClassifier: native coin vs registered ERC-20 token
- TransactionBuilder: exact base-unit scaling and calldata encoding
- SubmissionDriver: authorization, signing and submission via the wallet
- TransferPipeline: the per-session state machine tying them together

Usage:
    from cryptoface.core.transfer import TransferPipeline, JsonRpcWallet

    pipeline = TransferPipeline.from_settings(wallet=JsonRpcWallet())
    snapshot = await pipeline.parse("Transfer 0.1 ETH to 0x...")
    if snapshot.can_sign:
        snapshot = await pipeline.sign()
"""

from .errors import (
    ErrorCategory,
    PipelineError,
    EmptyPromptError,
    TransportFailure,
    UnresolvedPrompt,
    UnsupportedAssetError,
    AmountParseError,
    RecipientEncodingError,
    InvalidActionError,
    NoProviderError,
    AuthorizationDeniedError,
    SubmissionFailure,
)

from .models import (
    Resolved,
    Unresolved,
    Failed,
    ParseOutcome,
    NativeTransfer,
    TokenTransfer,
    UnsupportedAsset,
    TransferStrategy,
    UnsignedTransactionRequest,
    SubmissionResult,
    PipelineState,
    PipelineSnapshot,
)

from .amounts import (
    parse_amount,
    scale_amount,
    unscale_amount,
    normalize_amount,
)

from .parser_client import ParserClient
from .classifier import AssetClassifier
from .tx_builder import TransactionBuilder, encode_erc20_transfer
from .wallet import WalletCapability, WalletProviderError, JsonRpcWallet
from .submission import SubmissionDriver, extract_transaction_handle
from .orchestrator import TransferPipeline

__all__ = [
    # Errors
    "ErrorCategory",
    "PipelineError",
    "EmptyPromptError",
    "TransportFailure",
    "UnresolvedPrompt",
    "UnsupportedAssetError",
    "AmountParseError",
    "RecipientEncodingError",
    "InvalidActionError",
    "NoProviderError",
    "AuthorizationDeniedError",
    "SubmissionFailure",
    # Models
    "Resolved",
    "Unresolved",
    "Failed",
    "ParseOutcome",
    "NativeTransfer",
    "TokenTransfer",
    "UnsupportedAsset",
    "TransferStrategy",
    "UnsignedTransactionRequest",
    "SubmissionResult",
    "PipelineState",
    "PipelineSnapshot",
    # Amounts
    "parse_amount",
    "scale_amount",
    "unscale_amount",
    "normalize_amount",
    # Components
    "ParserClient",
    "AssetClassifier",
    "TransactionBuilder",
    "encode_erc20_transfer",
    "WalletCapability",
    "WalletProviderError",
    "JsonRpcWallet",
    "SubmissionDriver",
    "extract_transaction_handle",
    "TransferPipeline",
]
