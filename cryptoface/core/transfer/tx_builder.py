"""
Transaction builder for prompt-driven transfers.
"""

import re

from .amounts import scale_amount
from .errors import AmountParseError, RecipientEncodingError, UnsupportedAssetError
from .models import (
    NativeTransfer,
    TokenTransfer,
    TransferStrategy,
    UnsignedTransactionRequest,
    UnsupportedAsset,
)


# Common contract ABIs (minimal for encoding)
ERC20_TRANSFER_SELECTOR = "0xa9059cbb"  # transfer(address,uint256)

MAX_UINT256 = 2**256 - 1

_HEX_ADDRESS_RE = re.compile(r"^0x[a-fA-F0-9]{40}$")


def _encode_uint256(value: int) -> str:
    """Encode a uint256 as a 32-byte hex string (without 0x prefix)."""
    if value < 0 or value > MAX_UINT256:
        raise ValueError(f"value {value} does not fit in uint256")
    return format(value, "064x")


def _encode_address(address: str) -> str:
    """Encode an address as a 32-byte hex string (without 0x prefix)."""
    if not _HEX_ADDRESS_RE.match(address):
        raise RecipientEncodingError(address)
    return address[2:].lower().zfill(64)


def _scaled_uint256(amount_text: str, decimals: int) -> int:
    amount = scale_amount(amount_text, decimals)
    if amount > MAX_UINT256:
        raise AmountParseError(amount_text, reason="exceeds uint256")
    return amount


def encode_erc20_transfer(recipient: str, amount: int, selector: str = ERC20_TRANSFER_SELECTOR) -> str:
    """Calldata for ``transfer(address to, uint256 amount)``."""
    return selector + _encode_address(recipient) + _encode_uint256(amount)


class TransactionBuilder:
    """
    Builds unsigned transfer requests from a classified asset.

    Handles:
    - Native transfers (value field, recipient passed through verbatim)
    - ERC-20 transfers (calldata to the token contract, zero value)
    """

    @staticmethod
    def build(
        strategy: TransferStrategy,
        recipient: str,
        amount_text: str,
    ) -> UnsignedTransactionRequest:
        """
        Build the request the wallet will sign.

        Args:
            strategy: Result of asset classification
            recipient: Destination address as parsed from the prompt
            amount_text: Amount in human units, e.g. "0.1"

        Returns:
            UnsignedTransactionRequest ready for the wallet

        Raises:
            UnsupportedAssetError: strategy is ``UnsupportedAsset``
            AmountParseError: amount is not a valid non-negative decimal
            RecipientEncodingError: token recipient is not a 20-byte address
        """
        if isinstance(strategy, UnsupportedAsset):
            raise UnsupportedAssetError(strategy.label)
        if isinstance(strategy, NativeTransfer):
            return TransactionBuilder.build_native_transfer(
                to_address=recipient,
                amount_wei=_scaled_uint256(amount_text, strategy.decimals),
            )
        if isinstance(strategy, TokenTransfer):
            return TransactionBuilder.build_erc20_transfer(
                token=strategy,
                to_address=recipient,
                amount=_scaled_uint256(amount_text, strategy.decimals),
            )
        raise TypeError(f"unknown transfer strategy: {strategy!r}")

    @staticmethod
    def build_native_transfer(to_address: str, amount_wei: int) -> UnsignedTransactionRequest:
        """Native token (ETH, MATIC, etc.) transfer. The wallet validates ``to``."""
        return UnsignedTransactionRequest(to=to_address, value=amount_wei)

    @staticmethod
    def build_erc20_transfer(
        token: TokenTransfer,
        to_address: str,
        amount: int,
    ) -> UnsignedTransactionRequest:
        """ERC-20 transfer; the transaction goes to the token contract."""
        calldata = encode_erc20_transfer(to_address, amount, token.transfer_selector)
        return UnsignedTransactionRequest(
            to=token.contract_address,
            value=0,
            data=calldata,
        )
