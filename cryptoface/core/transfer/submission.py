"""
Drives an unsigned transfer through the connected wallet.

Order of operations:
- fail fast when no wallet is attached
- authorize accounts and resolve the active signer
- hand the request to the wallet for signing and broadcast
- pull the transaction hash out of whatever the wallet returns

Confirmation is never awaited here; the hash is only a reference.
"""

import logging
from typing import Any, Optional

from .errors import AuthorizationDeniedError, NoProviderError, SubmissionFailure
from .models import SubmissionResult, UnsignedTransactionRequest
from .wallet import UNAUTHORIZED, WalletCapability, WalletProviderError


_HANDLE_KEYS = ("hash", "transactionHash", "txHash", "tx_hash")


def extract_transaction_handle(result: Any) -> Optional[str]:
    """Find the transaction hash in a wallet's send result."""
    if isinstance(result, str):
        return result or None
    if isinstance(result, dict):
        for key in _HANDLE_KEYS:
            value = result.get(key)
            if isinstance(value, str) and value:
                return value
        return None
    for key in _HANDLE_KEYS:
        value = getattr(result, key, None)
        if isinstance(value, str) and value:
            return value
    return None


class SubmissionDriver:
    """
    Signs and submits transfers through an injected wallet capability.

    The capability is exclusively used by one ``submit`` call at a time; the
    orchestrator serializes sign attempts.
    """

    def __init__(
        self,
        wallet: Optional[WalletCapability] = None,
        logger: Optional[logging.Logger] = None,
        chain_id: Optional[int] = None,
    ):
        self.wallet = wallet
        self.chain_id = chain_id
        self.logger = logger or logging.getLogger(__name__)

    @property
    def has_provider(self) -> bool:
        return self.wallet is not None

    def ensure_provider(self) -> WalletCapability:
        if self.wallet is None:
            raise NoProviderError()
        return self.wallet

    async def authorize(self) -> str:
        """Request account access and return the active account."""
        wallet = self.ensure_provider()
        try:
            granted = await wallet.request_accounts()
            active = await wallet.accounts() or granted
        except WalletProviderError as e:
            self.logger.warning(f"Wallet authorization failed ({e.code}): {e.message}")
            if e.is_user_rejection or e.code == UNAUTHORIZED:
                raise AuthorizationDeniedError(e.message)
            raise SubmissionFailure(e.message, code=e.code)

        if not active:
            raise AuthorizationDeniedError("Wallet did not authorize any account.")
        return active[0]

    async def submit(self, request: UnsignedTransactionRequest) -> SubmissionResult:
        """
        Sign and broadcast ``request``.

        Raises:
            NoProviderError: no wallet attached (checked before anything else)
            AuthorizationDeniedError: the wallet refused account access
            SubmissionFailure: signing or broadcast was rejected; the wallet's
                own message is preserved
        """
        wallet = self.ensure_provider()
        from_address = await self.authorize()

        tx = request.to_dict()
        tx["from"] = from_address
        if self.chain_id is not None:
            # wallet refuses to sign if it is connected to a different chain
            tx["chainId"] = hex(self.chain_id)

        try:
            result = await wallet.send_transaction(tx)
        except WalletProviderError as e:
            self.logger.warning(f"Wallet rejected transaction ({e.code}): {e.message}")
            raise SubmissionFailure(e.message, code=e.code)

        handle = extract_transaction_handle(result)
        if not handle:
            raise SubmissionFailure("Wallet did not return a transaction hash.")

        self.logger.info(f"Transaction submitted: {handle}")
        return SubmissionResult(transaction_handle=handle, from_address=from_address)
