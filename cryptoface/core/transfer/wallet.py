"""
Wallet capability consumed by the submission driver.

A capability is whatever can authorize accounts and sign-and-send a
transaction on the user's behalf: a browser wallet bridge, a node with
unlocked accounts, or a test double. It is attached to a pipeline session
on connect and detached on disconnect; nothing else holds a reference.
"""

from __future__ import annotations

import itertools
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

import httpx

from ...config import settings

# EIP-1193 provider error codes
USER_REJECTED_REQUEST = 4001
UNAUTHORIZED = 4100


class WalletProviderError(Exception):
    """Error reported by the wallet or its provider, message kept verbatim."""

    def __init__(self, message: str, code: Optional[int] = None, data: Any = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.data = data

    @property
    def is_user_rejection(self) -> bool:
        return self.code == USER_REJECTED_REQUEST


class WalletCapability(ABC):
    """Interface the pipeline needs from a connected wallet."""

    name: str = "wallet"

    @abstractmethod
    async def request_accounts(self) -> List[str]:
        """Ask the wallet to authorize account access. Idempotent once granted."""
        pass

    @abstractmethod
    async def accounts(self) -> List[str]:
        """Currently authorized accounts, active account first."""
        pass

    @abstractmethod
    async def send_transaction(self, tx: Dict[str, Any]) -> Any:
        """Sign and broadcast ``tx``; may block on a user prompt.

        Returns the transaction hash, or an object/dict carrying one.
        """
        pass


class JsonRpcWallet(WalletCapability):
    """EIP-1193 style wallet reachable over JSON-RPC (wallet bridge or dev node)."""

    name = "json-rpc"

    def __init__(
        self,
        rpc_url: Optional[str] = None,
        *,
        timeout_s: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.rpc_url = rpc_url or settings.wallet_rpc_url
        if not self.rpc_url:
            raise ValueError("wallet RPC URL is not configured")
        # Signing waits on the user, so the default timeout is generous.
        self.timeout_s = timeout_s or max(settings.request_timeout_seconds, 120)
        self._client = client
        self._ids = itertools.count(1)
        self._logger = logger or logging.getLogger(__name__)

    async def _rpc_call(self, method: str, params: List[Any]) -> Any:
        payload = {
            "jsonrpc": "2.0",
            "method": method,
            "params": params,
            "id": next(self._ids),
        }
        try:
            if self._client is not None:
                response = await self._client.post(self.rpc_url, json=payload)
            else:
                async with httpx.AsyncClient(timeout=self.timeout_s) as client:
                    response = await client.post(self.rpc_url, json=payload)
            response.raise_for_status()
            result = response.json()
        except httpx.HTTPStatusError as exc:
            detail = exc.response.text or exc.response.reason_phrase
            raise WalletProviderError(f"Wallet RPC error {exc.response.status_code}: {detail}") from exc
        except httpx.RequestError as exc:
            raise WalletProviderError(f"Wallet RPC unreachable: {exc}") from exc
        except ValueError as exc:
            raise WalletProviderError("Wallet RPC returned an invalid response") from exc

        error = result.get("error") if isinstance(result, dict) else None
        if error:
            if isinstance(error, dict):
                raise WalletProviderError(
                    str(error.get("message") or error),
                    code=error.get("code"),
                    data=error.get("data"),
                )
            raise WalletProviderError(str(error))

        return result.get("result") if isinstance(result, dict) else None

    async def request_accounts(self) -> List[str]:
        return list(await self._rpc_call("eth_requestAccounts", []) or [])

    async def accounts(self) -> List[str]:
        return list(await self._rpc_call("eth_accounts", []) or [])

    async def send_transaction(self, tx: Dict[str, Any]) -> Any:
        self._logger.debug("eth_sendTransaction to=%s", tx.get("to"))
        return await self._rpc_call("eth_sendTransaction", [tx])
