"""Maps a parsed currency label to the way the transfer must be performed."""

from __future__ import annotations

from typing import Dict, Iterable, Mapping, Optional

from ...config import Settings, TokenConfig, settings as default_settings
from .models import NativeTransfer, TokenTransfer, TransferStrategy, UnsupportedAsset


def _normalize_label(label: str) -> str:
    return (label or "").strip().upper()


class AssetClassifier:
    """
    Pure lookup from currency label to transfer strategy.

    Native labels are the chain's gas token symbol plus configured aliases.
    Anything else must be in the token registry; unknown labels (including
    "BTC" unless explicitly registered) classify as ``UnsupportedAsset``.
    """

    def __init__(
        self,
        *,
        native_symbol: str,
        native_decimals: int,
        native_aliases: Iterable[str] = (),
        token_registry: Optional[Mapping[str, TokenConfig]] = None,
    ) -> None:
        self._native = NativeTransfer(symbol=native_symbol.upper(), decimals=native_decimals)
        self._native_labels = {_normalize_label(native_symbol)}
        self._native_labels.update(_normalize_label(alias) for alias in native_aliases)
        self._native_labels.discard("")

        self._tokens: Dict[str, TokenTransfer] = {}
        for symbol, entry in (token_registry or {}).items():
            key = _normalize_label(symbol)
            if key in self._native_labels:
                raise ValueError(f"token symbol {symbol!r} collides with a native asset alias")
            self._tokens[key] = TokenTransfer(
                symbol=key,
                contract_address=entry.address,
                decimals=entry.decimals,
            )

    @classmethod
    def from_settings(cls, config: Optional[Settings] = None) -> "AssetClassifier":
        config = config or default_settings
        return cls(
            native_symbol=config.native_symbol,
            native_decimals=config.native_decimals,
            native_aliases=config.native_aliases,
            token_registry=config.token_registry,
        )

    @property
    def native(self) -> NativeTransfer:
        return self._native

    @property
    def token_symbols(self) -> list[str]:
        return sorted(self._tokens)

    def classify(self, currency: str) -> TransferStrategy:
        label = _normalize_label(currency)
        if label in self._native_labels:
            return self._native
        token = self._tokens.get(label)
        if token is not None:
            return token
        return UnsupportedAsset(label=currency)
