import json
import re
from pathlib import Path
from typing import Annotated, Any, Dict, List

from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


BASE_DIR = Path(__file__).resolve().parents[1]

_EVM_ADDRESS_RE = re.compile(r"^0x[a-fA-F0-9]{40}$")


class TokenConfig(BaseModel):
    """Registry entry for an ERC-20 token the pipeline may transfer."""

    address: str = Field(description="Token contract address")
    decimals: int = Field(ge=0, le=77, description="Token decimal precision")

    @field_validator("address")
    @classmethod
    def _check_address(cls, value: str) -> str:
        if not _EVM_ADDRESS_RE.match(value):
            raise ValueError(f"invalid token contract address: {value!r}")
        return value


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=BASE_DIR / ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Server Settings
    host: str = Field(default="127.0.0.1", description="Server host")
    port: int = Field(default=8000, description="Server port")
    log_level: str = Field(default="INFO", description="Logging level")

    # Parser Settings
    parser_upstream_url: str = Field(
        default="https://cryptoface-api-willjrhodes20.replit.app",
        description="Base URL of the natural-language transaction parser",
    )
    parser_upstream_path: str = Field(default="/agent", description="Parser endpoint path")
    parser_api_url: str = Field(
        default="http://127.0.0.1:8000",
        description="Base URL serving /api/parseTransaction for pipeline clients",
    )
    request_timeout_seconds: int = Field(default=30, description="Request timeout")
    error_body_max_chars: int = Field(
        default=200,
        ge=1,
        description="Maximum characters of an upstream error body surfaced to users",
    )

    # Chain Settings
    chain_id: int = Field(default=1, description="Chain the wallet submits to")
    native_symbol: str = Field(default="ETH", description="Gas token symbol")
    native_decimals: int = Field(
        default=18,
        ge=0,
        le=77,
        description="Base-unit exponent of the native asset",
    )
    native_aliases: Annotated[List[str], NoDecode] = Field(
        default_factory=lambda: ["ETHER"],
        description="Extra labels that classify as the native asset",
    )
    token_registry: Annotated[Dict[str, TokenConfig], NoDecode] = Field(
        default_factory=dict,
        description="Symbol -> {address, decimals} for transferable ERC-20 tokens",
    )

    # Wallet Settings
    wallet_rpc_url: str = Field(
        default="",
        description="JSON-RPC endpoint exposing eth_requestAccounts / eth_sendTransaction",
    )

    @field_validator("native_aliases", mode="before")
    @classmethod
    def _split_aliases(cls, value: Any) -> Any:
        if isinstance(value, str):
            text = value.strip()
            if text.startswith("["):
                return json.loads(text)
            return [part.strip() for part in text.split(",") if part.strip()]
        return value

    @field_validator("token_registry", mode="before")
    @classmethod
    def _load_registry(cls, value: Any) -> Any:
        if isinstance(value, str):
            text = value.strip()
            return json.loads(text) if text else {}
        return value

    @model_validator(mode="after")
    def _check_registry(self) -> "Settings":
        native_labels = {label.upper() for label in self.native_labels}
        seen: set[str] = set()
        for symbol in self.token_registry:
            key = symbol.strip().upper()
            if not key:
                raise ValueError("token registry contains an empty symbol")
            if key in native_labels:
                raise ValueError(f"token symbol {symbol!r} collides with a native asset alias")
            if key in seen:
                raise ValueError(f"token symbol {symbol!r} is registered more than once")
            seen.add(key)
        return self

    @property
    def native_labels(self) -> List[str]:
        return [self.native_symbol, *self.native_aliases]

    @property
    def has_wallet(self) -> bool:
        return bool(self.wallet_rpc_url)

    @property
    def parser_upstream_endpoint(self) -> str:
        return f"{self.parser_upstream_url.rstrip('/')}{self.parser_upstream_path}"


# Global settings instance
settings = Settings()
