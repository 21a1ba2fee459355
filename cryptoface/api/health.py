from typing import Any, Dict

from fastapi import APIRouter

from ..config import settings

router = APIRouter()


@router.get("/healthz")
async def health_check() -> Dict[str, Any]:
    """Service status and the transfer configuration clients will be held to."""

    return {
        "status": "healthy",
        "chain_id": settings.chain_id,
        "native_symbol": settings.native_symbol,
        "native_decimals": settings.native_decimals,
        "tokens": sorted(symbol.upper() for symbol in settings.token_registry),
        "wallet_configured": settings.has_wallet,
        "parser_endpoint": settings.parser_upstream_endpoint,
    }
