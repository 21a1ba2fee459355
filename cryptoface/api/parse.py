import logging
from typing import Any, Dict

import httpx
from fastapi import APIRouter, Body, Depends, HTTPException
from pydantic import ValidationError

from ..providers.parser import ParserUpstreamProvider, get_parser_provider
from ..types import ParseTransactionRequest

router = APIRouter(prefix="/api")

logger = logging.getLogger(__name__)


@router.post("/parseTransaction")
async def parse_transaction(
    payload: Any = Body(None),
    provider: ParserUpstreamProvider = Depends(get_parser_provider),
) -> Dict[str, Any]:
    """Forward a prompt to the upstream parser and pass its reply through."""

    try:
        prompt = ParseTransactionRequest.model_validate(payload).valid_prompt
    except ValidationError:
        prompt = None
    if prompt is None:
        logger.info("Rejected parseTransaction request with missing or invalid prompt")
        raise HTTPException(status_code=400, detail="Missing or invalid prompt")

    try:
        return await provider.parse(prompt)
    except httpx.HTTPStatusError as exc:
        detail = exc.response.text or exc.response.reason_phrase
        logger.info("Upstream parser returned %s", exc.response.status_code)
        raise HTTPException(status_code=exc.response.status_code, detail=detail)
    except httpx.RequestError as exc:
        logger.warning("Upstream parser unreachable: %s", exc)
        raise HTTPException(status_code=502, detail=f"Transaction parser unreachable: {exc}")
    except Exception:
        logger.exception("parseTransaction failed")
        raise HTTPException(status_code=500, detail="Internal parseTransaction error.")
