"""Client for the natural-language transaction parser."""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional

import httpx

from ...config import settings
from .models import Failed, ParseOutcome, Resolved, Unresolved

_PARSE_PATH = "/api/parseTransaction"
_REQUIRED_FIELDS = ("amount", "currency", "recipient")


def truncate_error(text: str, limit: int) -> str:
    """Clip an error body so huge payloads never reach the UI."""

    text = (text or "").strip()
    if len(text) <= limit:
        return text
    return text[:limit].rstrip() + "..."


def _amount_text(value: Any) -> Optional[str]:
    # Upstream may send the amount as a JSON number; avoid "1e-08" style output.
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, float):
        return format(Decimal(repr(value)), "f")
    if isinstance(value, (int, str)):
        return str(value).strip()
    return None


class ParserClient:
    """Sends prompts to ``POST /api/parseTransaction`` and normalizes the reply.

    One request per call and no retries; the orchestrator owns retry policy.
    """

    def __init__(
        self,
        *,
        base_url: Optional[str] = None,
        timeout_s: Optional[float] = None,
        error_body_max_chars: Optional[int] = None,
        client: Optional[httpx.AsyncClient] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.base_url = (base_url or settings.parser_api_url).rstrip("/")
        self.timeout_s = timeout_s or settings.request_timeout_seconds
        self.error_body_max_chars = error_body_max_chars or settings.error_body_max_chars
        self._client = client
        self._logger = logger or logging.getLogger(__name__)

    async def parse(self, prompt: str) -> ParseOutcome:
        text = (prompt or "").strip()
        if not text:
            return Failed(reason="Please enter a transaction prompt.", retryable=False)

        try:
            response = await self._post({"prompt": text})
        except httpx.RequestError as exc:
            self._logger.warning("Parser request failed: %s", exc)
            return Failed(reason=f"Could not reach the transaction parser: {exc}")

        if not response.is_success:
            reason = self._error_reason(response)
            self._logger.info("Parser returned %s: %s", response.status_code, reason)
            return Failed(reason=reason, status_code=response.status_code)

        try:
            payload = response.json()
        except ValueError:
            return Failed(reason="Transaction parser returned an invalid response", status_code=response.status_code)
        if not isinstance(payload, dict):
            return Failed(reason="Transaction parser returned an invalid response", status_code=response.status_code)

        return self.interpret(payload)

    @staticmethod
    def interpret(payload: Dict[str, Any]) -> ParseOutcome:
        """Map a ``{done, messages, parsed}`` body onto a parse outcome."""

        raw_messages = payload.get("messages") or []
        if isinstance(raw_messages, str):
            raw_messages = [raw_messages]
        messages: List[str] = [str(m) for m in raw_messages if m is not None]

        parsed = payload.get("parsed")
        if isinstance(parsed, dict):
            amount = _amount_text(parsed.get("amount"))
            currency = parsed.get("currency")
            recipient = parsed.get("recipient")
            if amount and isinstance(currency, str) and currency.strip() and isinstance(recipient, str) and recipient.strip():
                return Resolved(
                    amount=amount,
                    currency=currency.strip(),
                    recipient=recipient.strip(),
                )
        return Unresolved(messages=messages)

    async def _post(self, body: Dict[str, Any]) -> httpx.Response:
        if self._client is not None:
            return await self._client.post(f"{self.base_url}{_PARSE_PATH}", json=body)
        async with httpx.AsyncClient(timeout=self.timeout_s) as client:
            return await client.post(f"{self.base_url}{_PARSE_PATH}", json=body)

    def _error_reason(self, response: httpx.Response) -> str:
        detail = ""
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            for key in ("error", "detail", "message"):
                if body.get(key):
                    detail = str(body[key])
                    break
        if not detail:
            detail = response.text
        detail = truncate_error(detail, self.error_body_max_chars)
        return detail or response.reason_phrase or f"HTTP {response.status_code}"
