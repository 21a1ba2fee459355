"""Async client for the upstream natural-language transaction parser."""

from __future__ import annotations

from typing import Any, Dict, Optional

import httpx

from ..config import settings


class ParserUpstreamProvider:
    """Thin wrapper around the parser's ``POST /agent`` endpoint.

    Non-2xx responses surface as ``httpx.HTTPStatusError`` so callers can pass
    the upstream status and body through unchanged.
    """

    def __init__(
        self,
        *,
        endpoint: Optional[str] = None,
        timeout_s: Optional[int] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.endpoint = endpoint or settings.parser_upstream_endpoint
        self.timeout_s = timeout_s or settings.request_timeout_seconds
        self._transport = transport

    def _headers(self) -> Dict[str, str]:
        return {
            "accept": "application/json",
            "content-type": "application/json",
            "user-agent": "CryptoFaceParserClient/1.0",
        }

    async def parse(self, prompt: str) -> Dict[str, Any]:
        """Forward ``prompt`` and return the upstream JSON body."""

        async with httpx.AsyncClient(timeout=self.timeout_s, transport=self._transport) as client:
            response = await client.post(self.endpoint, json={"prompt": prompt}, headers=self._headers())
            response.raise_for_status()
            return response.json()


def get_parser_provider() -> ParserUpstreamProvider:
    return ParserUpstreamProvider()
