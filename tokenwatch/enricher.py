import logging
from typing import Optional, Tuple

import httpx

from tokenwatch.config import ETHERSCAN_API
from tokenwatch.errors import SourceNotFoundError
from tokenwatch.links import website_links

logger = logging.getLogger(__name__)


class MetadataEnricher:
    """Looks up verified source for a contract and derives website links."""

    def __init__(self, api_key: str, api_url: str = ETHERSCAN_API,
                 transport: Optional[httpx.AsyncBaseTransport] = None, timeout: float = 30):
        self.api_key = api_key
        self.api_url = api_url
        self._transport = transport
        self._timeout = timeout

    async def get_contract_source(self, address: str) -> str:
        """Verified source text for address ('' when the contract is unverified).

        Raises SourceNotFoundError when the API fails or has no result.
        """
        params = {"module": "contract", "action": "getsourcecode", "address": address, "apikey": self.api_key}

        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                resp = await client.get(self.api_url, params=params)
                resp.raise_for_status()
                data = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error("SOURCE: Error retrieving contract source for %s: %s", address, e)
            raise SourceNotFoundError(f"Source lookup failed for {address}: {e}") from e

        result = data.get("result") if isinstance(data, dict) else None
        if not isinstance(result, list) or not result or not isinstance(result[0], dict):
            message = data.get("message", "") if isinstance(data, dict) else ""
            logger.error("SOURCE: No source result for %s (%s)", address, message or "empty response")
            raise SourceNotFoundError(f"Contract source code not found for {address}")

        return result[0].get("SourceCode") or ""

    async def websites_for(self, address: str) -> Tuple[str, ...]:
        source_code = await self.get_contract_source(address)
        return website_links(source_code)
