import asyncio
import logging
from collections import deque
from typing import List

from tokenwatch.config import RECENT_TOKENS_MAX
from tokenwatch.erc20 import format_units
from tokenwatch.models import TokenMetadata

logger = logging.getLogger(__name__)


class TokenSink:
    """Where discovered tokens go: the log, a recent list, and live clients."""

    def __init__(self, recent_max: int = RECENT_TOKENS_MAX):
        self.recent: deque = deque(maxlen=recent_max)
        self.clients: List = []
        self.tokens_found = 0

    def snapshot(self, limit: int) -> List[dict]:
        """The newest `limit` tokens, JSON-ready."""
        return [t.model_dump(mode="json") for t in list(self.recent)[:limit]]

    async def attach(self, ws, greeting: dict):
        self.clients.append(ws)
        logger.info("Client connected (%d total)", len(self.clients))
        await ws.send_json(greeting)

    def detach(self, ws):
        if ws in self.clients:
            self.clients.remove(ws)
            logger.info("Client disconnected (%d total)", len(self.clients))

    async def emit(self, token: TokenMetadata):
        self.tokens_found += 1
        self.recent.appendleft(token)
        logger.info(
            "New Token Found:\n"
            "    - Token Address: %s\n"
            "    - Token Name: %s\n"
            "    - Token Symbol: %s\n"
            "    - Total Supply: %s\n"
            "    - Decimals: %d\n"
            "    - Websites: %s",
            token.address, token.name, token.symbol,
            format_units(token.total_supply_raw, token.decimals),
            token.decimals, ", ".join(token.websites),
        )
        await self.broadcast({"type": "new_token", "token": token.model_dump(mode="json")})

    async def broadcast(self, event: dict):
        """Push event to every live client; a client whose send fails is detached."""
        clients = list(self.clients)
        results = await asyncio.gather(*(ws.send_json(event) for ws in clients), return_exceptions=True)
        for ws, result in zip(clients, results):
            if isinstance(result, Exception):
                logger.debug("Dropping client: %s", result)
                self.detach(ws)
