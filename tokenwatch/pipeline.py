import asyncio
import logging
from typing import Awaitable, Callable, Optional

from tokenwatch.config import VERIFICATION_GRACE_PERIOD
from tokenwatch.enricher import MetadataEnricher
from tokenwatch.erc20 import introspect_token, normalize_supply
from tokenwatch.models import TokenMetadata, TransactionRecord
from tokenwatch.sink import TokenSink

logger = logging.getLogger(__name__)


class ContractDiscoveryPipeline:
    """
    Follows one contract-creation transaction to a TokenMetadata record.

    receipt -> grace period -> ERC-20 introspection -> website lookup -> sink.
    The provider is looked up on the handle at every step, and after the grace
    period the pipeline waits for a live connection, so a pipeline that
    outlives a reconnect carries on over the new one.
    """

    def __init__(self, handle, enricher: MetadataEnricher, sink: TokenSink,
                 grace_period: float = VERIFICATION_GRACE_PERIOD,
                 sleep: Callable[[float], Awaitable] = asyncio.sleep):
        self.handle = handle
        self.enricher = enricher
        self.sink = sink
        self.grace_period = grace_period
        self._sleep = sleep

    async def process(self, tx: TransactionRecord, block_number: Optional[int] = None) -> Optional[TokenMetadata]:
        """Run the pipeline for tx. Never raises; failures are logged and give None."""
        try:
            return await self.discover(tx, block_number)
        except Exception as e:
            logger.error("Error in transaction %s: %s", tx.hash, e)
            return None

    async def discover(self, tx: TransactionRecord, block_number: Optional[int] = None) -> Optional[TokenMetadata]:
        if not tx.is_contract_creation:
            return None

        receipt = await self.handle.active().get_transaction_receipt(tx.hash)
        if receipt is None:
            logger.warning("No receipt for transaction %s", tx.hash)
            return None
        if not receipt.status or not receipt.contract_address:
            logger.debug("Deployment %s failed or has no contract address", tx.hash)
            return None

        address = receipt.contract_address
        # wait for the contract to get verified
        await self._sleep(self.grace_period)

        # a reconnect may be under way; introspect over the next live connection
        provider = await self.handle.wait_active()
        ok, result = await introspect_token(provider, address)
        if not ok:
            logger.error("Error in transaction %s: %s is not an ERC-20 token (%s)", tx.hash, address, result)
            return None

        websites = await self.enricher.websites_for(address)

        token = TokenMetadata(
            address=address,
            name=result["name"],
            symbol=result["symbol"],
            decimals=result["decimals"],
            total_supply_raw=result["totalSupply"],
            total_supply=normalize_supply(result["totalSupply"], result["decimals"]),
            websites=websites,
            tx_hash=tx.hash,
            block_number=block_number,
        )
        await self.sink.emit(token)
        return token
