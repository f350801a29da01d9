"""
JSON-RPC chain provider over a single WebSocket.

Wraps one `websockets` connection subscribed to `newHeads` and re-emits what
happens on it as events:

- ``block(block_number)`` for every new head
- ``error(exc)`` when the socket fails
- ``close(exc)`` when the socket is closed by the remote side

Listeners are plain callables. A destroyed provider never emits again.
"""

import asyncio
import itertools
import json
import logging
from collections import defaultdict
from typing import Any, Callable, Dict, List, Optional

import websockets
from websockets.exceptions import ConnectionClosed, ConnectionClosedOK

from tokenwatch.errors import ProviderError, RpcError
from tokenwatch.models import BlockRecord, ContractReceipt

logger = logging.getLogger(__name__)

EVENTS = ("block", "error", "close")


class ChainProvider:
    def __init__(self, url: str, connector: Optional[Callable] = None):
        if not isinstance(url, str) or not url.startswith(("ws://", "wss://")):
            raise ProviderError(f"Unsupported provider URL: {url!r}")
        self.url = url
        self._connector = connector or websockets.connect
        self._ws = None
        self._reader: Optional[asyncio.Task] = None
        self._ids = itertools.count(1)
        self._pending: Dict[int, asyncio.Future] = {}
        self._listeners: Dict[str, List[Callable]] = defaultdict(list)
        self._head_subscription: Optional[str] = None
        self._destroyed = False

    # ---- Events ----
    def on(self, event: str, listener: Callable):
        if event not in EVENTS:
            raise ValueError(f"Unknown event {event!r}")
        self._listeners[event].append(listener)
        return self

    def off(self, event: str, listener: Callable):
        if listener in self._listeners[event]:
            self._listeners[event].remove(listener)
        return self

    def remove_all_listeners(self, event: Optional[str] = None):
        if event is None:
            self._listeners.clear()
        else:
            self._listeners.pop(event, None)
        return self

    def listener_count(self, event: str) -> int:
        return len(self._listeners.get(event, ()))

    def emit(self, event: str, *args):
        for listener in list(self._listeners.get(event, ())):
            try:
                listener(*args)
            except Exception as e:
                logger.error("Listener for %r raised: %s", event, e)

    # ---- Lifecycle ----
    @property
    def connected(self) -> bool:
        return self._ws is not None and not self._destroyed

    async def connect(self):
        """Open the socket and subscribe to new heads."""
        self._ws = await self._connector(self.url)
        self._reader = asyncio.create_task(self._read_loop())
        self._head_subscription = await self.send("eth_subscribe", ["newHeads"])
        logger.info("Subscribed to new heads on %s", self.url)

    async def destroy(self):
        """Detach every listener and close the socket without emitting."""
        self._destroyed = True
        self.remove_all_listeners()
        if self._reader is not None:
            self._reader.cancel()
            self._reader = None
        self._fail_pending(ProviderError("Provider destroyed"))
        if self._ws is not None:
            ws, self._ws = self._ws, None
            try:
                await ws.close()
            except Exception as e:
                logger.debug("Error closing socket: %s", e)

    async def _read_loop(self):
        try:
            async for raw in self._ws:
                self._dispatch(raw)
        except asyncio.CancelledError:
            raise
        except ConnectionClosedOK as e:
            self._lost("close", e)
        except ConnectionClosed as e:
            self._lost("error", e)
        except Exception as e:
            self._lost("error", e)
        else:
            self._lost("close", None)

    def _lost(self, event: str, exc):
        self._ws = None
        self._reader = None
        self._fail_pending(exc or ProviderError("Connection closed"))
        if not self._destroyed:
            self.emit(event, exc)

    def _fail_pending(self, exc):
        for future in self._pending.values():
            if not future.done():
                future.set_exception(exc)
        self._pending.clear()

    def _dispatch(self, raw):
        try:
            msg = json.loads(raw)
        except ValueError:
            logger.warning("Dropping non-JSON message: %.120s", raw)
            return

        if msg.get("method") == "eth_subscription":
            params = msg.get("params") or {}
            if params.get("subscription") == self._head_subscription:
                head = params.get("result") or {}
                try:
                    number = int(head["number"], 16)
                except (KeyError, TypeError, ValueError):
                    logger.warning("Malformed head notification: %s", head)
                    return
                if not self._destroyed:
                    self.emit("block", number)
            return

        future = self._pending.pop(msg.get("id"), None)
        if future is None or future.done():
            return
        if msg.get("error"):
            err = msg["error"]
            future.set_exception(RpcError(err.get("code"), err.get("message")))
        else:
            future.set_result(msg.get("result"))

    # ---- Requests ----
    async def send(self, method: str, params: list) -> Any:
        if not self.connected:
            raise ProviderError("Provider is not connected")
        request_id = next(self._ids)
        future = asyncio.get_running_loop().create_future()
        self._pending[request_id] = future
        try:
            await self._ws.send(json.dumps({
                "jsonrpc": "2.0", "id": request_id, "method": method, "params": params
            }))
            return await future
        finally:
            self._pending.pop(request_id, None)

    async def get_block_number(self) -> int:
        return int(await self.send("eth_blockNumber", []), 16)

    async def get_block_with_transactions(self, block_number: int) -> BlockRecord:
        raw = await self.send("eth_getBlockByNumber", [hex(block_number), True])
        if not raw:
            raise ProviderError(f"Block {block_number} not found")
        return BlockRecord.model_validate(raw)

    async def get_transaction_receipt(self, tx_hash: str) -> Optional[ContractReceipt]:
        raw = await self.send("eth_getTransactionReceipt", [tx_hash])
        if not raw:
            return None
        return ContractReceipt.model_validate(raw)

    async def call(self, to: str, data: str) -> str:
        return await self.send("eth_call", [{"to": to, "data": data}, "latest"])
