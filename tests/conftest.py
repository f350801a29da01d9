"""Shared fakes for the tokenwatch tests."""

import asyncio
import inspect
from decimal import Decimal

import pytest
from eth_abi import encode
from eth_utils import encode_hex

from tokenwatch.config import Settings
from tokenwatch.erc20 import ERC20_MIN_ABI, SELECTORS
from tokenwatch.errors import RpcError
from tokenwatch.models import TokenMetadata
from tokenwatch.provider import ChainProvider

TOKEN_ADDRESS = "0x5FbDB2315678afecb367f032d93F642f64180aa3"
DEPLOYER = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"
OTHER = "0x70997970C51812dc3A010C7d01b50e0d17dc79C8"


class FakeProvider(ChainProvider):
    """ChainProvider that answers JSON-RPC methods from a table instead of a socket.

    A response is either a value, an exception to raise, or a callable taking
    the request params (sync or async) returning one of those.
    """

    def __init__(self, url="wss://node.test", responses=None, connect_error=None):
        super().__init__(url)
        self.responses = dict(responses or {})
        self.requests = []
        self.connect_error = connect_error
        self.connect_calls = 0

    @property
    def destroyed(self) -> bool:
        return self._destroyed

    async def connect(self):
        self.connect_calls += 1
        if self.connect_error is not None:
            raise self.connect_error

    async def send(self, method, params):
        self.requests.append((method, params))
        response = self.responses[method]
        if callable(response):
            response = response(*params)
            if inspect.isawaitable(response):
                response = await response
        if isinstance(response, Exception):
            raise response
        return response

    def methods(self):
        return [method for method, _ in self.requests]


def tx_json(tx_hash, to=None):
    return {"hash": tx_hash, "to": to, "from": DEPLOYER, "input": "0x6080604052", "value": "0x0"}


def block_json(number, transactions):
    return {"number": hex(number), "hash": "0x" + "ab" * 32, "transactions": transactions}


def receipt_json(tx_hash, contract_address=TOKEN_ADDRESS, status="0x1"):
    return {"transactionHash": tx_hash, "contractAddress": contract_address, "status": status}


def erc20_call_handler(name="Test Token", symbol="TST", total_supply=10 ** 24, decimals=18, fail=()):
    """eth_call responder for the four ERC-20 reads. Methods in `fail` revert."""
    values = {"name": name, "symbol": symbol, "totalSupply": total_supply, "decimals": decimals}
    by_selector = {SELECTORS[method]: (method, abi_type) for method, abi_type in ERC20_MIN_ABI}

    def handler(call, block_tag):
        method, abi_type = by_selector[call["data"]]
        if method in fail:
            return RpcError(-32000, "execution reverted")
        return encode_hex(encode([abi_type], [values[method]]))

    return handler


def called_methods(provider):
    """ERC-20 methods hit through eth_call, in order."""
    names = {selector: method for method, selector in SELECTORS.items()}
    return [names[params[0]["data"]] for method, params in provider.requests if method == "eth_call"]


def sample_token(name="My Token"):
    return TokenMetadata(
        address=TOKEN_ADDRESS,
        name=name,
        symbol="MTK",
        decimals=18,
        total_supply_raw=10 ** 18,
        total_supply=Decimal("1.0"),
        websites=("https://mytoken.io",),
        tx_hash="0xc0ffee",
        block_number=7,
    )


class Gate:
    """Grace-period stand-in that holds every pipeline until opened."""

    def __init__(self):
        self.event = asyncio.Event()
        self.waiting = 0

    async def __call__(self, seconds):
        self.waiting += 1
        await self.event.wait()


class FakeEnricher:
    def __init__(self, websites=("https://mytoken.io",), error=None):
        self.websites = websites
        self.error = error
        self.calls = []

    async def websites_for(self, address):
        self.calls.append(address)
        if self.error is not None:
            raise self.error
        return self.websites


@pytest.fixture
def settings():
    return Settings(
        api_key="test-key",
        wss_url="wss://node.test",
        heartbeat_interval=3600,
        heartbeat_timeout=1,
        reconnect_delay=0,
        grace_period=0,
    )
