"""Minimal ERC-20 introspection over eth_call."""

import logging
from decimal import Decimal
from typing import Any, Dict, Tuple

from eth_abi import decode
from eth_utils import decode_hex, encode_hex, function_signature_to_4byte_selector

logger = logging.getLogger(__name__)

# (method, abi output type) in the order the calls are made
ERC20_MIN_ABI = (
    ("name", "string"),
    ("symbol", "string"),
    ("totalSupply", "uint256"),
    ("decimals", "uint8"),
)

SELECTORS = {
    method: encode_hex(function_signature_to_4byte_selector(f"{method}()"))
    for method, _ in ERC20_MIN_ABI
}


async def safe_contract_call(provider, address: str, method: str, output_type: str) -> Tuple[bool, Any]:
    """Attempt a read-only call. Returns (success, value_or_error)."""
    try:
        raw = await provider.call(address, SELECTORS[method])
        value = decode([output_type], decode_hex(raw))[0]
        return True, value
    except Exception as e:
        return False, f"{method}() failed: {e}"


async def introspect_token(provider, address: str) -> Tuple[bool, Any]:
    """Read name, symbol, totalSupply and decimals from address.

    Stops at the first failing call. Returns (True, {method: value}) when all
    four answer, otherwise (False, error message).
    """
    values: Dict[str, Any] = {}
    for method, output_type in ERC20_MIN_ABI:
        ok, value = await safe_contract_call(provider, address, method, output_type)
        if not ok:
            return False, value
        values[method] = value
    return True, values


def format_units(raw: int, decimals: int) -> str:
    """Render raw / 10**decimals exactly, always with a fractional part."""
    whole, frac = divmod(int(raw), 10 ** decimals)
    if decimals == 0:
        return f"{whole}.0"
    frac_digits = str(frac).rjust(decimals, "0").rstrip("0") or "0"
    return f"{whole}.{frac_digits}"


def normalize_supply(raw: int, decimals: int) -> Decimal:
    # built from the exact string so the context precision never rounds it
    return Decimal(format_units(raw, decimals))
