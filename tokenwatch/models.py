from decimal import Decimal
from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _hex_int(value):
    if isinstance(value, str):
        return int(value, 16)
    return value


# ---- Chain records ----
class TransactionRecord(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    hash: str
    to: Optional[str] = None
    sender: Optional[str] = Field(default=None, alias="from")
    input: str = "0x"

    @property
    def is_contract_creation(self) -> bool:
        return self.to is None


class BlockRecord(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    number: int
    transactions: List[TransactionRecord] = []

    @field_validator("number", mode="before")
    @classmethod
    def parse_number(cls, value):
        return _hex_int(value)

    @field_validator("transactions", mode="before")
    @classmethod
    def full_transactions_only(cls, value):
        # eth_getBlockByNumber(n, false) yields bare hashes
        if any(isinstance(tx, str) for tx in value or []):
            raise ValueError("block was fetched without transaction bodies")
        return value


class ContractReceipt(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    transaction_hash: str = Field(alias="transactionHash")
    contract_address: Optional[str] = Field(default=None, alias="contractAddress")
    status: bool = False

    @field_validator("status", mode="before")
    @classmethod
    def parse_status(cls, value):
        if value is None:
            return False
        return bool(_hex_int(value))


# ---- Discovery output ----
class TokenMetadata(BaseModel):
    model_config = ConfigDict(frozen=True)

    address: str
    name: str
    symbol: str
    decimals: int
    total_supply_raw: int
    total_supply: Decimal
    websites: Tuple[str, ...]
    tx_hash: Optional[str] = None
    block_number: Optional[int] = None
