"""
Ledger domain model

The AuctionVault ledger is only reachable through narrow per-field reads. Each read is described by a `LedgerQuery`,
and its outcome is tracked as a `Read`, which distinguishes between a read that has not resolved yet (PENDING),
a read that resolved to a value (RESOLVED), and a read that the ledger refused (NOT_FOUND).
"""

from dataclasses import dataclass
from enum import IntEnum, StrEnum, auto
from typing import Any, Callable, Generic, NewType, TypeVar

# Ethereum account or contract address, i.e., 0x prefixed hex string
Address = NewType("Address", str)

AuctionId = NewType("AuctionId", int)

# character slot index within an auction: 0, 1, or 2
CharacterIndex = NewType("CharacterIndex", int)

Wei = NewType("Wei", int)

TxHash = NewType("TxHash", str)

ZERO_ADDRESS = Address("0x0000000000000000000000000000000000000000")

# number of characters that are auctioned off per auction
CHARACTER_SLOTS = 3

T = TypeVar("T")
U = TypeVar("U")


def is_zero_address(address: str | None) -> bool:
    """
    :return: True if the address is not set or is the zero address
    """
    return not address or int(address, 16) == 0


def same_address(address: str | None, other: str | None) -> bool:
    """
    Addresses are compared case-insensitively, i.e., checksummed and lower case addresses are equal.
    """
    if address is None or other is None:
        return False
    return address.lower() == other.lower()


class QueryKind(IntEnum):
    """
    Ledger read primitives
    """

    CURRENT_AUCTION_ID = auto()
    CHARACTER = auto()
    AUCTION_END_TIME = auto()
    TOKEN_ADDRESS = auto()
    USER_BID_BALANCE = auto()
    UNCLAIMED_TOKENS = auto()
    # generic named field read, keyed by auction ID
    FIELD = auto()


@dataclass(slots=True, frozen=True)
class LedgerQuery:
    """
    Describes a single ledger read.

    Queries are hashable and used as keys to track read state.
    """

    kind: QueryKind
    auction_id: AuctionId | None = None
    character_index: CharacterIndex | None = None
    user: Address | None = None
    field_name: str | None = None

    @classmethod
    def current_auction_id(cls) -> "LedgerQuery":
        return cls(QueryKind.CURRENT_AUCTION_ID)

    @classmethod
    def character(cls, auction_id: int, character_index: int) -> "LedgerQuery":
        return cls(
            QueryKind.CHARACTER,
            auction_id=AuctionId(auction_id),
            character_index=CharacterIndex(character_index),
        )

    @classmethod
    def auction_end_time(cls, auction_id: int) -> "LedgerQuery":
        return cls(QueryKind.AUCTION_END_TIME, auction_id=AuctionId(auction_id))

    @classmethod
    def token_address(cls, auction_id: int) -> "LedgerQuery":
        return cls(QueryKind.TOKEN_ADDRESS, auction_id=AuctionId(auction_id))

    @classmethod
    def user_bid_balance(
        cls, user: Address, auction_id: int, character_index: int
    ) -> "LedgerQuery":
        return cls(
            QueryKind.USER_BID_BALANCE,
            auction_id=AuctionId(auction_id),
            character_index=CharacterIndex(character_index),
            user=user,
        )

    @classmethod
    def unclaimed_tokens(cls, user: Address, auction_id: int) -> "LedgerQuery":
        return cls(QueryKind.UNCLAIMED_TOKENS, auction_id=AuctionId(auction_id), user=user)

    @classmethod
    def field(cls, auction_id: int | None, field_name: str) -> "LedgerQuery":
        return cls(
            QueryKind.FIELD,
            auction_id=None if auction_id is None else AuctionId(auction_id),
            field_name=field_name,
        )

    def __str__(self) -> str:
        args = [
            f"{name}={value}"
            for name, value in (
                ("auction_id", self.auction_id),
                ("character_index", self.character_index),
                ("user", self.user),
                ("field_name", self.field_name),
            )
            if value is not None
        ]
        return f"{self.kind.name}({', '.join(args)})"


class ReadStatus(IntEnum):
    """
    Read result states
    """

    # the read has not resolved yet
    PENDING = auto()
    # the ledger returned a value
    RESOLVED = auto()
    # the ledger refused the read, e.g., the auction ID is out of range
    NOT_FOUND = auto()


@dataclass(slots=True, frozen=True)
class Read(Generic[T]):
    """
    Read result

    A pending read never carries a value. Callers must check the status before using the value,
    i.e., a pending read must never be treated as zero.
    """

    status: ReadStatus
    value: T | None = None
    # why the read was not found
    reason: str | None = None

    @classmethod
    def pending(cls) -> "Read[Any]":
        return cls(ReadStatus.PENDING)

    @classmethod
    def resolved(cls, value: T) -> "Read[T]":
        return cls(ReadStatus.RESOLVED, value=value)

    @classmethod
    def not_found(cls, reason: str | None = None) -> "Read[Any]":
        return cls(ReadStatus.NOT_FOUND, reason=reason)

    @property
    def is_pending(self) -> bool:
        return self.status == ReadStatus.PENDING

    @property
    def is_resolved(self) -> bool:
        return self.status == ReadStatus.RESOLVED

    @property
    def is_not_found(self) -> bool:
        return self.status == ReadStatus.NOT_FOUND

    def map(self, func: Callable[[T], U]) -> "Read[U]":
        """
        Maps the resolved value. Pending and not found reads pass through as is.
        """
        if self.is_resolved:
            return Read.resolved(func(self.value))  # type: ignore
        return self  # type: ignore

    def get(self) -> T:
        """
        :return: the resolved value
        :raises ValueError: if the read is not resolved
        """
        if not self.is_resolved:
            raise ValueError(f"read is not resolved: {self.status.name}")
        return self.value  # type: ignore


@dataclass(slots=True, frozen=True)
class CharacterData:
    """
    Character struct as it is stored on the ledger
    """

    uri: str
    name: str
    symbol: str
    pool_balance: Wei
    is_winner: bool


class LedgerEventKind(StrEnum):
    """
    AuctionVault event names
    """

    BID_PLACED = "BidPlaced"
    BID_WITHDRAWN = "BidWithdrawn"
    TOKENS_CLAIMED = "TokensClaimed"


@dataclass(slots=True)
class LedgerError(Exception):
    """
    Base class for ledger errors
    """

    operation: str
    cause: Exception | str

    def __str__(self) -> str:
        return f"[{self.__class__.__name__}] [{self.operation}] {self.cause}"


class LedgerCallRejected(LedgerError):
    """
    The ledger refused the call, e.g., the contract reverted because the auction ID is invalid.
    """


class LedgerUnavailable(LedgerError):
    """
    The ledger could not be reached. The read may succeed when it is retried.
    """
