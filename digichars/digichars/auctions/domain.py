"""
Auction domain model
"""
from dataclasses import dataclass
from datetime import datetime, UTC
from enum import IntEnum
from typing import Sequence

from digichars.ledger.model import (
    CHARACTER_SLOTS,
    Address,
    AuctionId,
    CharacterData,
    Wei,
)


@dataclass(slots=True, frozen=True)
class Character:
    """
    Character that is auctioned off at a fixed slot within an auction
    """

    uri: str
    name: str
    symbol: str
    pool_balance: Wei
    is_winner: bool = False

    @classmethod
    def from_ledger(cls, data: CharacterData) -> "Character":
        """
        The ledger's winner flag is not trusted. It is recomputed from the pool balances when the record is built.
        """
        return cls(
            uri=data.uri,
            name=data.name,
            symbol=data.symbol,
            pool_balance=data.pool_balance,
        )


def compute_winner(balances: Sequence[int]) -> int | None:
    """
    The winner is the lowest slot that attains the strict, non-zero maximum pool balance.

    Slots are scanned in index order using a strict greater-than comparison against the running maximum, which
    starts at zero. Thus, ties go to the lower slot, and if all balances are zero, then there is no winner.

    >>> compute_winner([2, 5, 5])
    1
    >>> compute_winner([0, 0, 0]) is None
    True
    """
    winner: int | None = None
    max_balance = 0
    for index, balance in enumerate(balances):
        if balance > max_balance:
            max_balance = balance
            winner = index
    return winner


@dataclass(slots=True, frozen=True)
class AuctionRecord:
    """
    Auction snapshot reconstructed from ledger reads

    Notes
    -----
    - `characters` always has exactly 3 slots. A slot is None while its read is pending.
    - `winner_index` is only set once all 3 character slots have resolved.
    - `token_address` is only set once the auction has closed and the winner's token has been deployed.
    """

    # pylint: disable=too-many-instance-attributes

    auction_id: AuctionId
    characters: tuple[Character | None, ...]
    # unix seconds
    end_time: int
    winner_index: int | None = None
    token_address: Address | None = None

    def __post_init__(self):
        if self.auction_id < 0:
            raise AssertionError("auction_id must be >= 0")
        if len(self.characters) != CHARACTER_SLOTS:
            raise AssertionError(f"auction must have {CHARACTER_SLOTS} character slots")

    @property
    def is_complete(self) -> bool:
        """
        :return: True if all character slots are resolved
        """
        return all(character is not None for character in self.characters)

    @property
    def winner(self) -> Character | None:
        if self.winner_index is None:
            return None
        return self.characters[self.winner_index]

    @property
    def total_pool(self) -> Wei:
        return Wei(
            sum(
                character.pool_balance
                for character in self.characters
                if character is not None
            )
        )

    @property
    def end_datetime(self) -> datetime:
        return datetime.fromtimestamp(self.end_time, UTC)

    def is_closed(self, now: datetime | None = None) -> bool:
        """
        :param now: defaults to the current UTC time
        """
        if now is None:
            now = datetime.now(UTC)
        return now.timestamp() >= self.end_time


class BaseIndex(IntEnum):
    """
    Auction ID numbering convention
    """

    # past auctions are 0..current-1, and the current auction is open
    ZERO_BASED = 0
    # past auctions are 1..current-1
    ONE_BASED = 1


@dataclass(slots=True, frozen=True)
class AuctionIdPolicy:
    """
    Maps the ledger's current auction ID to the open auction and the past auction IDs.

    Both conventions treat the current auction ID as the open auction, and the IDs below it, down to the base index,
    as past auctions. They differ on whether ID 0 is a valid auction.
    """

    base_index: BaseIndex

    @property
    def first_id(self) -> AuctionId:
        return AuctionId(int(self.base_index))

    def open_auction_id(self, current_auction_id: int) -> AuctionId | None:
        """
        :return: None if the current auction ID is below the base index
        """
        if current_auction_id < self.first_id:
            return None
        return AuctionId(current_auction_id)

    def total_past_auctions(self, current_auction_id: int) -> int:
        return max(0, current_auction_id - self.first_id)

    def previous_auction_id(self, current_auction_id: int) -> AuctionId | None:
        """
        :return: None if there are no past auctions
        """
        if self.total_past_auctions(current_auction_id) == 0:
            return None
        return AuctionId(current_auction_id - 1)

    def past_auction_ids(
        self, current_auction_id: int, offset: int = 0, limit: int | None = None
    ) -> list[AuctionId]:
        """
        Past auction IDs, most recent first.

        :param offset: number of most recent past auctions to skip
        :param limit: max number of IDs to return
        """
        if offset < 0:
            raise ValueError("offset must be >= 0")
        if limit is not None and limit < 0:
            raise ValueError("limit must be >= 0")

        start = current_auction_id - 1 - offset
        stop = self.first_id - 1
        if limit is not None:
            stop = max(stop, start - limit)
        return [AuctionId(auction_id) for auction_id in range(start, stop, -1)]
