"""
Leaderboard of winning characters
"""
from dataclasses import dataclass
from enum import StrEnum, auto
from typing import Iterable

from digichars.auctions.domain import AuctionRecord
from digichars.ledger.model import Address, AuctionId, Wei


@dataclass(slots=True, frozen=True)
class LeaderboardEntry:
    # pylint: disable=too-many-instance-attributes

    # 1-based
    rank: int
    auction_id: AuctionId
    character_index: int
    name: str
    symbol: str
    uri: str
    pool_balance: Wei
    token_address: Address


def build_leaderboard(records: Iterable[AuctionRecord]) -> list[LeaderboardEntry]:
    """
    Ranks the winning characters of closed auctions by pool balance, descending.

    Only auctions that have a winner and a deployed token are ranked. Ranks start at 1 and ties are not split:
    entries with the same pool balance keep their input order.
    """
    winners = [
        (record, record.winner)
        for record in records
        if record.winner is not None and record.token_address is not None
    ]
    winners.sort(key=lambda item: item[1].pool_balance, reverse=True)  # type: ignore
    return [
        LeaderboardEntry(
            rank=rank,
            auction_id=record.auction_id,
            character_index=record.winner_index,  # type: ignore
            name=winner.name,
            symbol=winner.symbol,
            uri=winner.uri,
            pool_balance=winner.pool_balance,
            token_address=record.token_address,  # type: ignore
        )
        for rank, (record, winner) in enumerate(winners, start=1)
    ]


@dataclass(slots=True, frozen=True)
class LeaderboardStats:
    count: int
    total_volume: Wei
    # 0 when the leaderboard is empty
    average_volume: Wei

    @classmethod
    def compute(cls, entries: Iterable[LeaderboardEntry]) -> "LeaderboardStats":
        balances = [entry.pool_balance for entry in entries]
        total = sum(balances)
        return cls(
            count=len(balances),
            total_volume=Wei(total),
            average_volume=Wei(total // len(balances) if balances else 0),
        )


class AuctionFilter(StrEnum):
    ALL = auto()
    WITH_WINNER = auto()
    NO_WINNER = auto()
    WITH_TOKEN = auto()


def filter_auctions(
    records: Iterable[AuctionRecord], auction_filter: AuctionFilter = AuctionFilter.ALL
) -> list[AuctionRecord]:
    """
    Record order is preserved.
    """
    match auction_filter:
        case AuctionFilter.ALL:
            return list(records)
        case AuctionFilter.WITH_WINNER:
            return [record for record in records if record.winner_index is not None]
        case AuctionFilter.NO_WINNER:
            return [record for record in records if record.winner_index is None]
        case AuctionFilter.WITH_TOKEN:
            return [record for record in records if record.token_address is not None]
        case other:
            raise AssertionError(f"AuctionFilter match case is missing: {other}")
