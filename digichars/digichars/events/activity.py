"""
Auction activity
"""
from dataclasses import dataclass
from typing import Iterable

from digichars.events.model import BidEvent, WithdrawEvent
from digichars.ledger.model import Address, AuctionId, CharacterIndex, Wei


@dataclass(slots=True, frozen=True)
class BidderTotal:
    bidder: Address
    bid_count: int
    total_amount: Wei


@dataclass(slots=True, frozen=True)
class AuctionActivitySummary:
    """
    Derived from the event log. It is never persisted.

    `bids_by_character` groups bids per character, ordered by timestamp ascending.
    `unique_bidders` is ordered by first appearance in the log.
    """

    auction_id: AuctionId
    bids: tuple[BidEvent, ...]
    withdrawals: tuple[WithdrawEvent, ...]
    bids_by_character: dict[CharacterIndex, tuple[BidEvent, ...]]
    unique_bidders: tuple[Address, ...]

    @property
    def total_bids(self) -> int:
        return len(self.bids)

    @property
    def total_volume(self) -> Wei:
        return Wei(sum(bid.amount for bid in self.bids))

    @property
    def total_withdrawn(self) -> Wei:
        return Wei(sum(withdrawal.amount for withdrawal in self.withdrawals))

    def top_bidders(self, limit: int = 6) -> list[BidderTotal]:
        """
        Per bidder totals, ordered by the bidder's first appearance in the log
        """
        counts: dict[Address, int] = {}
        totals: dict[Address, int] = {}
        for bid in self.bids:
            counts[bid.bidder] = counts.get(bid.bidder, 0) + 1
            totals[bid.bidder] = totals.get(bid.bidder, 0) + bid.amount
        return [
            BidderTotal(bidder, counts[bidder], Wei(totals[bidder]))
            for bidder in self.unique_bidders[:limit]
        ]


def summarize_auction_activity(
    auction_id: AuctionId,
    bids: Iterable[BidEvent],
    withdrawals: Iterable[WithdrawEvent],
) -> AuctionActivitySummary:
    """
    Pure function: the same events always produce the same summary.

    Bids are grouped by character index. Each group is sorted by timestamp; the sort is stable, i.e., bids with the
    same timestamp keep their log order.
    """
    bids = tuple(bids)

    groups: dict[CharacterIndex, list[BidEvent]] = {}
    for bid in bids:
        groups.setdefault(bid.character_index, []).append(bid)

    return AuctionActivitySummary(
        auction_id=auction_id,
        bids=bids,
        withdrawals=tuple(withdrawals),
        bids_by_character={
            index: tuple(sorted(group, key=lambda bid: bid.timestamp))
            for index, group in sorted(groups.items())
        },
        unique_bidders=tuple(dict.fromkeys(bid.bidder for bid in bids)),
    )
