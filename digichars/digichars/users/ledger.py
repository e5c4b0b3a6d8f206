"""
Per-user auction ledger

Combines the connected account's per-character bid balances and unclaimed token reads into per-auction ledgers and
summary stats.

Notes
-----
- Bid balances already reflect withdrawals on the ledger. Withdrawal events are never applied to them again.
- An auction is only included once all of its user reads have settled, and only if the user has a non-zero bid on
  some character or a non-zero claimable token balance. Auctions with pending reads are left out of the result, and
  the result reports that it is loading. A pending read is never treated as zero.
"""
from dataclasses import dataclass, field
from threading import Lock
from typing import AbstractSet, Iterable, Sequence

from digichars.core.logging import get_logger
from digichars.events.event_log import EventLogCache
from digichars.ledger.model import (
    CHARACTER_SLOTS,
    Address,
    AuctionId,
    CharacterIndex,
    LedgerQuery,
    Read,
    Wei,
)
from digichars.ledger.read_adapter import LedgerReadAdapter, ReadSnapshot


@dataclass(slots=True, frozen=True)
class CharacterBid:
    character_index: CharacterIndex
    bid_amount: Wei


@dataclass(slots=True, frozen=True)
class UserAuctionLedger:
    auction_id: AuctionId
    # only characters with a non-zero bid, in slot order
    character_bids: tuple[CharacterBid, ...]
    claimable_tokens: int
    # derived from the TokensClaimed event log
    has_claimed_tokens: bool = False

    @property
    def total_bid_amount(self) -> Wei:
        return Wei(sum(bid.bid_amount for bid in self.character_bids))


@dataclass(slots=True, frozen=True)
class UserStats:
    total_bids: int = 0
    total_bid_amount: Wei = Wei(0)
    total_claimable_tokens: int = 0
    # auctions with claimable tokens that have not been claimed yet
    auctions_with_claimable_tokens: int = 0
    auctions_participated: int = 0


@dataclass(slots=True, frozen=True)
class UserLedgers:
    ledgers: tuple[UserAuctionLedger, ...]
    # True if some auction's reads are still pending
    is_loading: bool


def user_queries(user: Address, auction_ids: Iterable[AuctionId]) -> list[LedgerQuery]:
    """
    :return: per auction, a bid balance read for each character slot plus an unclaimed tokens read
    """
    return [
        query
        for auction_id in auction_ids
        for query in (
            *(
                LedgerQuery.user_bid_balance(user, auction_id, index)
                for index in range(CHARACTER_SLOTS)
            ),
            LedgerQuery.unclaimed_tokens(user, auction_id),
        )
    ]


def _settled_value(read: Read[int]) -> int:
    # the ledger confirmed there is no balance
    if read.is_not_found:
        return 0
    return int(read.get())


def build_user_ledgers(
    user: Address,
    auction_ids: Sequence[AuctionId],
    reads: ReadSnapshot,
    claimed_auction_ids: AbstractSet[AuctionId] = frozenset(),
) -> UserLedgers:
    """
    Pure function of its inputs, i.e., it is safe to recompute on every read update.

    Ledgers are returned in `auction_ids` order.
    """
    ledgers = []
    is_loading = False
    for auction_id in auction_ids:
        bid_reads = [
            reads.get(LedgerQuery.user_bid_balance(user, auction_id, index))
            for index in range(CHARACTER_SLOTS)
        ]
        claimable_read = reads.get(LedgerQuery.unclaimed_tokens(user, auction_id))
        if claimable_read.is_pending or any(read.is_pending for read in bid_reads):
            is_loading = True
            continue

        character_bids = tuple(
            CharacterBid(CharacterIndex(index), Wei(amount))
            for index, amount in enumerate(_settled_value(read) for read in bid_reads)
            if amount > 0
        )
        claimable_tokens = _settled_value(claimable_read)
        if not character_bids and claimable_tokens == 0:
            continue

        ledgers.append(
            UserAuctionLedger(
                auction_id=auction_id,
                character_bids=character_bids,
                claimable_tokens=claimable_tokens,
                has_claimed_tokens=auction_id in claimed_auction_ids,
            )
        )

    return UserLedgers(ledgers=tuple(ledgers), is_loading=is_loading)


def compute_user_stats(ledgers: Iterable[UserAuctionLedger]) -> UserStats:
    ledgers = list(ledgers)
    return UserStats(
        total_bids=sum(len(ledger.character_bids) for ledger in ledgers),
        total_bid_amount=Wei(sum(ledger.total_bid_amount for ledger in ledgers)),
        total_claimable_tokens=sum(ledger.claimable_tokens for ledger in ledgers),
        auctions_with_claimable_tokens=sum(
            1
            for ledger in ledgers
            if ledger.claimable_tokens > 0 and not ledger.has_claimed_tokens
        ),
        auctions_participated=len(ledgers),
    )


@dataclass(slots=True, frozen=True)
class UserAuctionHistoryView:
    user: Address | None
    ledgers: tuple[UserAuctionLedger, ...] = ()
    stats: UserStats = field(default_factory=UserStats)
    is_loading: bool = False

    @property
    def is_connected(self) -> bool:
        return self.user is not None


class UserAuctionHistory:
    """
    Auction history for the connected account.

    The history uses its own `LedgerReadAdapter`. Connecting or disconnecting an account resets the adapter, which
    discards the reads for the previous account, including reads that are still in flight.
    """

    def __init__(
        self, reader: LedgerReadAdapter, event_log: EventLogCache | None = None
    ):
        self._reader = reader
        self._event_log = event_log
        self._user: Address | None = None
        self._lock = Lock()
        self._logger = get_logger(self)
        self._claims_warning_logged = False

    @property
    def user(self) -> Address | None:
        return self._user

    def connect(self, user: Address):
        with self._lock:
            self._reader.reset()
            self._user = user
        self._logger.info("connected: %s", user)

    def disconnect(self):
        with self._lock:
            self._reader.reset()
            self._user = None
        self._logger.info("disconnected")

    def refresh(self, auction_ids: Iterable[AuctionId]):
        """
        Fetches the connected account's reads for the specified auctions again, e.g., after a withdrawal or claim.
        The last values remain visible until the refreshed values arrive.
        """
        with self._lock:
            if self._user is None:
                return
            self._reader.request(user_queries(self._user, auction_ids), refresh=True)

    def __call__(self, auction_ids: Sequence[AuctionId]) -> UserAuctionHistoryView:
        with self._lock:
            user = self._user
            if user is None:
                return UserAuctionHistoryView(user=None)
            queries = user_queries(user, auction_ids)
            self._reader.request(queries)
            snapshot = self._reader.snapshot()

        result = build_user_ledgers(
            user, auction_ids, snapshot, self._claimed_auction_ids(user)
        )
        return UserAuctionHistoryView(
            user=user,
            ledgers=result.ledgers,
            stats=compute_user_stats(result.ledgers),
            is_loading=result.is_loading
            or any(snapshot.is_refreshing(query) for query in queries),
        )

    def _claimed_auction_ids(self, user: Address) -> frozenset[AuctionId]:
        if self._event_log is None or not self._event_log.is_loaded:
            return frozenset()
        if not self._event_log.claims_available and not self._claims_warning_logged:
            self._claims_warning_logged = True
            self._logger.warning(
                "claim log is unavailable - has_claimed_tokens is reported as False"
            )
        return self._event_log.claimed_auction_ids(user)
