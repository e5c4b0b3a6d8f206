"""
Session event log cache
"""
from threading import Lock

from digichars.core.logging import get_logger
from digichars.events.activity import AuctionActivitySummary, summarize_auction_activity
from digichars.events.model import BidEvent, ClaimEvent, WithdrawEvent
from digichars.events.normalizer import (
    to_bid_event,
    to_claim_event,
    to_withdraw_event,
)
from digichars.ledger.client import LedgerEventSource
from digichars.ledger.model import (
    Address,
    AuctionId,
    LedgerError,
    LedgerEventKind,
    same_address,
)


class EventLogCache:
    """
    Ingests the full event history once, starting from `from_block`, and caches it for the session.

    Notes
    -----
    - Events are kept in ledger order. They are not re-sorted at ingestion.
    - `ingest()` is guarded by a lock, i.e., there is a single writer. Once the log is loaded, it is only read.
    - If the bid or withdraw log cannot be read, then the error propagates and the cache stays unloaded.
    - If the claim log cannot be read, then the error is logged and claims are treated as empty.
      `claims_available` reports whether the claim log was ingested.
    """

    def __init__(self, source: LedgerEventSource, from_block: int = 0):
        self._source = source
        self._from_block = from_block
        self._lock = Lock()
        self._loaded = False
        self._claims_available = False
        self._bids: tuple[BidEvent, ...] = ()
        self._withdrawals: tuple[WithdrawEvent, ...] = ()
        self._claims: tuple[ClaimEvent, ...] = ()
        self._logger = get_logger(self)

    @property
    def is_loaded(self) -> bool:
        return self._loaded

    @property
    def claims_available(self) -> bool:
        return self._claims_available

    @property
    def bids(self) -> tuple[BidEvent, ...]:
        return self._bids

    @property
    def withdrawals(self) -> tuple[WithdrawEvent, ...]:
        return self._withdrawals

    @property
    def claims(self) -> tuple[ClaimEvent, ...]:
        return self._claims

    def ingest(self):
        """
        Ingests the event logs. Once the log is loaded, this is a noop.
        """
        with self._lock:
            if self._loaded:
                return

            bids = tuple(
                to_bid_event(raw)
                for raw in self._source.get_event_log(
                    LedgerEventKind.BID_PLACED, self._from_block
                )
            )
            withdrawals = tuple(
                to_withdraw_event(raw)
                for raw in self._source.get_event_log(
                    LedgerEventKind.BID_WITHDRAWN, self._from_block
                )
            )
            try:
                claims = tuple(
                    to_claim_event(raw)
                    for raw in self._source.get_event_log(
                        LedgerEventKind.TOKENS_CLAIMED, self._from_block
                    )
                )
                self._claims_available = True
            except LedgerError as err:
                self._logger.error(
                    "claim log is unavailable - token claims cannot be tracked: %s", err
                )
                claims = ()

            self._bids = bids
            self._withdrawals = withdrawals
            self._claims = claims
            self._loaded = True
            self._logger.info(
                "ingested events: bids=%s withdrawals=%s claims=%s",
                len(bids),
                len(withdrawals),
                len(claims),
            )

    def auction_activity(self, auction_id: AuctionId) -> AuctionActivitySummary | None:
        """
        :return: None while the event log is loading
        """
        if not self._loaded:
            return None
        return summarize_auction_activity(
            auction_id,
            [bid for bid in self._bids if bid.auction_id == auction_id],
            [
                withdrawal
                for withdrawal in self._withdrawals
                if withdrawal.auction_id == auction_id
            ],
        )

    def claimed_auction_ids(self, user: Address) -> frozenset[AuctionId]:
        """
        :return: IDs of the auctions that the user has claimed tokens for
        """
        return frozenset(
            claim.auction_id for claim in self._claims if same_address(claim.user, user)
        )
