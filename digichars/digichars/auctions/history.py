"""
Auction history views

Views are recomputed from a read snapshot every time they are invoked. Reads that are still required are requested
through the `LedgerReadAdapter`, and the view reports `is_loading` until they resolve.

Reads that can still change, i.e., the current auction ID and the open auction's reads, are only fetched again when
the view is refreshed. While a refresh is in flight, the last value remains visible and the view reports
`is_loading`.
"""
from dataclasses import dataclass
from datetime import datetime, UTC
from threading import Lock
from typing import Callable, Iterable, Sequence

from digichars.auctions.builder import AuctionRecordBuilder
from digichars.auctions.domain import AuctionIdPolicy, AuctionRecord
from digichars.core.logging import get_logger
from digichars.ledger.model import AuctionId, LedgerQuery, Read, Wei
from digichars.ledger.read_adapter import LedgerReadAdapter, ReadSnapshot

# 5 auctions deep x 3 characters = 15 character reads per pass
DEFAULT_MAX_AUCTIONS = 5

GetAuctionRecordsFn = Callable[[Sequence[AuctionId]], dict[AuctionId, AuctionRecord]]
StoreAuctionRecordsFn = Callable[[Sequence[AuctionRecord]], object]


class ClosedAuctionTracker:
    """
    Tracks when each auction was first seen as closed, i.e., when the current auction ID first moved past it.

    Reads for an auction that were fetched before it was seen as closed may reflect the auction while it was still
    open, e.g., its character pools before the final bids landed, or its token address before it was deployed.
    Such reads are stale and need to be fetched again.
    """

    def __init__(self):
        self._closed_at: dict[AuctionId, int] = {}
        self._lock = Lock()

    def observe(self, auction_ids: Iterable[AuctionId], snapshot: ReadSnapshot):
        """
        :param snapshot: the snapshot that reported the auctions as closed
        """
        with self._lock:
            for auction_id in auction_ids:
                self._closed_at.setdefault(auction_id, snapshot.sequence)

    def stale_queries(
        self, auction_id: AuctionId, snapshot: ReadSnapshot
    ) -> list[LedgerQuery]:
        """
        :return: settled record reads that were fetched before the auction was seen as closed
        """
        with self._lock:
            closed_at = self._closed_at.get(auction_id)
        if closed_at is None:
            return []
        return [
            query
            for query in AuctionRecordBuilder.queries(auction_id)
            if not snapshot.get(query).is_pending
            and not snapshot.fetched_after(query, closed_at)
        ]

    def is_stale(self, auction_id: AuctionId, snapshot: ReadSnapshot) -> bool:
        return len(self.stale_queries(auction_id, snapshot)) > 0


@dataclass(slots=True, frozen=True)
class PastAuctionsView:
    """
    A capped window of past auctions, most recent first
    """

    records: tuple[AuctionRecord, ...]
    total_past_auctions: int
    is_loading: bool
    # number of most recent past auctions that were skipped
    offset: int = 0
    # auction IDs covered by the window
    auction_ids: tuple[AuctionId, ...] = ()
    # read adapter version the view was computed from
    version: int = 0

    @property
    def has_more(self) -> bool:
        """
        :return: True if there are older past auctions beyond this window
        """
        return self.offset + len(self.auction_ids) < self.total_past_auctions

    @property
    def next_offset(self) -> int:
        return self.offset + len(self.auction_ids)


class PastAuctions:
    """
    Past auctions are read in windows of at most `max_auctions` auctions.

    Notes
    -----
    - Auction IDs beyond the window are never requested. Older auctions are reached by paging through successive
      windows via `offset`.
    - Records that are pending or not found are dropped from the view.
    - Record reads that were fetched before the auction was seen as closed are fetched again.
    - If a closed auction store is configured, then stored records are served from the store, and records for
      closed auctions whose state is final are stored once they are built. An auction's state is final when
      all characters have resolved and either the winner's token address is known, or there is no winner.
      Only records built from reads that were fetched after the auction was seen as closed are stored.
    """

    def __init__(
        self,
        reader: LedgerReadAdapter,
        policy: AuctionIdPolicy,
        max_auctions: int = DEFAULT_MAX_AUCTIONS,
        get_auction_records: GetAuctionRecordsFn | None = None,
        store_auction_records: StoreAuctionRecordsFn | None = None,
    ):
        if max_auctions < 1:
            raise ValueError("max_auctions must be >= 1")
        self._reader = reader
        self._policy = policy
        self._max_auctions = max_auctions
        self._builder = AuctionRecordBuilder()
        self._get_auction_records = get_auction_records
        self._store_auction_records = store_auction_records
        self._closed_auctions = ClosedAuctionTracker()
        self._store_lock = Lock()
        self._logger = get_logger(self)

    @property
    def max_auctions(self) -> int:
        return self._max_auctions

    def refresh(self, offset: int = 0):
        """
        Fetches the current auction ID again, along with the token address of the auctions in the window that have
        a winner whose token has not been deployed yet.
        """
        current_auction_id_query = LedgerQuery.current_auction_id()
        queries = [current_auction_id_query]
        snapshot = self._reader.snapshot()
        current_auction_id = snapshot.get(current_auction_id_query)
        if current_auction_id.is_resolved:
            auction_ids = self._policy.past_auction_ids(
                int(current_auction_id.get()), offset=offset, limit=self._max_auctions
            )
            for auction_id, read in self._builder.build_all(auction_ids, snapshot).items():
                if (
                    read.is_resolved
                    and read.get().winner_index is not None
                    and read.get().token_address is None
                ):
                    queries.append(LedgerQuery.token_address(auction_id))
        self._reader.request(queries, refresh=True)

    def __call__(self, offset: int = 0, now: datetime | None = None) -> PastAuctionsView:
        current_auction_id_query = LedgerQuery.current_auction_id()
        self._reader.request([current_auction_id_query])
        snapshot = self._reader.snapshot()
        current_auction_id = snapshot.get(current_auction_id_query)
        if not current_auction_id.is_resolved:
            return PastAuctionsView(
                records=(),
                total_past_auctions=0,
                is_loading=current_auction_id.is_pending,
                offset=offset,
                version=snapshot.version,
            )

        current = int(current_auction_id.get())
        auction_ids = self._policy.past_auction_ids(
            current, offset=offset, limit=self._max_auctions
        )
        self._closed_auctions.observe(auction_ids, snapshot)

        stored = (
            self._get_auction_records(auction_ids) if self._get_auction_records else {}
        )
        unstored = [auction_id for auction_id in auction_ids if auction_id not in stored]
        self._reader.request(
            query
            for auction_id in unstored
            for query in self._builder.queries(auction_id)
        )
        self._reader.request(
            (
                query
                for auction_id in unstored
                for query in self._closed_auctions.stale_queries(auction_id, snapshot)
            ),
            refresh=True,
        )

        snapshot = self._reader.snapshot()
        built = self._builder.build_all(unstored, snapshot)

        records: list[AuctionRecord] = []
        for auction_id in auction_ids:
            if auction_id in stored:
                records.append(stored[auction_id])
            elif built[auction_id].is_resolved:
                records.append(built[auction_id].get())

        self._store_final_records(
            [
                built[auction_id]
                for auction_id in unstored
                if not self._closed_auctions.is_stale(auction_id, snapshot)
            ],
            now if now else datetime.now(UTC),
        )

        return PastAuctionsView(
            records=tuple(records),
            total_past_auctions=self._policy.total_past_auctions(current),
            is_loading=(
                snapshot.is_refreshing(current_auction_id_query)
                or any(read.is_pending for read in built.values())
                or any(
                    self._closed_auctions.is_stale(auction_id, snapshot)
                    or any(
                        snapshot.is_refreshing(query)
                        for query in self._builder.queries(auction_id)
                    )
                    for auction_id in unstored
                )
            ),
            offset=offset,
            auction_ids=tuple(auction_ids),
            version=snapshot.version,
        )

    def _store_final_records(self, reads: Iterable[Read[AuctionRecord]], now: datetime):
        if self._store_auction_records is None:
            return
        final = [
            read.get()
            for read in reads
            if read.is_resolved and is_final(read.get(), now)
        ]
        if final:
            # views may be computed concurrently, e.g., by the reconciliation service
            with self._store_lock:
                result = self._store_auction_records(final)
            self._logger.debug("stored closed auctions: %s", result)


def is_final(record: AuctionRecord, now: datetime) -> bool:
    """
    :return: True if the auction record will no longer change
    """
    return (
        record.is_closed(now)
        and record.is_complete
        and (record.winner_index is None or record.token_address is not None)
    )


@dataclass(slots=True, frozen=True)
class CurrentAuctionView:
    """
    Dashboard view of the open auction and the auction before it
    """

    current_auction_id: Read[AuctionId]
    current: Read[AuctionRecord]
    # None if there is no previous auction
    previous: Read[AuctionRecord] | None
    # True while reads that back the view are being fetched again
    is_refreshing: bool = False
    # read adapter version the view was computed from
    version: int = 0

    @property
    def is_loading(self) -> bool:
        return (
            self.is_refreshing
            or self.current_auction_id.is_pending
            or self.current.is_pending
            or (self.previous is not None and self.previous.is_pending)
        )


class CurrentAuction:
    """
    Builds the open auction record and the previous auction record
    """

    def __init__(self, reader: LedgerReadAdapter, policy: AuctionIdPolicy):
        self._reader = reader
        self._policy = policy
        self._builder = AuctionRecordBuilder()
        self._closed_auctions = ClosedAuctionTracker()

    def refresh(self):
        """
        Fetches the current auction ID and the open auction's reads again.
        """
        current_auction_id_query = LedgerQuery.current_auction_id()
        queries = [current_auction_id_query]
        current_auction_id = self._reader.snapshot().get(current_auction_id_query)
        if current_auction_id.is_resolved:
            open_auction_id = self._policy.open_auction_id(int(current_auction_id.get()))
            if open_auction_id is not None:
                queries.extend(self._builder.queries(open_auction_id))
        self._reader.request(queries, refresh=True)

    def __call__(self) -> CurrentAuctionView:
        current_auction_id_query = LedgerQuery.current_auction_id()
        self._reader.request([current_auction_id_query])
        snapshot = self._reader.snapshot()
        current_auction_id = snapshot.get(current_auction_id_query)
        if not current_auction_id.is_resolved:
            return CurrentAuctionView(
                current_auction_id=current_auction_id,
                current=current_auction_id,
                previous=None,
                version=snapshot.version,
            )

        current = int(current_auction_id.get())
        open_auction_id = self._policy.open_auction_id(current)
        previous_auction_id = self._policy.previous_auction_id(current)
        auction_ids = [
            auction_id
            for auction_id in (open_auction_id, previous_auction_id)
            if auction_id is not None
        ]
        self._reader.request(
            query
            for auction_id in auction_ids
            for query in self._builder.queries(auction_id)
        )
        if previous_auction_id is not None:
            self._closed_auctions.observe([previous_auction_id], snapshot)
            self._reader.request(
                self._closed_auctions.stale_queries(previous_auction_id, snapshot),
                refresh=True,
            )

        snapshot = self._reader.snapshot()
        return CurrentAuctionView(
            current_auction_id=current_auction_id,
            current=(
                self._builder.build(open_auction_id, snapshot)
                if open_auction_id is not None
                else Read.not_found(f"no open auction: current auction ID = {current}")
            ),
            previous=(
                self._builder.build(previous_auction_id, snapshot)
                if previous_auction_id is not None
                else None
            ),
            is_refreshing=(
                snapshot.is_refreshing(current_auction_id_query)
                or any(
                    snapshot.is_refreshing(query)
                    for auction_id in auction_ids
                    for query in self._builder.queries(auction_id)
                )
                or (
                    previous_auction_id is not None
                    and self._closed_auctions.is_stale(previous_auction_id, snapshot)
                )
            ),
            version=snapshot.version,
        )


@dataclass(slots=True, frozen=True)
class PastAuctionStats:
    """
    Summary over past auction records
    """

    completed_auctions: int
    # auctions that produced a winning character
    characters_created: int
    # sum of the winning characters' pool balances
    total_volume: Wei

    @classmethod
    def compute(cls, records: Iterable[AuctionRecord]) -> "PastAuctionStats":
        records = list(records)
        winners = [record.winner for record in records if record.winner is not None]
        return cls(
            completed_auctions=len(records),
            characters_created=len(winners),
            total_volume=Wei(sum(winner.pool_balance for winner in winners)),
        )
