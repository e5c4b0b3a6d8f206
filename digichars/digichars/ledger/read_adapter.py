"""
Reactive ledger read tracker

Ledger reads resolve asynchronously and independently of each other. `LedgerReadAdapter` issues reads on a bounded
scheduler and tracks the state of every query it has seen. Derived views are computed from a `ReadSnapshot`, which is
a consistent copy of the read states at a point in time.
"""
from dataclasses import dataclass, field
from threading import RLock
from typing import Any, Iterable, Mapping

from reactivex import Observable, Subject
from reactivex.abc import SchedulerBase

from digichars.core.logging import get_logger
from digichars.core.rx import bounded_scheduler
from digichars.ledger.client import LedgerClient
from digichars.ledger.model import (
    LedgerCallRejected,
    LedgerQuery,
    LedgerUnavailable,
    QueryKind,
    Read,
)

# 5 auctions deep x 3 characters
DEFAULT_MAX_CONCURRENT_READS = 15


@dataclass(slots=True, frozen=True)
class ReadUpdate:
    """
    Published whenever a read resolves
    """

    query: LedgerQuery
    read: Read[Any]
    generation: int


@dataclass(slots=True, frozen=True)
class ReadSnapshot:
    """
    Immutable view of read states.

    Queries that have never been requested are reported as pending.
    """

    reads: Mapping[LedgerQuery, Read[Any]] = field(default_factory=dict)
    generation: int = 0
    # incremented on every read state change
    version: int = 0
    # fetch sequence number of each settled read, assigned when the fetch started
    fetched_at: Mapping[LedgerQuery, int] = field(default_factory=dict)
    # the last fetch sequence number that was assigned when the snapshot was taken
    sequence: int = 0
    in_flight: frozenset[LedgerQuery] = frozenset()

    def get(self, query: LedgerQuery) -> Read[Any]:
        return self.reads.get(query, Read.pending())

    def any_pending(self, queries: Iterable[LedgerQuery]) -> bool:
        return any(self.get(query).is_pending for query in queries)

    def is_refreshing(self, query: LedgerQuery) -> bool:
        """
        :return: True if a settled read is being fetched again
        """
        return query in self.in_flight and not self.get(query).is_pending

    def fetched_after(self, query: LedgerQuery, sequence: int) -> bool:
        """
        :return: True if the read was fetched after the specified fetch sequence number
        """
        return self.fetched_at.get(query, 0) > sequence


class LedgerReadAdapter:
    """
    Issues ledger reads and tracks their state.

    Notes
    -----
    - The number of reads in flight is bounded by the scheduler, which by default is a thread pool sized to
      `max_concurrent_reads`.
    - A query is fetched at most once unless it is explicitly refreshed. Views refresh the reads that can still
      change, e.g., the current auction ID and the open auction's character pools.
    - Every fetch is assigned a sequence number when it starts. It is used to tell whether a read was fetched
      before or after some point in time, e.g., before or after an auction closed.
    - If the ledger rejects a read, then the read is NOT_FOUND.
    - If the ledger is unavailable, then the read stays PENDING and will be fetched again the next time it is
      requested. There is no retry loop.
    - `reset()` starts a new generation: all read state is cleared, and reads from the previous generation that
      resolve afterwards are discarded.
    """

    def __init__(
        self,
        client: LedgerClient,
        scheduler: SchedulerBase | None = None,
        max_concurrent_reads: int = DEFAULT_MAX_CONCURRENT_READS,
    ):
        self._client = client
        self._scheduler = (
            scheduler if scheduler else bounded_scheduler(max_concurrent_reads)
        )
        self._lock = RLock()
        self._reads: dict[LedgerQuery, Read[Any]] = {}
        self._in_flight: set[LedgerQuery] = set()
        self._fetched_at: dict[LedgerQuery, int] = {}
        self._generation = 0
        self._version = 0
        self._sequence = 0
        self._updates: Subject[ReadUpdate] = Subject()
        self._logger = get_logger(self)

    @property
    def updates(self) -> Observable[ReadUpdate]:
        """
        Read updates are published on the thread that ran the read.
        """
        return self._updates

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def version(self) -> int:
        return self._version

    def read(self, query: LedgerQuery) -> Read[Any]:
        """
        Returns the current state of the read. If the query has not been fetched yet, then it is scheduled.
        """
        self.request([query])
        with self._lock:
            return self._reads.get(query, Read.pending())

    def request(self, queries: Iterable[LedgerQuery], refresh: bool = False):
        """
        Schedules reads for the queries that are not resolved yet.

        :param refresh: if True, then resolved queries are fetched again. The resolved value remains visible
                        until the refreshed value arrives.
        """
        with self._lock:
            generation = self._generation
            scheduled = []
            for query in queries:
                if query in self._in_flight:
                    continue
                read = self._reads.get(query)
                if read is not None and not read.is_pending and not refresh:
                    continue
                self._in_flight.add(query)
                scheduled.append(query)

        for query in scheduled:
            self._scheduler.schedule(
                lambda _scheduler, _state, query=query: self._fetch(query, generation)
            )

    def snapshot(self) -> ReadSnapshot:
        with self._lock:
            return ReadSnapshot(
                reads=dict(self._reads),
                generation=self._generation,
                version=self._version,
                fetched_at=dict(self._fetched_at),
                sequence=self._sequence,
                in_flight=frozenset(self._in_flight),
            )

    def reset(self):
        """
        Discards all read state. Reads that are in flight will be discarded when they resolve.
        """
        with self._lock:
            self._generation += 1
            self._version += 1
            self._reads.clear()
            self._in_flight.clear()
            self._fetched_at.clear()
            self._logger.debug("reset: generation=%s", self._generation)

    def _fetch(self, query: LedgerQuery, generation: int):
        with self._lock:
            self._sequence += 1
            sequence = self._sequence

        try:
            read = Read.resolved(self._execute(query))
        except LedgerCallRejected as err:
            self._logger.debug("read rejected: %s : %s", query, err)
            read = Read.not_found(str(err.cause))
        except LedgerUnavailable as err:
            self._logger.warning("ledger unavailable: %s : %s", query, err)
            read = Read.pending()
        except Exception:
            self._logger.exception("read failed: %s", query)
            with self._lock:
                if generation == self._generation:
                    self._in_flight.discard(query)
            raise

        with self._lock:
            if generation != self._generation:
                self._logger.debug(
                    "discarding stale read: %s : generation=%s", query, generation
                )
                return
            self._in_flight.discard(query)
            if read.is_pending and query in self._reads:
                last = self._reads[query]
                if last.is_pending:
                    return
                # the refresh is over, but the last settled value remains visible
                read = last
            else:
                self._reads[query] = read
                if not read.is_pending:
                    self._fetched_at[query] = sequence
            self._version += 1

        self._updates.on_next(ReadUpdate(query, read, generation))

    def _execute(self, query: LedgerQuery) -> Any:
        # pylint: disable=too-many-return-statements
        client = self._client
        match query.kind:
            case QueryKind.CURRENT_AUCTION_ID:
                return client.read_current_auction_id()
            case QueryKind.CHARACTER:
                return client.read_character(query.auction_id, query.character_index)  # type: ignore
            case QueryKind.AUCTION_END_TIME:
                return client.read_auction_end_time(query.auction_id)  # type: ignore
            case QueryKind.TOKEN_ADDRESS:
                return client.read_token_address(query.auction_id)  # type: ignore
            case QueryKind.USER_BID_BALANCE:
                return client.read_user_bid_balance(
                    query.user, query.auction_id, query.character_index  # type: ignore
                )
            case QueryKind.UNCLAIMED_TOKENS:
                return client.read_unclaimed_tokens(query.user, query.auction_id)  # type: ignore
            case QueryKind.FIELD:
                return client.read_field(query.auction_id, query.field_name)  # type: ignore
            case other:
                raise AssertionError(f"QueryKind match case is missing: {other}")
