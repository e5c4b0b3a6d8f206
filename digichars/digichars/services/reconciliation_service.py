"""
Provides service that keeps the auction views and the leaderboard in sync with the ledger
"""
from dataclasses import dataclass
from datetime import timedelta
from threading import Event, Lock, Thread

from reactivex import Observable, Subject
from reactivex.abc import DisposableBase
from reactivex.operators import observe_on

from digichars.auctions.history import (
    CurrentAuction,
    CurrentAuctionView,
    PastAuctions,
    PastAuctionsView,
)
from digichars.auctions.leaderboard import LeaderboardEntry, build_leaderboard
from digichars.core.rx import default_scheduler
from digichars.core.service import Service
from digichars.ledger.read_adapter import LedgerReadAdapter, ReadUpdate


@dataclass(slots=True, frozen=True)
class AuctionSnapshot:
    """
    Derived views computed from the same read state
    """

    # read adapter version the snapshot was computed from
    version: int
    past_auctions: PastAuctionsView
    leaderboard: tuple[LeaderboardEntry, ...]
    # None if the service does not track the current auction
    current_auction: CurrentAuctionView | None = None

    @property
    def is_loading(self) -> bool:
        return self.past_auctions.is_loading or (
            self.current_auction is not None and self.current_auction.is_loading
        )


class AuctionReconciliationService(Service):
    """
    Launches a background thread that refreshes the ledger reads that can still change on every poll, i.e., the
    current auction ID, the open auction's reads, and the tokens that have not been deployed yet.

    Every read update triggers a full recomputation of the derived views, which are published as `AuctionSnapshot`s.
    Recomputation is skipped if the read adapter version has not changed since the last snapshot.
    Snapshots are published in version order.
    """

    def __init__(
        self,
        reader: LedgerReadAdapter,
        past_auctions: PastAuctions,
        current_auction: CurrentAuction | None = None,
        poll_interval: timedelta = timedelta(seconds=3),
    ):
        super().__init__()

        self._reader = reader
        self._past_auctions = past_auctions
        self._current_auction = current_auction
        self._poll_interval = poll_interval

        self._lock = Lock()
        self._snapshot: AuctionSnapshot | None = None
        self._shutdown = Event()
        self._subscription: DisposableBase | None = None

        self._subject: Subject[AuctionSnapshot] = Subject()
        self._observable: Observable[AuctionSnapshot] = self._subject.pipe(
            observe_on(default_scheduler)
        )

    @property
    def poll_interval(self) -> timedelta:
        return self._poll_interval

    @property
    def snapshots(self) -> Observable[AuctionSnapshot]:
        """
        Recomputed snapshots are published to this stream
        """
        return self._observable

    @property
    def snapshot(self) -> AuctionSnapshot | None:
        """
        :return: the most recent snapshot, or None if nothing has been computed yet
        """
        return self._snapshot

    def recompute(self) -> AuctionSnapshot:
        """
        Recomputes the derived views from current read state.
        """
        with self._lock:
            version = self._reader.version
            if self._snapshot is not None and self._snapshot.version == version:
                return self._snapshot

            current_auction = (
                self._current_auction() if self._current_auction else None
            )
            past_auctions = self._past_auctions()
            snapshot = AuctionSnapshot(
                # reads may have changed in between the views
                version=(
                    min(current_auction.version, past_auctions.version)
                    if current_auction
                    else past_auctions.version
                ),
                past_auctions=past_auctions,
                leaderboard=tuple(build_leaderboard(past_auctions.records)),
                current_auction=current_auction,
            )
            self._snapshot = snapshot

            self._logger.debug(
                "recomputed: version=%s records=%s is_loading=%s",
                snapshot.version,
                len(snapshot.past_auctions.records),
                snapshot.is_loading,
            )
            self._subject.on_next(snapshot)
            return snapshot

    def _on_read_update(self, update: ReadUpdate):
        self._logger.debug("read update: %s", update.query)
        self.recompute()

    def _poll(self):
        if self._current_auction:
            self._current_auction.refresh()
        self._past_auctions.refresh()
        self.recompute()

    def _start(self):
        self._shutdown.clear()
        self._subscription = self._reader.updates.pipe(
            observe_on(default_scheduler)
        ).subscribe(
            on_next=self._on_read_update,
            on_error=lambda err: self._logger.error("read update error: %s", err),
        )

        def run():
            self._logger.info("running")
            while not self._shutdown.is_set():
                try:
                    self._poll()
                except Exception:  # pylint: disable=broad-exception-caught
                    self._logger.exception("poll failed")
                self._shutdown.wait(self._poll_interval.total_seconds())
            self._logger.info("stop signalled - exiting")

        Thread(target=run, name=self.name, daemon=True).start()

    def _stop(self):
        self._shutdown.set()
        if self._subscription is not None:
            self._subscription.dispose()
            self._subscription = None
