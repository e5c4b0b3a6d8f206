"""
DigiChars auction shell
"""
import time
from datetime import timedelta
from pathlib import Path
from typing import Callable, TypeVar

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from digichars.actions import ActionResult, AuctionActions
from digichars.auctions.history import (
    CurrentAuction,
    CurrentAuctionView,
    PastAuctions,
    PastAuctionsView,
)
from digichars.auctions.leaderboard import (
    AuctionFilter,
    LeaderboardEntry,
    build_leaderboard,
    filter_auctions,
)
from digichars.auctions.builder import AuctionRecordBuilder
from digichars.auctions.domain import AuctionRecord
from digichars.commands.data.queries.get_auction_records import (
    GetAuctionRecord,
    GetAuctionRecords,
)
from digichars.commands.data.queries.get_stored_auction_ids import GetStoredAuctionIds
from digichars.commands.data.store_auction_records import StoreAuctionRecords
from digichars.config import DigiCharsConfig
from digichars.core.logging import configure_logging, get_logger
from digichars.core.paging import Page, PageRequest, paginate
from digichars.data import Base
from digichars.events.activity import AuctionActivitySummary
from digichars.events.event_log import EventLogCache
from digichars.ledger.abi import load_abi
from digichars.ledger.client import Ledger
from digichars.ledger.model import Address, AuctionId, Read
from digichars.ledger.read_adapter import LedgerReadAdapter
from digichars.ledger.web3_client import Web3LedgerClient, connect
from digichars.services.reconciliation_service import (
    AuctionReconciliationService,
    AuctionSnapshot,
)
from digichars.users.ledger import UserAuctionHistory, UserAuctionHistoryView

V = TypeVar("V")


class AccountNotConnected(Exception):
    """
    Trying to act on behalf of an account that is not connected
    """


class App:
    """
    Auction shell app

    Every view is computed against fresh ledger state: the reads that can still change are fetched again before the
    view is computed. While the app is started, the reconciliation service keeps the auction views in sync in the
    background and stores closed auctions as they become final.
    """

    def __init__(self, config: DigiCharsConfig, client: Ledger):
        self.config = config
        self.client = client
        self._logger = get_logger(self)

        policy = config.auctions.auction_id_policy
        self.reader = LedgerReadAdapter(
            client, max_concurrent_reads=config.auctions.max_concurrent_reads
        )
        self.event_log = EventLogCache(client, from_block=config.ledger.from_block)

        get_auction_records = None
        store_auction_records = None
        self._get_auction_record: GetAuctionRecord | None = None
        self._get_stored_auction_ids: GetStoredAuctionIds | None = None
        if config.database.url:
            engine = create_engine(config.database.url)
            Base.metadata.create_all(engine)
            session_factory = sessionmaker(engine)
            get_auction_records = GetAuctionRecords(session_factory)
            store_auction_records = StoreAuctionRecords(session_factory)
            self._get_auction_record = GetAuctionRecord(session_factory)
            self._get_stored_auction_ids = GetStoredAuctionIds(session_factory)

        self.past_auctions = PastAuctions(
            self.reader,
            policy,
            max_auctions=config.auctions.max_auctions,
            get_auction_records=get_auction_records,
            store_auction_records=store_auction_records,
        )
        self.current_auction = CurrentAuction(self.reader, policy)
        self.reconciliation_service = AuctionReconciliationService(
            self.reader,
            self.past_auctions,
            self.current_auction,
            poll_interval=config.auctions.poll_interval,
        )
        # user reads are reset when the account changes, thus they get their own adapter
        self.user_history = UserAuctionHistory(
            LedgerReadAdapter(
                client, max_concurrent_reads=config.auctions.max_concurrent_reads
            ),
            self.event_log,
        )
        self.actions = AuctionActions(client)

    @classmethod
    def from_config_file(cls, file: Path) -> "App":
        """
        Constructs a new app instance from the specified TOML config file
        """
        config = DigiCharsConfig.from_file(file)
        configure_logging(level=config.log_level)
        w3 = connect(config.ledger.rpc_url, config.ledger.request_timeout_secs)
        if not w3.is_connected():
            raise AssertionError(f"Failed to connect to ledger: {config.ledger.rpc_url}")
        client = Web3LedgerClient(
            w3,
            config.ledger.contract_address,
            abi=load_abi(config.ledger.abi_file),
        )
        return cls(config, client)

    def start(self):
        self.reconciliation_service.start()

    def stop(self):
        self.reconciliation_service.stop()

    @property
    def auction_snapshot(self) -> AuctionSnapshot | None:
        """
        :return: the most recent snapshot computed by the reconciliation service
        """
        return self.reconciliation_service.snapshot

    @staticmethod
    def await_loaded(
        view: Callable[[], V],
        is_loading: Callable[[V], bool],
        timeout: timedelta = timedelta(seconds=30),
        poll_interval: timedelta = timedelta(milliseconds=100),
    ) -> V:
        """
        Re-computes the view until it is no longer loading, or the timeout expires.

        :return: the last computed view, which may still be loading if the timeout expired
        """
        deadline = time.monotonic() + timeout.total_seconds()
        result = view()
        while is_loading(result) and time.monotonic() < deadline:
            time.sleep(poll_interval.total_seconds())
            result = view()
        return result

    def get_current_auction(self) -> CurrentAuctionView:
        self.current_auction.refresh()
        return self.await_loaded(self.current_auction, lambda view: view.is_loading)

    def get_past_auctions(self, offset: int = 0) -> PastAuctionsView:
        self.past_auctions.refresh(offset)
        return self.await_loaded(
            lambda: self.past_auctions(offset), lambda view: view.is_loading
        )

    def get_past_auctions_page(
        self,
        page: int = 1,
        offset: int = 0,
        auction_filter: AuctionFilter = AuctionFilter.ALL,
    ) -> tuple[PastAuctionsView, Page[AuctionRecord]]:
        view = self.get_past_auctions(offset)
        records = filter_auctions(view.records, auction_filter)
        return view, paginate(
            records, PageRequest(page_size=self.config.auctions.page_size, page=page)
        )

    def get_auction(self, auction_id: AuctionId) -> Read[AuctionRecord]:
        """
        Stored records are served from the database. Otherwise, the record is built from freshly fetched ledger reads.
        """
        if self._get_auction_record is not None:
            record = self._get_auction_record(auction_id)
            if record is not None:
                return Read.resolved(record)

        builder = AuctionRecordBuilder()
        queries = builder.queries(auction_id)
        self.reader.request(queries, refresh=True)

        def build() -> Read[AuctionRecord]:
            self.reader.request(queries)
            return builder.build(auction_id, self.reader.snapshot())

        return self.await_loaded(
            build,
            lambda read: read.is_pending
            or any(self.reader.snapshot().is_refreshing(query) for query in queries),
        )

    def get_stored_auction_ids(self) -> list[AuctionId]:
        if self._get_stored_auction_ids is None:
            return []
        return self._get_stored_auction_ids()

    def get_leaderboard(self, offset: int = 0) -> list[LeaderboardEntry]:
        return build_leaderboard(self.get_past_auctions(offset).records)

    def get_auction_activity(self, auction_id: AuctionId) -> AuctionActivitySummary:
        self.event_log.ingest()
        activity = self.event_log.auction_activity(auction_id)
        if activity is None:
            raise AssertionError("event log is not loaded")
        return activity

    def connect_account(self, account: Address):
        self.client.account = account
        self.user_history.connect(account)

    def disconnect_account(self):
        self.client.account = None
        self.user_history.disconnect()

    @property
    def connected_account(self) -> Address | None:
        return self.client.account

    def get_user_history(self, offset: int = 0) -> UserAuctionHistoryView:
        if self.connected_account is None:
            raise AccountNotConnected
        self.event_log.ingest()
        auction_ids = list(self.get_past_auctions(offset).auction_ids)
        self.user_history.refresh(auction_ids)
        return self.await_loaded(
            lambda: self.user_history(auction_ids), lambda view: view.is_loading
        )

    def bid(self, character_index: int, value: int) -> ActionResult:
        result = self.actions.bid(character_index, value)
        if result.success:
            # the open auction's character pools have changed
            self.current_auction.refresh()
        return result

    def withdraw(self, auction_id: int, character_index: int, amount: int) -> ActionResult:
        result = self.actions.withdraw(auction_id, character_index, amount)
        if result.success:
            self.user_history.refresh([AuctionId(auction_id)])
        return result

    def claim(self, auction_id: int) -> ActionResult:
        result = self.actions.claim(auction_id)
        if result.success:
            self.user_history.refresh([AuctionId(auction_id)])
        return result
