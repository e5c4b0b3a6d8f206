import unittest

from reactivex.scheduler import HistoricalScheduler, ImmediateScheduler

from digichars.events.event_log import EventLogCache
from digichars.ledger.model import AuctionId, LedgerEventKind, LedgerQuery, QueryKind, Read
from digichars.ledger.read_adapter import LedgerReadAdapter, ReadSnapshot
from digichars.users.ledger import (
    CharacterBid,
    UserAuctionHistory,
    UserAuctionLedger,
    UserStats,
    build_user_ledgers,
    compute_user_stats,
    user_queries,
)
from tests.ledger_support import ALICE, BOB, ETH, create_vault, log_entry
from tests.test_support import DigiCharsTestCase

AUCTION_IDS = [AuctionId(3), AuctionId(2), AuctionId(1)]


def user_reads(
    user=ALICE,
    balances: dict[int, tuple] | None = None,
    claimable: dict[int, Read] | None = None,
) -> ReadSnapshot:
    """
    Unlisted reads are pending. Bid balances are specified per auction as a tuple of Read or int per slot.
    """
    reads = {}
    for auction_id, slots in (balances or {}).items():
        for index, balance in enumerate(slots):
            reads[LedgerQuery.user_bid_balance(user, auction_id, index)] = (
                balance if isinstance(balance, Read) else Read.resolved(balance)
            )
    for auction_id, read in (claimable or {}).items():
        reads[LedgerQuery.unclaimed_tokens(user, auction_id)] = read
    return ReadSnapshot(reads=reads)


class BuildUserLedgersTestCase(unittest.TestCase):
    def test_user_queries(self):
        queries = user_queries(ALICE, [AuctionId(1), AuctionId(2)])
        self.assertEqual(8, len(queries))
        self.assertEqual(
            [QueryKind.USER_BID_BALANCE] * 3 + [QueryKind.UNCLAIMED_TOKENS],
            [query.kind for query in queries[:4]],
        )
        self.assertEqual([1, 1, 1, 1, 2, 2, 2, 2], [query.auction_id for query in queries])

    def test_ledgers(self):
        reads = user_reads(
            balances={3: (0, ETH, 0), 2: (0, 0, 0), 1: (ETH, 0, 2 * ETH)},
            claimable={
                3: Read.resolved(0),
                2: Read.resolved(0),
                1: Read.resolved(100),
            },
        )
        result = build_user_ledgers(ALICE, AUCTION_IDS, reads)

        self.assertFalse(result.is_loading)
        self.assertEqual(
            (
                UserAuctionLedger(
                    auction_id=AuctionId(3),
                    character_bids=(CharacterBid(1, ETH),),  # type: ignore
                    claimable_tokens=0,
                ),
                UserAuctionLedger(
                    auction_id=AuctionId(1),
                    character_bids=(CharacterBid(0, ETH), CharacterBid(2, 2 * ETH)),  # type: ignore
                    claimable_tokens=100,
                ),
            ),
            result.ledgers,
        )
        self.assertEqual(3 * ETH, result.ledgers[1].total_bid_amount)

    def test_claimable_tokens_without_bids(self):
        reads = user_reads(
            balances={1: (0, 0, 0)}, claimable={1: Read.resolved(5)}
        )
        result = build_user_ledgers(ALICE, [AuctionId(1)], reads)
        self.assertEqual(1, len(result.ledgers))
        self.assertEqual((), result.ledgers[0].character_bids)
        self.assertEqual(5, result.ledgers[0].claimable_tokens)

    def test_pending_reads_are_never_treated_as_zero(self):
        reads = user_reads(
            balances={3: (ETH, Read.pending(), 0), 1: (ETH, 0, 0)},
            claimable={3: Read.resolved(0), 1: Read.resolved(0)},
        )
        result = build_user_ledgers(ALICE, AUCTION_IDS, reads)
        self.assertTrue(result.is_loading)
        # auction 3 has a pending read and auction 2 has not been read at all
        self.assertEqual([1], [ledger.auction_id for ledger in result.ledgers])

    def test_not_found_reads_are_zero(self):
        reads = user_reads(
            balances={1: (Read.not_found("reverted"), ETH, Read.not_found("reverted"))},
            claimable={1: Read.not_found("reverted")},
        )
        result = build_user_ledgers(ALICE, [AuctionId(1)], reads)
        self.assertFalse(result.is_loading)
        self.assertEqual((CharacterBid(1, ETH),), result.ledgers[0].character_bids)  # type: ignore
        self.assertEqual(0, result.ledgers[0].claimable_tokens)

    def test_idempotent(self):
        reads = user_reads(
            balances={1: (ETH, 0, 0)}, claimable={1: Read.resolved(1)}
        )
        self.assertEqual(
            build_user_ledgers(ALICE, [AuctionId(1)], reads),
            build_user_ledgers(ALICE, [AuctionId(1)], reads),
        )

    def test_claimed_auctions(self):
        reads = user_reads(
            balances={2: (ETH, 0, 0), 1: (ETH, 0, 0)},
            claimable={2: Read.resolved(10), 1: Read.resolved(10)},
        )
        result = build_user_ledgers(
            ALICE, [AuctionId(2), AuctionId(1)], reads, frozenset({AuctionId(1)})
        )
        self.assertEqual(
            [False, True], [ledger.has_claimed_tokens for ledger in result.ledgers]
        )


class UserStatsTestCase(unittest.TestCase):
    def test_stats(self):
        ledgers = [
            UserAuctionLedger(
                auction_id=AuctionId(3),
                character_bids=(CharacterBid(0, ETH), CharacterBid(1, ETH)),  # type: ignore
                claimable_tokens=0,
            ),
            UserAuctionLedger(
                auction_id=AuctionId(2),
                character_bids=(CharacterBid(2, 2 * ETH),),  # type: ignore
                claimable_tokens=50,
            ),
            UserAuctionLedger(
                auction_id=AuctionId(1),
                character_bids=(),
                claimable_tokens=20,
                has_claimed_tokens=True,
            ),
        ]
        self.assertEqual(
            UserStats(
                total_bids=3,
                total_bid_amount=4 * ETH,  # type: ignore
                total_claimable_tokens=70,
                auctions_with_claimable_tokens=1,
                auctions_participated=3,
            ),
            compute_user_stats(ledgers),
        )
        self.assertEqual(UserStats(), compute_user_stats([]))


class UserAuctionHistoryTestCase(DigiCharsTestCase):
    def setUp(self) -> None:
        self.vault = create_vault(past_auctions=3)
        self.vault.bid_balances = {
            (ALICE.lower(), 3, 1): ETH,
            (ALICE.lower(), 1, 0): 2 * ETH,
            (BOB.lower(), 2, 2): ETH,
        }
        self.vault.unclaimed_tokens = {(ALICE.lower(), 1): 100}
        self.vault.logs = {
            LedgerEventKind.TOKENS_CLAIMED: [
                log_entry({"_user": ALICE, "_auctionId": 1, "_amount": 100})
            ]
        }

    def test_disconnected(self):
        history = UserAuctionHistory(
            LedgerReadAdapter(self.vault, scheduler=ImmediateScheduler())
        )
        view = history(AUCTION_IDS)
        self.assertFalse(view.is_connected)
        self.assertEqual((), view.ledgers)
        self.assertEqual(UserStats(), view.stats)
        self.assertEqual(0, self.vault.calls[QueryKind.USER_BID_BALANCE])

    def test_connected(self):
        event_log = EventLogCache(self.vault)
        event_log.ingest()
        history = UserAuctionHistory(
            LedgerReadAdapter(self.vault, scheduler=ImmediateScheduler()), event_log
        )
        history.connect(ALICE)

        view = history(AUCTION_IDS)
        self.assertTrue(view.is_connected)
        self.assertFalse(view.is_loading)
        self.assertEqual([3, 1], [ledger.auction_id for ledger in view.ledgers])
        self.assertTrue(view.ledgers[1].has_claimed_tokens)
        self.assertEqual(2, view.stats.auctions_participated)
        self.assertEqual(3 * ETH, view.stats.total_bid_amount)
        self.assertEqual(100, view.stats.total_claimable_tokens)
        self.assertEqual(0, view.stats.auctions_with_claimable_tokens)

        with self.subTest("reads are not repeated"):
            history(AUCTION_IDS)
            self.assertEqual(9, self.vault.calls[QueryKind.USER_BID_BALANCE])

    def test_switching_accounts_discards_reads(self):
        history = UserAuctionHistory(
            LedgerReadAdapter(self.vault, scheduler=ImmediateScheduler())
        )
        history.connect(ALICE)
        self.assertEqual([3, 1], [ledger.auction_id for ledger in history(AUCTION_IDS).ledgers])

        history.connect(BOB)
        view = history(AUCTION_IDS)
        self.assertEqual(BOB, view.user)
        self.assertEqual([2], [ledger.auction_id for ledger in view.ledgers])

        history.disconnect()
        self.assertFalse(history(AUCTION_IDS).is_connected)

    def test_in_flight_reads_for_previous_account_are_discarded(self):
        scheduler = HistoricalScheduler()
        reader = LedgerReadAdapter(self.vault, scheduler=scheduler)
        history = UserAuctionHistory(reader)

        history.connect(ALICE)
        self.assertTrue(history(AUCTION_IDS).is_loading)
        history.connect(BOB)
        # ALICE's reads resolve after BOB connected
        scheduler.start()
        self.assertEqual(0, len(reader.snapshot().reads))

        view = history(AUCTION_IDS)
        self.assertTrue(view.is_loading)
        scheduler.start()
        view = history(AUCTION_IDS)
        self.assertFalse(view.is_loading)
        self.assertEqual([2], [ledger.auction_id for ledger in view.ledgers])

    def test_claim_log_unavailable(self):
        self.vault.unavailable_logs.add(LedgerEventKind.TOKENS_CLAIMED)
        event_log = EventLogCache(self.vault)
        event_log.ingest()
        history = UserAuctionHistory(
            LedgerReadAdapter(self.vault, scheduler=ImmediateScheduler()), event_log
        )
        history.connect(ALICE)

        with self.assertLogs(level="WARNING") as logs:
            view = history(AUCTION_IDS)
        self.assertEqual(1, len([line for line in logs.output if "claim log" in line]))
        self.assertFalse(view.ledgers[1].has_claimed_tokens)
        self.assertEqual(1, view.stats.auctions_with_claimable_tokens)

    def test_refresh_after_withdrawal(self):
        scheduler = HistoricalScheduler()
        history = UserAuctionHistory(LedgerReadAdapter(self.vault, scheduler=scheduler))
        history.refresh(AUCTION_IDS)
        scheduler.start()
        self.assertEqual(0, self.vault.calls[QueryKind.USER_BID_BALANCE])

        history.connect(ALICE)
        history(AUCTION_IDS)
        scheduler.start()
        self.assertEqual(3 * ETH, history(AUCTION_IDS).stats.total_bid_amount)

        # the bid on auction 3 is withdrawn
        self.vault.bid_balances[(ALICE.lower(), 3, 1)] = 0
        self.assertEqual(3 * ETH, history(AUCTION_IDS).stats.total_bid_amount)

        history.refresh([AuctionId(3)])
        view = history(AUCTION_IDS)
        self.assertTrue(view.is_loading)
        # the last values remain visible while the refresh is in flight
        self.assertEqual(3 * ETH, view.stats.total_bid_amount)

        scheduler.start()
        view = history(AUCTION_IDS)
        self.assertFalse(view.is_loading)
        self.assertEqual([1], [ledger.auction_id for ledger in view.ledgers])
        self.assertEqual(2 * ETH, view.stats.total_bid_amount)
        # only auction 3 was read again
        self.assertEqual(12, self.vault.calls[QueryKind.USER_BID_BALANCE])


if __name__ == "__main__":
    unittest.main()
