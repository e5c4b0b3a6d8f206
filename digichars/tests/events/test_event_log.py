import unittest

from digichars.events.event_log import EventLogCache
from digichars.ledger.model import LedgerEventKind, LedgerUnavailable
from tests.ledger_support import ALICE, BOB, ETH, FakeAuctionVault, log_entry
from tests.test_support import DigiCharsTestCase


class EventLogCacheTestCase(DigiCharsTestCase):
    def setUp(self) -> None:
        self.vault = FakeAuctionVault(current_auction_id=3)
        self.vault.logs = {
            LedgerEventKind.BID_PLACED: [
                log_entry({"_user": ALICE, "_auctionId": 1, "_characterId": 0, "_amount": ETH}, 1, 300),
                log_entry({"_user": BOB, "_auctionId": 1, "_characterId": 0, "_amount": 2 * ETH}, 2, 100),
                log_entry({"_user": BOB, "_auctionId": 2, "_characterId": 1, "_amount": ETH}, 3, 200),
            ],
            LedgerEventKind.BID_WITHDRAWN: [
                log_entry({"user": BOB, "_auctionId": 1, "_characterId": 0, "_withdrawAmount": ETH}, 4, 400),
            ],
            LedgerEventKind.TOKENS_CLAIMED: [
                log_entry({"_user": ALICE, "_auctionId": 1, "_amount": 10}, 5, 500),
            ],
        }

    def test_ingest(self):
        event_log = EventLogCache(self.vault)
        self.assertFalse(event_log.is_loaded)
        self.assertIsNone(event_log.auction_activity(1))  # type: ignore

        event_log.ingest()
        self.assertTrue(event_log.is_loaded)
        self.assertTrue(event_log.claims_available)
        self.assertEqual(3, len(event_log.bids))
        self.assertEqual(1, len(event_log.withdrawals))
        self.assertEqual(1, len(event_log.claims))
        # ingestion order is preserved
        self.assertEqual([300, 100, 200], [bid.timestamp for bid in event_log.bids])

        with self.subTest("logs are ingested only once"):
            event_log.ingest()
            self.assertEqual(1, self.vault.calls[LedgerEventKind.BID_PLACED])

    def test_auction_activity(self):
        event_log = EventLogCache(self.vault)
        event_log.ingest()

        activity = event_log.auction_activity(1)  # type: ignore
        assert activity is not None
        self.assertEqual(2, activity.total_bids)
        self.assertEqual(3 * ETH, activity.total_volume)
        self.assertEqual(1, len(activity.withdrawals))
        self.assertEqual([100, 300], [bid.timestamp for bid in activity.bids_by_character[0]])  # type: ignore

    def test_claimed_auction_ids(self):
        event_log = EventLogCache(self.vault)
        event_log.ingest()
        self.assertEqual(frozenset({1}), event_log.claimed_auction_ids(ALICE.upper().replace("0X", "0x")))  # type: ignore
        self.assertEqual(frozenset(), event_log.claimed_auction_ids(BOB))

    def test_claim_log_unavailable(self):
        self.vault.unavailable_logs.add(LedgerEventKind.TOKENS_CLAIMED)
        event_log = EventLogCache(self.vault)
        event_log.ingest()
        self.assertTrue(event_log.is_loaded)
        self.assertFalse(event_log.claims_available)
        self.assertEqual((), event_log.claims)

    def test_bid_log_unavailable(self):
        self.vault.unavailable_logs.add(LedgerEventKind.BID_PLACED)
        event_log = EventLogCache(self.vault)
        with self.assertRaises(LedgerUnavailable):
            event_log.ingest()
        self.assertFalse(event_log.is_loaded)

    def test_from_block(self):
        event_log = EventLogCache(self.vault, from_block=2)
        event_log.ingest()
        self.assertEqual(2, len(event_log.bids))


if __name__ == "__main__":
    unittest.main()
