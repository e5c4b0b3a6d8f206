import unittest

from digichars.events.model import BidEvent, ClaimEvent, WithdrawEvent
from digichars.events import normalizer
from digichars.events.normalizer import to_bid_event, to_claim_event, to_withdraw_event
from tests.ledger_support import ALICE, ETH, log_entry


class EventNormalizerTestCase(unittest.TestCase):
    def test_bid_event(self):
        raw = log_entry(
            {"_user": ALICE, "_auctionId": 3, "_characterId": 2, "_amount": ETH},
            block_number=42,
            timestamp=1_700_000_123,
            tx_hash=b"\x0f" * 32,
        )
        self.assertEqual(
            BidEvent(
                bidder=ALICE,
                auction_id=3,  # type: ignore
                character_index=2,  # type: ignore
                amount=ETH,  # type: ignore
                timestamp=1_700_000_123,
                block_number=42,
                tx_hash="0x" + "0f" * 32,  # type: ignore
            ),
            to_bid_event(raw),
        )

    def test_missing_amount_defaults_to_zero(self):
        event = to_bid_event(
            log_entry({"_user": ALICE, "_auctionId": 3, "_characterId": 1})
        )
        self.assertEqual(0, event.amount)
        self.assertEqual(ALICE, event.bidder)

    def test_missing_fields_default_to_neutral_values(self):
        with self.assertLogs(normalizer.logger, level="DEBUG"):
            event = to_bid_event({})
        self.assertEqual("", event.bidder)
        self.assertEqual(0, event.auction_id)
        self.assertEqual(0, event.character_index)
        self.assertEqual(0, event.amount)
        self.assertEqual(0, event.timestamp)
        self.assertEqual(0, event.block_number)
        self.assertEqual("", event.tx_hash)

        event = to_withdraw_event({"args": None, "block": None})
        self.assertEqual("", event.user)
        self.assertEqual(0, event.amount)

    def test_withdraw_event(self):
        raw = log_entry(
            {"user": ALICE, "_auctionId": 3, "_characterId": 0, "_withdrawAmount": ETH},
            tx_hash="0xabc",
        )
        self.assertEqual(
            WithdrawEvent(
                user=ALICE,
                auction_id=3,  # type: ignore
                amount=ETH,  # type: ignore
                timestamp=1_700_000_000,
                block_number=1,
                tx_hash="0xabc",  # type: ignore
            ),
            to_withdraw_event(raw),
        )

        with self.subTest("_user is also accepted"):
            raw = log_entry({"_user": ALICE, "_auctionId": 3, "_withdrawAmount": ETH})
            self.assertEqual(ALICE, to_withdraw_event(raw).user)

    def test_claim_event(self):
        raw = log_entry({"_user": ALICE, "_auctionId": 2, "_amount": 500})
        self.assertEqual(
            ClaimEvent(
                user=ALICE,
                auction_id=2,  # type: ignore
                amount=500,
                timestamp=1_700_000_000,
                block_number=1,
                tx_hash="0x" + "01" * 32,  # type: ignore
            ),
            to_claim_event(raw),
        )


if __name__ == "__main__":
    unittest.main()
