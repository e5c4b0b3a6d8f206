import unittest
from datetime import datetime, UTC

from digichars.auctions.domain import (
    AuctionIdPolicy,
    AuctionRecord,
    BaseIndex,
    Character,
    compute_winner,
)
from tests.ledger_support import ETH, TOKEN


def record(balances, winner_index=None, end_time=1_700_000_000) -> AuctionRecord:
    return AuctionRecord(
        auction_id=1,  # type: ignore
        characters=tuple(
            Character(f"ipfs://{index}", f"Char{index}", f"C{index}", balance)  # type: ignore
            if balance is not None
            else None
            for index, balance in enumerate(balances)
        ),
        end_time=end_time,
        winner_index=winner_index,
        token_address=TOKEN,
    )


class ComputeWinnerTestCase(unittest.TestCase):
    def test_lowest_slot_with_strict_max_wins(self):
        self.assertEqual(1, compute_winner([2, 5, 5]))
        self.assertEqual(0, compute_winner([5, 5, 5]))
        self.assertEqual(2, compute_winner([1, 2, 3]))
        self.assertEqual(0, compute_winner([3, 0, 0]))

    def test_zero_balances_have_no_winner(self):
        self.assertIsNone(compute_winner([0, 0, 0]))
        self.assertIsNone(compute_winner([]))

    def test_exhaustive_small_balances(self):
        for a in range(3):
            for b in range(3):
                for c in range(3):
                    balances = [a, b, c]
                    expected = balances.index(max(balances)) if max(balances) > 0 else None
                    self.assertEqual(expected, compute_winner(balances), balances)


class AuctionRecordTestCase(unittest.TestCase):
    def test_derived_properties(self):
        auction = record([ETH, 3 * ETH, 2 * ETH], winner_index=1)
        self.assertTrue(auction.is_complete)
        self.assertEqual("Char1", auction.winner.name)  # type: ignore
        self.assertEqual(6 * ETH, auction.total_pool)
        self.assertEqual(datetime(2023, 11, 14, 22, 13, 20, tzinfo=UTC), auction.end_datetime)

    def test_partial_record(self):
        auction = record([ETH, None, None])
        self.assertFalse(auction.is_complete)
        self.assertIsNone(auction.winner)
        self.assertEqual(ETH, auction.total_pool)

    def test_is_closed(self):
        auction = record([ETH, 0, 0], end_time=1000)
        self.assertFalse(auction.is_closed(datetime.fromtimestamp(999, UTC)))
        self.assertTrue(auction.is_closed(datetime.fromtimestamp(1000, UTC)))
        self.assertTrue(auction.is_closed())

    def test_invalid_record(self):
        with self.assertRaises(AssertionError):
            record([ETH, 0])
        with self.assertRaises(AssertionError):
            AuctionRecord(auction_id=-1, characters=(None, None, None), end_time=0)  # type: ignore


class AuctionIdPolicyTestCase(unittest.TestCase):
    def test_one_based(self):
        policy = AuctionIdPolicy(BaseIndex.ONE_BASED)
        self.assertEqual(1, policy.first_id)
        self.assertEqual(8, policy.total_past_auctions(9))
        self.assertEqual([8, 7, 6, 5, 4, 3, 2, 1], policy.past_auction_ids(9))
        self.assertEqual([8, 7, 6, 5, 4], policy.past_auction_ids(9, limit=5))
        self.assertEqual([3, 2, 1], policy.past_auction_ids(9, offset=5, limit=5))
        self.assertEqual([], policy.past_auction_ids(9, offset=8, limit=5))
        self.assertEqual(9, policy.open_auction_id(9))
        self.assertEqual(8, policy.previous_auction_id(9))

        with self.subTest("first auction"):
            self.assertEqual([], policy.past_auction_ids(1))
            self.assertEqual(0, policy.total_past_auctions(1))
            self.assertIsNone(policy.previous_auction_id(1))

        with self.subTest("no auctions"):
            self.assertIsNone(policy.open_auction_id(0))
            self.assertEqual(0, policy.total_past_auctions(0))
            self.assertEqual([], policy.past_auction_ids(0))

    def test_zero_based(self):
        policy = AuctionIdPolicy(BaseIndex.ZERO_BASED)
        self.assertEqual(0, policy.first_id)
        self.assertEqual(8, policy.total_past_auctions(8))
        self.assertEqual([7, 6, 5, 4, 3, 2, 1, 0], policy.past_auction_ids(8))
        self.assertEqual([2, 1, 0], policy.past_auction_ids(8, offset=5, limit=5))
        self.assertEqual(0, policy.open_auction_id(0))
        self.assertIsNone(policy.previous_auction_id(0))
        self.assertEqual(0, policy.previous_auction_id(1))

    def test_invalid_args(self):
        policy = AuctionIdPolicy(BaseIndex.ONE_BASED)
        with self.assertRaises(ValueError):
            policy.past_auction_ids(9, offset=-1)
        with self.assertRaises(ValueError):
            policy.past_auction_ids(9, limit=-1)


if __name__ == "__main__":
    unittest.main()
