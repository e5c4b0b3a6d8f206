import unittest
from dataclasses import replace

from sqlalchemy import create_engine, func, select
from sqlalchemy.orm import close_all_sessions, sessionmaker

from digichars.commands.data.queries.get_auction_records import GetAuctionRecord
from digichars.commands.data.store_auction_records import StoreAuctionRecords
from digichars.data import Base
from digichars.data.auction import TAuction, TCharacter
from tests.commands.data.auction_records import create_auction_records


class StoreAuctionRecordsTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.engine = create_engine("sqlite:///:memory:", echo=False)
        Base.metadata.create_all(self.engine)

        self.session_factory: sessionmaker = sessionmaker(self.engine)
        self.store_auction_records = StoreAuctionRecords(self.session_factory)

    def tearDown(self) -> None:
        close_all_sessions()

    def count(self, table) -> int:
        with self.session_factory() as session:
            return session.scalar(select(func.count()).select_from(table))

    def test_store_records(self):
        records = create_auction_records(10)

        result = self.store_auction_records(records)
        self.assertEqual(10, result.inserts)
        self.assertEqual(0, result.updates)
        self.assertEqual(10, self.count(TAuction))
        self.assertEqual(30, self.count(TCharacter))

        get_auction_record = GetAuctionRecord(self.session_factory)
        for record in records:
            with self.subTest(auction_id=record.auction_id):
                self.assertEqual(record, get_auction_record(record.auction_id))

        with self.subTest("store the same records again"):
            result = self.store_auction_records(records)
            self.assertEqual(0, result.inserts)
            self.assertEqual(10, result.updates)
            self.assertEqual(10, self.count(TAuction))
            self.assertEqual(30, self.count(TCharacter))

    def test_update_record(self):
        updated = create_auction_records(1)[0]
        record = replace(updated, token_address=None)
        self.store_auction_records([record])
        self.assertEqual(record, GetAuctionRecord(self.session_factory)(record.auction_id))

        # the winner's token was deployed after the record was first stored
        result = self.store_auction_records([updated])
        self.assertEqual(1, result.updates)
        self.assertEqual(updated, GetAuctionRecord(self.session_factory)(record.auction_id))
        self.assertEqual(3, self.count(TCharacter))

    def test_uint256_pool_balance(self):
        record = create_auction_records(1)[0]
        record = replace(
            record,
            characters=(
                replace(record.characters[0], pool_balance=2**256 - 1),  # type: ignore
                *record.characters[1:],
            ),
        )
        self.store_auction_records([record])
        stored = GetAuctionRecord(self.session_factory)(record.auction_id)
        assert stored is not None
        self.assertEqual(2**256 - 1, stored.characters[0].pool_balance)  # type: ignore

    def test_incomplete_record_is_rejected(self):
        records = create_auction_records(2)
        incomplete = replace(
            records[1], characters=(None, *records[1].characters[1:]), winner_index=None
        )
        with self.assertRaises(AssertionError):
            self.store_auction_records([records[0], incomplete])
        # nothing is stored
        self.assertEqual(0, self.count(TAuction))

    def test_store_no_records(self):
        result = self.store_auction_records([])
        self.assertEqual(0, result.inserts)
        self.assertEqual(0, result.updates)


if __name__ == "__main__":
    unittest.main()
