"""
Command to insert/update closed auction records in the database
"""

from dataclasses import dataclass
from typing import Sequence

from digichars.auctions.domain import AuctionRecord
from digichars.commands.data import SqlAlchemySupport
from digichars.core.command import Command
from digichars.data.auction import TAuction


@dataclass
class StoreAuctionRecordsResult:
    """
    Number of auction records that were inserted and updated
    """

    inserts: int
    updates: int


class StoreAuctionRecords(
    Command[Sequence[AuctionRecord], StoreAuctionRecordsResult], SqlAlchemySupport
):
    """
    Stores the auction records in the database.

    The store functions like an upsert.
    If the auction does not exist in the database, then it will be inserted.
    Otherwise, the auction will be updated.

    Only complete records can be stored. If any record is incomplete, then an AssertionError is raised and nothing
    is stored.
    """

    def __call__(self, records: Sequence[AuctionRecord]) -> StoreAuctionRecordsResult:
        if len(records) == 0:
            return StoreAuctionRecordsResult(inserts=0, updates=0)

        inserts = 0
        updates = 0

        with self._session_factory.begin() as session:
            for record in records:
                existing: TAuction | None = session.get(TAuction, record.auction_id)
                if existing:
                    existing.update(record)
                    updates += 1
                else:
                    session.add(TAuction.create(record))
                    inserts += 1

        self.get_logger().debug("inserts=%s updates=%s", inserts, updates)
        return StoreAuctionRecordsResult(inserts=inserts, updates=updates)
