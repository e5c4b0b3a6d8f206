"""
Assembles auction records from ledger reads
"""
from dataclasses import replace
from typing import Iterable

from digichars.auctions.domain import AuctionRecord, Character, compute_winner
from digichars.ledger.model import (
    CHARACTER_SLOTS,
    Address,
    AuctionId,
    CharacterData,
    LedgerQuery,
    Read,
    is_zero_address,
)
from digichars.ledger.read_adapter import ReadSnapshot


class AuctionRecordBuilder:
    """
    Builds `AuctionRecord` instances from whatever reads have resolved so far.

    Building is a pure function of the read snapshot, which means it can be re-run every time a read resolves.
    """

    @staticmethod
    def queries(auction_id: AuctionId) -> list[LedgerQuery]:
        """
        Reads required to build the auction record, which are meant to be issued together.

        :return: character reads for each slot, followed by the end time read and the token address read
        """
        return [
            *(
                LedgerQuery.character(auction_id, index)
                for index in range(CHARACTER_SLOTS)
            ),
            LedgerQuery.auction_end_time(auction_id),
            LedgerQuery.token_address(auction_id),
        ]

    def build(self, auction_id: AuctionId, reads: ReadSnapshot) -> Read[AuctionRecord]:
        """
        Notes
        -----
        - If the end time is not found, then the auction does not exist: NOT_FOUND.
        - If the end time is pending or no character slot has resolved yet: PENDING.
        - If every character read is not found: NOT_FOUND.
        - Otherwise, a record is built. Unresolved character slots are None, and the winner is only computed when
          all character slots have resolved.
        - Pending, not found, and zero token addresses map to None.
        """
        end_time = reads.get(LedgerQuery.auction_end_time(auction_id))
        if end_time.is_not_found:
            return Read.not_found(f"auction end time not found: {auction_id}")
        if end_time.is_pending:
            return Read.pending()

        character_reads: list[Read[CharacterData]] = [
            reads.get(LedgerQuery.character(auction_id, index))
            for index in range(CHARACTER_SLOTS)
        ]
        if all(read.is_not_found for read in character_reads):
            return Read.not_found(f"auction characters not found: {auction_id}")
        if not any(read.is_resolved for read in character_reads):
            return Read.pending()

        characters: list[Character | None] = [
            Character.from_ledger(read.get()) if read.is_resolved else None
            for read in character_reads
        ]

        winner_index: int | None = None
        if all(character is not None for character in characters):
            winner_index = compute_winner(
                [character.pool_balance for character in characters]  # type: ignore
            )
            if winner_index is not None:
                characters[winner_index] = replace(
                    characters[winner_index], is_winner=True  # type: ignore
                )

        return Read.resolved(
            AuctionRecord(
                auction_id=auction_id,
                characters=tuple(characters),
                end_time=int(end_time.get()),
                winner_index=winner_index,
                token_address=self._token_address(
                    reads.get(LedgerQuery.token_address(auction_id))
                ),
            )
        )

    def build_all(
        self, auction_ids: Iterable[AuctionId], reads: ReadSnapshot
    ) -> dict[AuctionId, Read[AuctionRecord]]:
        """
        Each auction is built independently from the same snapshot.
        """
        return {auction_id: self.build(auction_id, reads) for auction_id in auction_ids}

    @staticmethod
    def _token_address(read: Read[Address]) -> Address | None:
        if not read.is_resolved or is_zero_address(read.value):
            return None
        return read.value
