import json
import unittest
from pathlib import Path
from tempfile import TemporaryDirectory

from digichars.ledger.abi import AUCTION_VAULT_ABI, load_abi


class AbiTestCase(unittest.TestCase):
    def test_default_abi(self):
        self.assertIs(AUCTION_VAULT_ABI, load_abi(None))
        names = {entry["name"] for entry in AUCTION_VAULT_ABI}
        for name in (
            "auctionId",
            "getAuctionCharacterData",
            "getAuctionEndTime",
            "getCharacterTokenAddress",
            "getUserBidBalance",
            "checkUnclaimedTokens",
            "bid",
            "withdrawBid",
            "claimTokens",
            "BidPlaced",
            "BidWithdrawn",
            "TokensClaimed",
        ):
            self.assertIn(name, names)

    def test_load_abi_file(self):
        abi = [{"type": "function", "name": "auctionId", "inputs": [], "outputs": []}]
        with TemporaryDirectory() as tmp:
            with self.subTest("bare ABI"):
                abi_file = Path(tmp) / "abi.json"
                abi_file.write_text(json.dumps(abi))
                self.assertEqual(abi, load_abi(abi_file))

            with self.subTest("compiler artifact"):
                artifact_file = Path(tmp) / "AuctionVault.json"
                artifact_file.write_text(json.dumps({"abi": abi, "bytecode": "0x"}))
                self.assertEqual(abi, load_abi(artifact_file))


if __name__ == "__main__":
    unittest.main()
