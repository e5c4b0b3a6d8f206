"""
AuctionVault contract ABI

Only the functions and events used by the reconciliation layer are declared.
A full ABI can be loaded from a JSON file instead, see `DigiCharsConfig.ledger.abi_file`.
"""
import json
from pathlib import Path
from typing import Any


def _function(
    name: str,
    inputs: list[tuple[str, str]],
    outputs: list[dict[str, Any]],
    state_mutability: str = "view",
) -> dict[str, Any]:
    return {
        "type": "function",
        "name": name,
        "stateMutability": state_mutability,
        "inputs": [{"name": arg, "type": arg_type} for arg, arg_type in inputs],
        "outputs": outputs,
    }


def _event(name: str, inputs: list[tuple[str, str, bool]]) -> dict[str, Any]:
    return {
        "type": "event",
        "name": name,
        "anonymous": False,
        "inputs": [
            {"name": arg, "type": arg_type, "indexed": indexed}
            for arg, arg_type, indexed in inputs
        ],
    }


def _output(arg_type: str, name: str = "") -> dict[str, Any]:
    return {"name": name, "type": arg_type}


CHARACTER_TUPLE = {
    "name": "",
    "type": "tuple",
    "components": [
        _output("string", "characterURI"),
        _output("string", "name"),
        _output("string", "symbol"),
        _output("uint256", "poolBalance"),
        _output("bool", "isWinner"),
    ],
}

AUCTION_VAULT_ABI: list[dict[str, Any]] = [
    _function("auctionId", [], [_output("uint256")]),
    _function(
        "getAuctionCharacterData",
        [("_auctionId", "uint256"), ("_characterIndex", "uint8")],
        [CHARACTER_TUPLE],
    ),
    _function("getAuctionEndTime", [("_auctionId", "uint256")], [_output("uint256")]),
    _function(
        "getCharacterTokenAddress", [("_auctionId", "uint256")], [_output("address")]
    ),
    _function(
        "getUserBidBalance",
        [("_user", "address"), ("_auctionId", "uint256"), ("_characterIndex", "uint8")],
        [_output("uint256")],
    ),
    _function(
        "checkUnclaimedTokens",
        [("_user", "address"), ("_auctionId", "uint256")],
        [_output("uint256")],
    ),
    _function("bid", [("_characterIndex", "uint8")], [], "payable"),
    _function(
        "withdrawBid",
        [("_auctionId", "uint256"), ("_characterIndex", "uint8"), ("_amount", "uint256")],
        [],
        "nonpayable",
    ),
    _function("claimTokens", [("_auctionId", "uint256")], [], "nonpayable"),
    _event(
        "BidPlaced",
        [
            ("_user", "address", True),
            ("_auctionId", "uint256", True),
            ("_characterId", "uint8", False),
            ("_amount", "uint256", False),
        ],
    ),
    _event(
        "BidWithdrawn",
        [
            ("user", "address", True),
            ("_auctionId", "uint256", True),
            ("_characterId", "uint8", False),
            ("_withdrawAmount", "uint256", False),
        ],
    ),
    _event(
        "TokensClaimed",
        [
            ("_user", "address", True),
            ("_auctionId", "uint256", True),
            ("_amount", "uint256", False),
        ],
    ),
]


def load_abi(abi_file: Path | None) -> list[dict[str, Any]]:
    """
    Loads the contract ABI from a JSON file.

    Both a bare ABI list and a compiler artifact with an "abi" key are supported.
    If no file is specified, then `AUCTION_VAULT_ABI` is returned.
    """
    if abi_file is None:
        return AUCTION_VAULT_ABI

    with open(abi_file, "rb") as file:
        data = json.load(file)
    if isinstance(data, dict):
        return data["abi"]
    return data
