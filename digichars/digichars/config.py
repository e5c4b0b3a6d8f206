"""
Application config

Config is loaded from a TOML file:

.. code-block:: toml

    [ledger]
    rpc_url = "http://127.0.0.1:8545"
    contract_address = "0x5FbDB2315678afecb367f032d93F642f64180aa3"
    # abi_file = "AuctionVault.json"
    # from_block = 0
    # request_timeout_secs = 30

    [auctions]
    # "zero" or "one" - required
    base_index = "one"
    max_auctions = 5
    max_concurrent_reads = 15
    page_size = 10
    poll_interval_secs = 3

    [database]
    url = "sqlite:///digichars.sqlite"

    [logging]
    level = "INFO"

"""
import tomllib
from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path
from typing import Any

from digichars.auctions.domain import AuctionIdPolicy, BaseIndex
from digichars.auctions.history import DEFAULT_MAX_AUCTIONS
from digichars.ledger.read_adapter import DEFAULT_MAX_CONCURRENT_READS

BASE_INDEX_NAMES = {
    "zero": BaseIndex.ZERO_BASED,
    "one": BaseIndex.ONE_BASED,
}


def _positive_int(section: dict[str, Any], key: str, default: int) -> int:
    value = section.get(key, default)
    if not isinstance(value, int) or isinstance(value, bool) or value < 1:
        raise ValueError(f"'{key}' must be an integer >= 1: {value!r}")
    return value


@dataclass(slots=True, frozen=True)
class LedgerConfig:
    rpc_url: str
    contract_address: str
    abi_file: Path | None = None
    from_block: int = 0
    request_timeout_secs: int = 30

    @classmethod
    def from_dict(cls, section: dict[str, Any]) -> "LedgerConfig":
        for key in ("rpc_url", "contract_address"):
            if not section.get(key):
                raise ValueError(f"[ledger] '{key}' is required")
        from_block = section.get("from_block", 0)
        if not isinstance(from_block, int) or from_block < 0:
            raise ValueError(f"'from_block' must be an integer >= 0: {from_block!r}")
        return cls(
            rpc_url=section["rpc_url"],
            contract_address=section["contract_address"],
            abi_file=Path(section["abi_file"]) if section.get("abi_file") else None,
            from_block=from_block,
            request_timeout_secs=_positive_int(section, "request_timeout_secs", 30),
        )


@dataclass(slots=True, frozen=True)
class AuctionsConfig:
    """
    The auction ID base index must be configured explicitly because the ledger does not expose it.
    """

    base_index: BaseIndex
    max_auctions: int = DEFAULT_MAX_AUCTIONS
    max_concurrent_reads: int = DEFAULT_MAX_CONCURRENT_READS
    page_size: int = 10
    poll_interval: timedelta = timedelta(seconds=3)

    @property
    def auction_id_policy(self) -> AuctionIdPolicy:
        return AuctionIdPolicy(self.base_index)

    @classmethod
    def from_dict(cls, section: dict[str, Any]) -> "AuctionsConfig":
        base_index = section.get("base_index")
        if base_index not in BASE_INDEX_NAMES:
            raise ValueError(
                f"[auctions] 'base_index' must be one of {list(BASE_INDEX_NAMES)}: {base_index!r}"
            )
        return cls(
            base_index=BASE_INDEX_NAMES[base_index],
            max_auctions=_positive_int(section, "max_auctions", DEFAULT_MAX_AUCTIONS),
            max_concurrent_reads=_positive_int(
                section, "max_concurrent_reads", DEFAULT_MAX_CONCURRENT_READS
            ),
            page_size=_positive_int(section, "page_size", 10),
            poll_interval=timedelta(
                seconds=_positive_int(section, "poll_interval_secs", 3)
            ),
        )


@dataclass(slots=True, frozen=True)
class DatabaseConfig:
    # if not set, then closed auctions are not stored
    url: str | None = None


@dataclass(slots=True, frozen=True)
class DigiCharsConfig:
    ledger: LedgerConfig
    auctions: AuctionsConfig
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    log_level: str = "WARNING"

    @classmethod
    def from_dict(cls, config: dict[str, Any]) -> "DigiCharsConfig":
        """
        :raises ValueError: if the config is invalid
        """
        if "ledger" not in config:
            raise ValueError("[ledger] config section is required")
        if "auctions" not in config:
            raise ValueError("[auctions] config section is required")

        return cls(
            ledger=LedgerConfig.from_dict(config["ledger"]),
            auctions=AuctionsConfig.from_dict(config["auctions"]),
            database=DatabaseConfig(url=config.get("database", {}).get("url")),
            log_level=str(config.get("logging", {}).get("level", "WARNING")).upper(),
        )

    @classmethod
    def from_file(cls, file: Path) -> "DigiCharsConfig":
        """
        Loads the config from the specified TOML config file
        """
        with open(file, "rb") as config_file:
            return cls.from_dict(tomllib.load(config_file))
