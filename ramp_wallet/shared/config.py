"""Application configuration for Ramp Wallet.

Settings are read from ``config.json`` in the wallet directory
(``$RAMP_WALLET_DIR`` or ``~/.ramp-wallet``, shared with the log file) and the
node URL may be overridden with ``RAMP_WALLET_NODE_URL``.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from ramp_wallet.shared.logging import DEFAULT_WALLET_DIR
from ramp_wallet.shared.network import TimeoutConfig

logger = logging.getLogger(__name__)

DEFAULT_NODE_URL = "ws://127.0.0.1:9944"
DEFAULT_HEALTH_URL = "http://127.0.0.1:9933"


@dataclass(frozen=True)
class RecipientDescriptor:
    name: str
    address: str
    iban: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RecipientDescriptor":
        return cls(
            name=str(data["name"]),
            address=str(data["address"]),
            iban=str(data.get("iban", "")),
        )

    def to_dict(self) -> dict[str, str]:
        return {"name": self.name, "address": self.address, "iban": self.iban}


DEFAULT_RECIPIENT = RecipientDescriptor(
    name="Alice",
    address="5GrwvaEF5zXb26Fz9rcQpDWS57CtERHpNehXCPcNoHGKutQY",
    iban="DE89370400440532013000",
)


@dataclass
class ChainConfig:
    pallet: str = "fiatRamps"
    decimals: int = 10
    unit: str = "pEURO"
    # The demo recipient is endowed with 1000 units at genesis.
    baseline_units: int = 1000

    @property
    def base(self) -> int:
        return 10**self.decimals

    @property
    def baseline(self) -> int:
        return self.baseline_units * self.base


@dataclass
class AppConfig:
    node_url: str = DEFAULT_NODE_URL
    health_url: str = DEFAULT_HEALTH_URL
    recipient: RecipientDescriptor = DEFAULT_RECIPIENT
    chain: ChainConfig = field(default_factory=ChainConfig)
    timeout_config: TimeoutConfig = field(default_factory=TimeoutConfig)

    @staticmethod
    def resolve_config_dir(config_dir: str | Path | None = None) -> Path:
        if config_dir is not None:
            return Path(config_dir)
        env_dir = os.getenv("RAMP_WALLET_DIR")
        if env_dir:
            return Path(env_dir)
        return DEFAULT_WALLET_DIR

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AppConfig":
        config = cls()
        config.node_url = data.get("node_url", config.node_url)
        config.health_url = data.get("health_url", config.health_url)

        if "recipient" in data:
            config.recipient = RecipientDescriptor.from_dict(data["recipient"])

        chain_cfg = data.get("chain", {})
        if chain_cfg:
            config.chain = ChainConfig(
                pallet=chain_cfg.get("pallet", "fiatRamps"),
                decimals=int(chain_cfg.get("decimals", 10)),
                unit=chain_cfg.get("unit", "pEURO"),
                baseline_units=int(chain_cfg.get("baseline_units", 1000)),
            )

        timeout_cfg = data.get("timeout", {})
        if timeout_cfg:
            config.timeout_config = TimeoutConfig(
                connect_timeout=float(timeout_cfg.get("connect_timeout", 5.0)),
                read_timeout=float(timeout_cfg.get("read_timeout", 15.0)),
                operation_timeout=float(timeout_cfg.get("operation_timeout", 60.0)),
            )
        return config

    @classmethod
    def load(cls, config_dir: str | Path | None = None) -> "AppConfig":
        config_file = cls.resolve_config_dir(config_dir) / "config.json"
        config = cls()

        if config_file.exists():
            try:
                with open(config_file, "r", encoding="utf-8") as f:
                    config = cls.from_dict(json.load(f))
            except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
                logger.warning("Ignoring invalid config file %s: %s", config_file, e)
                config = cls()

        config.apply_environment()
        return config

    def apply_environment(self) -> None:
        node_url = os.getenv("RAMP_WALLET_NODE_URL")
        if node_url:
            self.node_url = node_url
