"""
Layered YAML configuration for the governance service.

base.yaml holds the defaults, {env}.yaml (dev, prod) overrides them and an
optional gitignored secrets.yaml carries the database password and RPC
keys. Nested mappings merge key by key; any other value is replaced.
"""

from __future__ import annotations
from pathlib import Path
from typing import Dict, Any, List
import yaml
import logging

from allocator_governance.domain.exceptions import ConfigurationError

from .models import (
    AppConfig,
    ChainConfig,
    DatabaseConfig,
    DatabasePoolConfig,
    EventStoreConfig,
    GovernanceConfig,
    LoggingConfig,
    MetaAllocatorConfig,
    PollerConfig,
)


logger = logging.getLogger(__name__)


class ConfigManager:
    """
    Usage:
        config = ConfigManager("config", env="prod").load()
    """

    def __init__(self, config_dir: str | Path = "config", env: str = "dev"):
        self.config_dir = Path(config_dir)
        self.env = env
        self.config: Dict[str, Any] = {}

    def load(self) -> AppConfig:
        """
        Raises:
            FileNotFoundError: base.yaml is missing.
            ConfigurationError: A section has the wrong shape or type.
        """
        layers = [self.config_dir / "base.yaml"]
        if not layers[0].exists():
            raise FileNotFoundError(f"Base config not found: {layers[0]}")
        layers += [
            path for path in (self.config_dir / f"{self.env}.yaml", self.config_dir / "secrets.yaml")
            if path.exists()
        ]

        merged: Dict[str, Any] = {}
        for path in layers:
            merged = deep_merge(merged, self._read(path))
        logger.info(f"Loaded config layers: {[p.name for p in layers]}")

        self.config = merged
        return self.parse(merged)

    @staticmethod
    def _read(path: Path) -> Dict[str, Any]:
        with path.open("r") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ConfigurationError(f"{path.name} must contain a mapping at the top level")
        return data

    @staticmethod
    def parse(raw: Dict[str, Any]) -> AppConfig:
        """
        Build AppConfig from a merged dict. Missing keys take the dataclass
        defaults; without a database section the service runs on in-memory stores.
        """
        try:
            governance_raw = raw.get("governance", {})
            governance = GovernanceConfig(
                rkh_approval_threshold=int(governance_raw.get("rkh_approval_threshold", 2)),
                meta_allocators=_parse_meta_allocators(governance_raw.get("meta_allocators", [])),
            )

            chain_raw = raw.get("chain", {})
            chain = ChainConfig(
                rpc_url=chain_raw.get("rpc_url", ""),
                chain_id=int(chain_raw.get("chain_id", 314)),
                lookback_window=int(chain_raw.get("lookback_window", 2000)),
                lookback_headroom=int(chain_raw.get("lookback_headroom", 10)),
                request_timeout_sec=float(chain_raw.get("request_timeout_sec", 30.0)),
                valid_meta_allocator_addresses=list(
                    chain_raw.get("valid_meta_allocator_addresses", [])
                ),
            )

            poller_raw = raw.get("poller", {})
            poller = PollerConfig(
                enabled=poller_raw.get("enabled", True),
                interval_sec=float(poller_raw.get("interval_sec", 60.0)),
            )

            store_raw = raw.get("event_store", {})
            event_store = EventStoreConfig(
                snapshot_every=int(store_raw.get("snapshot_every", 50)),
            )

            logging_raw = raw.get("logging", {})
            logging_config = LoggingConfig(
                level=logging_raw.get("level", "INFO"),
                json=logging_raw.get("json", True),
                dir=logging_raw.get("dir", "./logs"),
                timezone=logging_raw.get("timezone", "local"),
            )

            db_raw = raw.get("database", {})
            pool_raw = db_raw.get("pool", {})
            database = DatabaseConfig(
                host=db_raw.get("host", "localhost"),
                port=int(db_raw.get("port", 5432)),
                database=db_raw.get("database", "allocator_governance"),
                user=db_raw.get("user", "allocgov"),
                password=db_raw.get("password", ""),
                pool=DatabasePoolConfig(
                    min_connections=pool_raw.get("min_connections", 2),
                    max_connections=pool_raw.get("max_connections", 10),
                ),
            ) if db_raw else None

        except (TypeError, ValueError, KeyError, AttributeError) as e:
            raise ConfigurationError(f"Failed to parse config: {e}") from e

        if chain.lookback_headroom >= chain.lookback_window:
            raise ConfigurationError(
                "chain.lookback_headroom must be smaller than chain.lookback_window"
            )

        return AppConfig(
            governance=governance,
            chain=chain,
            poller=poller,
            event_store=event_store,
            logging=logging_config,
            raw=raw,
            database=database,
        )


def _parse_meta_allocators(items: List[Dict[str, Any]]) -> List[MetaAllocatorConfig]:
    return [
        MetaAllocatorConfig(
            name=item["name"],
            eth_address=item["eth_address"],
            fil_address=item["fil_address"],
            eth_safe_address=item.get("eth_safe_address", ""),
            fil_safe_address=item.get("fil_safe_address", ""),
            signers=list(item.get("signers", [])),
        )
        for item in items
    ]


def deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        if isinstance(merged.get(key), dict) and isinstance(value, dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged
