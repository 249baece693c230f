"""Configuration data models."""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, Any, List, Optional


@dataclass
class DatabasePoolConfig:
    """asyncpg pool sizing."""
    min_connections: int = 2
    max_connections: int = 10


@dataclass
class DatabaseConfig:
    """PostgreSQL connection configuration."""
    host: str = "localhost"
    port: int = 5432
    database: str = "allocator_governance"
    user: str = "allocgov"
    password: str = ""
    pool: DatabasePoolConfig = field(default_factory=DatabasePoolConfig)

    @property
    def dsn(self) -> str:
        auth = self.user if not self.password else f"{self.user}:{self.password}"
        return f"postgresql://{auth}@{self.host}:{self.port}/{self.database}"


@dataclass
class EventStoreConfig:
    """Event store behaviour."""
    snapshot_every: int = 50  # Write a snapshot every N events (0 disables)


@dataclass
class MetaAllocatorConfig:
    """One on-chain meta-allocator contract."""
    name: str
    eth_address: str
    fil_address: str
    eth_safe_address: str = ""
    fil_safe_address: str = ""
    signers: List[str] = field(default_factory=list)


@dataclass
class GovernanceConfig:
    """Approval pathway configuration."""
    rkh_approval_threshold: int = 2
    meta_allocators: List[MetaAllocatorConfig] = field(default_factory=list)


@dataclass
class ChainConfig:
    """EVM JSON-RPC endpoint and approval log filtering."""
    rpc_url: str = ""
    chain_id: int = 314
    lookback_window: int = 2000  # Blocks the RPC node accepts for eth_getLogs
    lookback_headroom: int = 10  # Margin kept below the window for head drift
    request_timeout_sec: float = 30.0
    valid_meta_allocator_addresses: List[str] = field(default_factory=list)


@dataclass
class PollerConfig:
    """Meta-allocator approval poller."""
    enabled: bool = True
    interval_sec: float = 60.0


@dataclass
class LoggingConfig:
    """Logging configuration."""
    level: str = "INFO"
    json: bool = True
    dir: str = "./logs"
    timezone: str = "local"  # Timezone for log timestamps (e.g. "UTC" or "local")


@dataclass
class AppConfig:
    """Complete application configuration."""
    governance: GovernanceConfig
    chain: ChainConfig
    poller: PollerConfig
    event_store: EventStoreConfig
    logging: LoggingConfig
    raw: Dict[str, Any]  # Raw merged config dict
    database: Optional[DatabaseConfig] = None
