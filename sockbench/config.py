"""Benchmark configuration.

The compiled-in defaults describe the standard three-server comparison. A YAML
file with the same keys can override any of them for ad-hoc runs.
"""

import hashlib
import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional

import yaml


class Protocol(str, Enum):
    """Transport kinds a target can be benchmarked over."""

    FRAMED = "ws"
    STREAM = "tcp"
    DATAGRAM = "udp"


@dataclass(frozen=True)
class TargetSpec:
    """A server under test."""

    name: str
    address: str
    protocol: Protocol

    @classmethod
    def from_dict(cls, data: dict) -> "TargetSpec":
        try:
            protocol = Protocol(data["protocol"])
        except ValueError:
            raise ValueError(f"Unknown protocol: {data['protocol']!r}")
        return cls(name=data["name"], address=data["address"], protocol=protocol)

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "address": self.address,
            "protocol": self.protocol.value,
        }


DEFAULT_TARGETS = (
    TargetSpec(name="C# WebSocket", address="ws://127.0.0.1:3001", protocol=Protocol.FRAMED),
    TargetSpec(name="C# TCP", address="127.0.0.1:4001", protocol=Protocol.STREAM),
    TargetSpec(name="C# UDP", address="127.0.0.1:5001", protocol=Protocol.DATAGRAM),
)

DEFAULT_MESSAGES = (
    "Hello World!",
    "Hello World! 1",
    "What is the meaning of life?",
)

LOG_MESSAGES_ENV = "LOG_MESSAGES"


def log_messages_enabled() -> bool:
    """Read the payload logging toggle from the environment."""
    return os.environ.get(LOG_MESSAGES_ENV) == "1"


@dataclass
class BenchConfig:
    """Configuration for a full benchmark across all targets."""

    targets: list[TargetSpec] = field(default_factory=lambda: list(DEFAULT_TARGETS))
    messages: list[str] = field(default_factory=lambda: list(DEFAULT_MESSAGES))
    clients_per_target: int = 100
    send_interval_sec: float = 0.064
    duration_sec: float = 10.0
    inter_run_delay_sec: float = 5.0
    connect_timeout_sec: float = 5.0
    drain_timeout_sec: float = 2.0
    log_messages: bool = False

    def __post_init__(self) -> None:
        if self.clients_per_target < 0:
            raise ValueError("clients_per_target must be non-negative")
        if self.send_interval_sec <= 0:
            raise ValueError("send_interval_sec must be positive")
        if self.duration_sec < 0:
            raise ValueError("duration_sec must be non-negative")

    @property
    def payloads(self) -> list[bytes]:
        return [m.encode("utf-8") for m in self.messages]

    @classmethod
    def from_env(cls, **overrides) -> "BenchConfig":
        """Build the default configuration, reading LOG_MESSAGES once."""
        overrides.setdefault("log_messages", log_messages_enabled())
        return cls(**overrides)

    @classmethod
    def from_yaml(cls, path: Path, log_messages: Optional[bool] = None) -> "BenchConfig":
        """Load configuration from YAML file."""
        with open(path) as f:
            data = yaml.safe_load(f) or {}

        known_fields = {
            "messages",
            "clients_per_target",
            "send_interval_sec",
            "duration_sec",
            "inter_run_delay_sec",
            "connect_timeout_sec",
            "drain_timeout_sec",
        }

        unknown = sorted(set(data) - known_fields - {"targets"})
        if unknown:
            raise ValueError(f"Unknown config keys: {', '.join(unknown)}")

        config_kwargs = {k: v for k, v in data.items() if k in known_fields}
        if "targets" in data:
            config_kwargs["targets"] = [TargetSpec.from_dict(t) for t in data["targets"]]
        if log_messages is None:
            log_messages = log_messages_enabled()

        return cls(**config_kwargs, log_messages=log_messages)

    def to_dict(self) -> dict:
        return {
            "targets": [t.to_dict() for t in self.targets],
            "messages": list(self.messages),
            "clients_per_target": self.clients_per_target,
            "send_interval_sec": self.send_interval_sec,
            "duration_sec": self.duration_sec,
            "inter_run_delay_sec": self.inter_run_delay_sec,
            "connect_timeout_sec": self.connect_timeout_sec,
            "drain_timeout_sec": self.drain_timeout_sec,
        }

    def config_hash(self) -> str:
        """Generate a hash of the configuration for reproducibility."""
        # Sort keys for deterministic hashing
        config_str = yaml.dump(self.to_dict(), sort_keys=True)
        return hashlib.sha256(config_str.encode()).hexdigest()[:16]
