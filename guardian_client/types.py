"""Typed payloads exchanged with the guardian API.

Only the fields the client inspects are modelled. Everything else is kept
as the raw decoded JSON so it can be forwarded without loss.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, TypeAlias

ConfigGenParams: TypeAlias = dict[str, Any]
ConsensusState: TypeAlias = dict[str, Any]
PeerHashMap: TypeAlias = dict[str, str]
Versions: TypeAlias = dict[str, Any]


class ServerStatus(str, Enum):
    """Lifecycle phase reported by the guardian."""

    AWAITING_PASSWORD = "AwaitingPassword"
    SHARING_CONFIG_GEN_PARAMS = "SharingConfigGenParams"
    READY_FOR_CONFIG_GEN = "ReadyForConfigGen"
    CONFIG_GEN_FAILED = "ConfigGenFailed"
    VERIFYING_CONFIGS = "VerifyingConfigs"
    VERIFIED_CONFIGS = "VerifiedConfigs"
    CONSENSUS_RUNNING = "ConsensusRunning"
    UPGRADING = "Upgrading"

    @classmethod
    def parse(cls, value: Any) -> ServerStatus | str:
        """Return the enum member, or the raw string for unknown phases."""
        try:
            return cls(value)
        except ValueError:
            return str(value)


class QuorumHealth(str, Enum):
    """Share of guardians online."""

    HEALTHY = "healthy"
    DEGRADED = "degraded"
    CRITICAL = "critical"


@dataclass(frozen=True, slots=True)
class GuardianQuorum:
    """Guardians online out of the federation total."""

    online: int
    total: int

    @property
    def fraction_online(self) -> float:
        if self.total <= 0:
            return 0.0
        return self.online / self.total

    @property
    def health(self) -> QuorumHealth:
        fraction = self.fraction_online
        if fraction >= 1:
            return QuorumHealth.HEALTHY
        if fraction >= 2 / 3:
            return QuorumHealth.DEGRADED
        return QuorumHealth.CRITICAL

    def __str__(self) -> str:
        return f"{self.online} / {self.total}"


@dataclass(frozen=True, slots=True)
class FederationStatus:
    """Consensus view of the other guardians."""

    peers_online: int = 0
    peers_offline: int = 0
    peers_flagged: int = 0
    status_by_peer: dict[str, Any] = field(default_factory=dict)
    raw: dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FederationStatus:
        return cls(
            peers_online=int(data.get("peers_online", 0)),
            peers_offline=int(data.get("peers_offline", 0)),
            peers_flagged=int(data.get("peers_flagged", 0)),
            status_by_peer={str(k): v for k, v in (data.get("status_by_peer") or {}).items()},
            raw=data,
        )

    def guardians_online(self) -> GuardianQuorum:
        """Count guardians online, including this one."""
        online = self.peers_online + 1
        return GuardianQuorum(online=online, total=online + self.peers_offline)


@dataclass(frozen=True, slots=True)
class StatusResponse:
    """Answer to the phase-agnostic ``status`` call."""

    server: ServerStatus | str
    consensus: FederationStatus | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> StatusResponse:
        if not isinstance(data, dict) or "server" not in data:
            raise ValueError("Status response is missing 'server'")
        consensus = data.get("consensus")
        return cls(
            server=ServerStatus.parse(data["server"]),
            consensus=FederationStatus.from_dict(consensus) if consensus else None,
        )

    @property
    def is_consensus_running(self) -> bool:
        return self.server is ServerStatus.CONSENSUS_RUNNING

    def guardians_online(self) -> GuardianQuorum:
        """Guardians online; a lone guardian with no consensus view is 1 / 2."""
        if self.consensus is None:
            return GuardianQuorum(online=1, total=2)
        return self.consensus.guardians_online()


@dataclass(frozen=True, slots=True)
class AuditSummary:
    """Federation balance sheet."""

    net_assets: int
    module_summaries: dict[str, dict[str, Any]] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AuditSummary:
        return cls(
            net_assets=int(data.get("net_assets", 0)),
            module_summaries=dict(data.get("module_summaries") or {}),
        )

    def module_net_assets(self, kind: str) -> int:
        """Net assets of one module in msats, 0 when absent."""
        summary = self.module_summaries.get(kind) or {}
        return int(summary.get("net_assets") or 0)

    @property
    def wallet_balance_msats(self) -> int:
        return self.module_net_assets("wallet")


@dataclass(frozen=True, slots=True)
class ConfigResponse:
    """Client configuration of the federation."""

    client_config: dict[str, Any]
    consensus_hash: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ConfigResponse:
        return cls(
            client_config=dict(data.get("client_config") or {}),
            consensus_hash=data.get("consensus_hash"),
        )

    @property
    def federation_name(self) -> str | None:
        meta = self.client_config.get("meta") or {}
        name = meta.get("federation_name")
        return str(name) if name is not None else None
