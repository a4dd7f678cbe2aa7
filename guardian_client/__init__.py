"""Client for the federation guardian JSON-RPC API."""

__version__ = "0.1.0"

from .api import GuardianApi
from .config import ENDPOINT_ENV_VAR, GuardianApiSettings
from .connection import ConnectionManager, ConnectionState
from .credentials import (
    SESSION_STORAGE_KEY,
    CredentialStore,
    InMemoryStorage,
    KeyValueStorage,
)
from .dispatcher import RpcDispatcher
from .errors import (
    ConsensusStartError,
    GuardianClientError,
    GuardianConfigError,
    GuardianConnectionError,
    GuardianHandshakeError,
    GuardianResponseError,
    GuardianRpcError,
    GuardianTimeout,
)
from .methods import (
    AdminRpc,
    LightningModuleRpc,
    ModuleRpcRequest,
    SetupRpc,
    SharedRpc,
)
from .types import (
    AuditSummary,
    ConfigResponse,
    FederationStatus,
    GuardianQuorum,
    QuorumHealth,
    ServerStatus,
    StatusResponse,
)

__all__ = [
    "AdminRpc",
    "AuditSummary",
    "ConfigResponse",
    "ConnectionManager",
    "ConnectionState",
    "ConsensusStartError",
    "CredentialStore",
    "ENDPOINT_ENV_VAR",
    "FederationStatus",
    "GuardianApi",
    "GuardianApiSettings",
    "GuardianClientError",
    "GuardianConfigError",
    "GuardianConnectionError",
    "GuardianHandshakeError",
    "GuardianQuorum",
    "GuardianResponseError",
    "GuardianRpcError",
    "GuardianTimeout",
    "InMemoryStorage",
    "KeyValueStorage",
    "LightningModuleRpc",
    "ModuleRpcRequest",
    "QuorumHealth",
    "RpcDispatcher",
    "SESSION_STORAGE_KEY",
    "ServerStatus",
    "SetupRpc",
    "SharedRpc",
    "StatusResponse",
    "__version__",
]
