"""Guardian RPC method catalog.

The setup and running catalogs are disjoint. Which one is valid depends on
the server's lifecycle phase; the server rejects calls from the wrong one.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TypeAlias

MODULE_METHOD_PREFIX = "module"


class SharedRpc(str, Enum):
    """Methods valid in every phase."""

    AUTH = "auth"
    STATUS = "status"


class SetupRpc(str, Enum):
    """Methods that only exist during setup."""

    SET_PASSWORD = "set_password"
    SET_CONFIG_GEN_CONNECTIONS = "set_config_gen_connections"
    GET_DEFAULT_CONFIG_GEN_PARAMS = "get_default_config_gen_params"
    GET_CONSENSUS_CONFIG_GEN_PARAMS = "get_consensus_config_gen_params"
    SET_CONFIG_GEN_PARAMS = "set_config_gen_params"
    GET_VERIFY_CONFIG_HASH = "get_verify_config_hash"
    RUN_DKG = "run_dkg"
    VERIFIED_CONFIGS = "verified_configs"
    START_CONSENSUS = "start_consensus"


class AdminRpc(str, Enum):
    """Methods that only exist once consensus is running."""

    VERSION = "version"
    FETCH_EPOCH_COUNT = "fetch_epoch_count"
    FEDERATION_STATUS = "consensus_status"
    INVITE_CODE = "invite_code"
    CONFIG = "config"
    AUDIT = "audit"


class LightningModuleRpc(str, Enum):
    """Operations of the lightning module."""

    LIST_GATEWAYS = "list_gateways"


RpcMethod: TypeAlias = SharedRpc | SetupRpc | AdminRpc
ModuleRpc: TypeAlias = LightningModuleRpc


@dataclass(frozen=True, slots=True)
class ModuleRpcRequest:
    """Call addressed to one module instance of the federation."""

    module_id: int
    rpc: ModuleRpc | str

    def __post_init__(self) -> None:
        if isinstance(self.module_id, bool) or not isinstance(self.module_id, int):
            raise TypeError("module_id must be an integer")
        if not isinstance(self.rpc, str):
            raise TypeError("Module operation must be a string")

    @property
    def operation(self) -> str:
        return self.rpc.value if isinstance(self.rpc, Enum) else self.rpc

    @property
    def method_name(self) -> str:
        """Wire method name, e.g. ``module_2_list_gateways``."""
        return f"{MODULE_METHOD_PREFIX}_{self.module_id}_{self.operation}"
