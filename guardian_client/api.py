"""High-level guardian API client.

This module provides the API an operator application uses to drive a
guardian through setup and, once consensus runs, to administer it:
- Connection lifecycle and credential handling
- Setup-phase methods (password, config generation, DKG, start consensus)
- Running-phase methods (status, config, audit, module calls)

Which methods are valid depends on the server's phase. The client forwards
every call and leaves it to the server to reject calls from the wrong phase.
"""

from __future__ import annotations

import logging
from types import TracebackType
from typing import Any

from .config import GuardianApiSettings
from .connection import ConnectionManager, ConnectionState
from .consensus import await_with_grace, confirm_consensus_running
from .credentials import CredentialStore
from .dispatcher import RpcDispatcher
from .errors import GuardianClientError, GuardianResponseError
from .methods import (
    AdminRpc,
    ModuleRpc,
    ModuleRpcRequest,
    SetupRpc,
    SharedRpc,
)
from .transport.rpc_client import RpcTransport, TransportFactory
from .types import (
    AuditSummary,
    ConfigGenParams,
    ConfigResponse,
    ConsensusState,
    FederationStatus,
    PeerHashMap,
    StatusResponse,
    Versions,
)

_LOGGER = logging.getLogger(__name__)


class GuardianApi:
    """Client for one guardian's JSON-RPC API.

    Usage:
        api = GuardianApi(GuardianApiSettings.from_env())
        if await api.test_password("hunter2"):
            status = await api.status()
        await api.shutdown()
    """

    def __init__(
        self,
        settings: GuardianApiSettings | None = None,
        *,
        credentials: CredentialStore | None = None,
        transport_factory: TransportFactory | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            settings: Endpoint and retry settings, read from the environment when omitted
            credentials: Credential store, the process-wide session store when omitted
            transport_factory: Channel factory, JSON-RPC over WebSocket when omitted
        """
        self.settings = settings if settings is not None else GuardianApiSettings.from_env()
        self._credentials = credentials if credentials is not None else CredentialStore()
        self._connection = ConnectionManager(self.settings, transport_factory=transport_factory)
        self._dispatcher = RpcDispatcher(self._connection, self._credentials)

    async def __aenter__(self) -> GuardianApi:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.shutdown()

    # -------------------------------------------------------------------------
    # Connection
    # -------------------------------------------------------------------------

    async def connect(self) -> RpcTransport:
        """Return the live channel, opening one if needed."""
        return await self._connection.connect()

    async def shutdown(self) -> bool:
        """Close the channel; True if it closed cleanly or nothing was open."""
        return await self._connection.shutdown()

    @property
    def connection_state(self) -> ConnectionState:
        return self._connection.state

    # -------------------------------------------------------------------------
    # Authentication
    # -------------------------------------------------------------------------

    def get_password(self) -> str | None:
        return self._credentials.get()

    def clear_password(self) -> None:
        self._credentials.clear()

    async def test_password(self, password: str) -> bool:
        """Check a password against the guardian, keeping it if accepted.

        Any failure clears the stored password, including an unreachable
        server, so callers cannot tell the two apart from the result.
        """
        self._credentials.set(password)
        try:
            await self.auth()
        except GuardianClientError as err:
            _LOGGER.info("Password rejected or guardian unavailable: %s", err)
            self.clear_password()
            return False
        return True

    async def call(self, method: SharedRpc | SetupRpc | AdminRpc, params: Any = None) -> Any:
        return await self._dispatcher.call(method, params)

    async def call_any_method(self, method: str, params: Any = None) -> Any:
        return await self._dispatcher.call_any_method(method, params)

    # -------------------------------------------------------------------------
    # Shared methods
    # -------------------------------------------------------------------------

    async def auth(self) -> None:
        await self._dispatcher.call(SharedRpc.AUTH)

    async def status(self) -> StatusResponse:
        data = await self._dispatcher.call(SharedRpc.STATUS)
        try:
            return StatusResponse.from_dict(data)
        except (AttributeError, TypeError, ValueError) as err:
            raise GuardianResponseError(f"Malformed status response: {data!r}") from err

    # -------------------------------------------------------------------------
    # Setup methods
    # -------------------------------------------------------------------------

    async def set_password(self, password: str) -> None:
        """Set the guardian password; it travels as the call's credential."""
        self._credentials.set(password)
        await self._dispatcher.call(SetupRpc.SET_PASSWORD)

    async def set_config_gen_connections(
        self, our_name: str, leader_url: str | None = None
    ) -> None:
        """Name this guardian and, for followers, point it at the leader."""
        connections: dict[str, str] = {"our_name": our_name}
        if leader_url is not None:
            connections["leader_api_url"] = leader_url
        await self._dispatcher.call(SetupRpc.SET_CONFIG_GEN_CONNECTIONS, connections)

    async def get_default_config_gen_params(self) -> ConfigGenParams:
        return await self._dispatcher.call(SetupRpc.GET_DEFAULT_CONFIG_GEN_PARAMS)

    async def get_consensus_config_gen_params(self) -> ConsensusState:
        return await self._dispatcher.call(SetupRpc.GET_CONSENSUS_CONFIG_GEN_PARAMS)

    async def set_config_gen_params(self, params: ConfigGenParams) -> None:
        await self._dispatcher.call(SetupRpc.SET_CONFIG_GEN_PARAMS, params)

    async def get_verify_config_hash(self) -> PeerHashMap:
        return await self._dispatcher.call(SetupRpc.GET_VERIFY_CONFIG_HASH)

    async def run_dkg(self) -> None:
        await self._dispatcher.call(SetupRpc.RUN_DKG)

    async def verified_configs(self) -> None:
        await self._dispatcher.call(SetupRpc.VERIFIED_CONFIGS)

    async def start_consensus(self) -> None:
        """Start consensus and wait until the restarted guardian runs it.

        Raises:
            ConsensusStartError: If consensus was not observed running in time.
        """
        await await_with_grace(
            self._dispatcher.call(SetupRpc.START_CONSENSUS),
            self.settings.start_consensus_grace,
        )
        await confirm_consensus_running(
            self.connect,
            self.shutdown,
            self.status,
            max_tries=self.settings.confirm_max_tries,
            retry_delay=self.settings.confirm_retry_delay,
        )

    # -------------------------------------------------------------------------
    # Running methods
    # -------------------------------------------------------------------------

    async def version(self) -> Versions:
        return await self._dispatcher.call(AdminRpc.VERSION)

    async def fetch_epoch_count(self) -> int:
        return await self._dispatcher.call(AdminRpc.FETCH_EPOCH_COUNT)

    async def federation_status(self) -> FederationStatus:
        data = await self._dispatcher.call(AdminRpc.FEDERATION_STATUS)
        try:
            return FederationStatus.from_dict(data)
        except (AttributeError, TypeError, ValueError) as err:
            raise GuardianResponseError(f"Malformed federation status: {data!r}") from err

    async def invite_code(self) -> str:
        return await self._dispatcher.call(AdminRpc.INVITE_CODE)

    async def config(self, connection: str) -> ConfigResponse:
        """Fetch the federation client config for an invite code."""
        data = await self._dispatcher.call(AdminRpc.CONFIG, connection)
        try:
            return ConfigResponse.from_dict(data)
        except (AttributeError, TypeError, ValueError) as err:
            raise GuardianResponseError(f"Malformed config response: {data!r}") from err

    async def audit(self) -> AuditSummary:
        data = await self._dispatcher.call(AdminRpc.AUDIT)
        try:
            return AuditSummary.from_dict(data)
        except (AttributeError, TypeError, ValueError) as err:
            raise GuardianResponseError(f"Malformed audit summary: {data!r}") from err

    async def module_api_call(self, module_id: int, rpc: ModuleRpc | str) -> Any:
        """Call an operation on one module, e.g. ``(2, "list_gateways")``."""
        return await self._dispatcher.call_module(ModuleRpcRequest(module_id, rpc))
