"""Call dispatch for guardian RPC methods."""

from __future__ import annotations

import logging
from typing import Any

from .connection import ConnectionManager
from .credentials import CredentialStore
from .errors import GuardianClientError, GuardianRpcError
from .methods import ModuleRpcRequest, RpcMethod
from .protocol import build_params

_LOGGER = logging.getLogger(__name__)


class RpcDispatcher:
    """Send authenticated requests over the managed connection."""

    def __init__(self, connection: ConnectionManager, credentials: CredentialStore) -> None:
        self._connection = connection
        self._credentials = credentials

    async def call(self, method: RpcMethod, params: Any = None) -> Any:
        """Call an enumerated guardian method."""
        return await self.call_any_method(method.value, params)

    async def call_module(self, request: ModuleRpcRequest, params: Any = None) -> Any:
        """Call a module-scoped method."""
        return await self.call_any_method(request.method_name, params)

    async def call_any_method(self, method: str, params: Any = None) -> Any:
        """Call a guardian method by wire name.

        Raises:
            GuardianRpcError: The server answered with an error object.
            GuardianClientError: Connection or transport failure.
        """
        _LOGGER.debug("Calling '%s'", method)
        try:
            channel = await self._connection.connect()

            # Read the credential at send time so a concurrent login applies.
            auth = self._credentials.get() or None
            response = await channel.call(method, build_params(auth, params))

            if response.is_error:
                raise GuardianRpcError(response.error)
        except GuardianClientError as err:
            _LOGGER.warning("Error calling '%s' on websocket rpc: %s", method, err)
            raise

        _LOGGER.debug("%s rpc result: %r", method, response.result)
        return response.result
