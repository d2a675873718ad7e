"""Infrastructure client adapters."""

from inspectix.infra.clients.rest_rpc_gateway import RestRpcGateway
from inspectix.infra.clients.unconfigured_gateway import UnconfiguredGateway

__all__ = [
    "RestRpcGateway",
    "UnconfiguredGateway",
]
