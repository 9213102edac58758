"""Backend dispatch."""

from hubgate.gateway_plane.dispatch.client import (
    BackendClient,
    BackendResponse,
    close_backend_client,
    get_backend_client,
    init_backend_client,
    set_backend_client,
)

__all__ = [
    "BackendClient",
    "BackendResponse",
    "get_backend_client",
    "init_backend_client",
    "close_backend_client",
    "set_backend_client",
]
