"""Backend client: entity records and the store that persists them."""

from qbot.backend.store import (
    EntityStore,
    LocalEntityStore,
    HttpEntityStore,
    BackendError,
    BackendConfigurationError,
    get_store,
    set_store,
)

__all__ = [
    "EntityStore",
    "LocalEntityStore",
    "HttpEntityStore",
    "BackendError",
    "BackendConfigurationError",
    "get_store",
    "set_store",
]
