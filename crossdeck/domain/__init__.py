# -----------------------------------------------------------------------------
# DOMAIN LAYER
# -----------------------------------------------------------------------------
# Contains the manifest envelope, resource references, live status snapshots
# and the request/response shapes of the tenant-facing API.
# -----------------------------------------------------------------------------

from .models import (
    ROUTE_ACTIONS,
    TASK_STATE_FIELD,
    Action,
    LiveStatusSnapshot,
    ManifestMetadata,
    ResourceKind,
    ResourceManifest,
    ResourceReference,
)

__all__ = [
    "ROUTE_ACTIONS",
    "TASK_STATE_FIELD",
    "Action",
    "LiveStatusSnapshot",
    "ManifestMetadata",
    "ResourceKind",
    "ResourceManifest",
    "ResourceReference",
]
