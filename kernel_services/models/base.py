"""Base model for remote resource snapshots."""

from pydantic import BaseModel
from pydantic import ConfigDict


class SnapshotModel(BaseModel):
    """Immutable model for documents reported by the kernel server.

    Instances are never mutated in place; a changed resource is replaced
    wholesale. Fields the server adds beyond the declared ones are kept so
    they take part in change detection.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="allow",
        populate_by_name=True,
    )
