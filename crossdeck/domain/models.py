# Copyright 2026 Pramod Kumar Voola
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

# -----------------------------------------------------------------------------
# DOMAIN MODELS - MANIFESTS, REFERENCES, LIVE STATUS
# -----------------------------------------------------------------------------
# A ResourceManifest is the declarative document handed to the reconciler.
# Only its envelope (apiVersion, kind, metadata) is typed; the spec stays a
# loosely-typed nested mapping so a manifest read back from disk can be
# mutated without a fixed schema.
# -----------------------------------------------------------------------------

import copy
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

# Provider field that is non-empty while a server is mid-operation
TASK_STATE_FIELD = "OS-EXT-STS:task_state"

COMPUTE_API_VERSION = "compute.openstack.crossplane.io/v1alpha1"
BLOCKSTORAGE_API_VERSION = "blockstorage.openstack.crossplane.io/v1alpha1"


class ResourceKind(str, Enum):
    """Manifest kinds the builder knows how to produce."""

    NAMESPACE = "Namespace"
    INSTANCE = "InstanceV2"
    VOLUME = "VolumeV3"
    VOLUME_ATTACHMENT = "VolumeAttachmentV2"


class Action(str, Enum):
    """
    Imperative commands the executor can run.

    START, STOP and DELETE are reachable from the action route and are
    guarded by the busy-state check. SCALE and REMOVE (direct delete by
    name) are issued without inspection.
    """

    START = "start"
    STOP = "stop"
    DELETE = "delete"
    SCALE = "scale"
    REMOVE = "remove"


ROUTE_ACTIONS = frozenset({Action.START, Action.STOP, Action.DELETE})


class ManifestMetadata(BaseModel):
    """metadata block of a manifest. Cluster-scoped kinds have no namespace."""

    model_config = ConfigDict(extra="allow")

    name: str = Field(..., min_length=1)
    namespace: str | None = None


class ResourceManifest(BaseModel):
    """
    A declarative resource document.

    Identity is (kind, namespace, name). Two manifests are equal when their
    documents are structurally equal; key order is irrelevant.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    api_version: str = Field(..., alias="apiVersion", min_length=1)
    kind: str = Field(..., min_length=1)
    metadata: ManifestMetadata
    spec: dict[str, Any] | None = None

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def namespace(self) -> str | None:
        return self.metadata.namespace

    @property
    def identity(self) -> tuple[str, str | None, str]:
        return (self.kind, self.metadata.namespace, self.metadata.name)

    def to_document(self) -> dict[str, Any]:
        """Plain nested dict in manifest key order, ready for YAML."""
        document: dict[str, Any] = {
            "apiVersion": self.api_version,
            "kind": self.kind,
            "metadata": self.metadata.model_dump(exclude_none=True),
        }
        if self.spec is not None:
            document["spec"] = copy.deepcopy(self.spec)
        for key, value in (self.model_extra or {}).items():
            document[key] = copy.deepcopy(value)
        return document

    @classmethod
    def from_document(cls, document: dict[str, Any]) -> "ResourceManifest":
        return cls.model_validate(document)


class ResourceReference(BaseModel):
    """(tenant, name) address of a manifest that may or may not exist."""

    tenant: str
    name: str

    def __str__(self) -> str:
        return f"{self.tenant}/{self.name}"


class LiveStatusSnapshot(BaseModel):
    """
    Provider-reported status of a compute resource.

    raw is passed through exactly as the provider returned it.
    """

    name: str
    raw: dict[str, Any]
    task_state: str = ""

    @property
    def busy(self) -> bool:
        return bool(self.task_state)


# =============================================================================
# REQUEST / RESPONSE MODELS
# =============================================================================
# Request fields are all optional at the decoding layer: presence checks
# belong to the manifest builder so that every entry point reports missing
# fields the same way.


class _Request(BaseModel):
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)


class RegisterTeamRequest(_Request):
    name: str | None = None


class CreateVMRequest(_Request):
    name: str | None = None
    image_id: str | None = Field(default=None, alias="imageId")
    flavor_id: str | None = Field(default=None, alias="flavorId")
    network_id: str | None = Field(default=None, alias="networkId")
    security_groups: list[str] | None = Field(default=None, alias="securityGroups")


class ResizeRequest(_Request):
    flavor_id: str | None = Field(default=None, alias="flavorId")


class ScaleRequest(_Request):
    # None means "not supplied"; 0 is a valid replica count
    replicas: int | None = None


class AttachDiskRequest(_Request):
    volume_id: str | None = Field(default=None, alias="volumeId")
    instance_id: str | None = Field(default=None, alias="instanceId")


class CreateBlockRequest(_Request):
    name: str | None = None
    size: int | None = None
    description: str | None = None


class MessageResponse(BaseModel):
    message: str


class BlockVolumeResponse(BaseModel):
    message: str
    kubectl_output: str
