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
# THE MANIFEST BUILDER
# -----------------------------------------------------------------------------
# Responsibility: Turn a tenant request into a declarative resource document.
#
# Pure: no I/O, no clock, no randomness. Equal inputs always give manifests
# that compare equal, which is what makes re-apply idempotent. Anything
# non-deterministic (the attachment suffix) is passed in by the caller.
# -----------------------------------------------------------------------------

import re
from collections.abc import Callable, Mapping
from typing import Any

from crossdeck.config import DEFAULT_PROVIDER_CONFIG
from crossdeck.domain.models import (
    BLOCKSTORAGE_API_VERSION,
    COMPUTE_API_VERSION,
    ResourceKind,
    ResourceManifest,
)
from crossdeck.errors import ValidationError

DEFAULT_SECURITY_GROUPS = ["default"]

REQUIRED_FIELDS: dict[ResourceKind, tuple[str, ...]] = {
    ResourceKind.NAMESPACE: ("name",),
    ResourceKind.INSTANCE: ("name", "imageId", "flavorId", "networkId"),
    ResourceKind.VOLUME: ("name", "size"),
    ResourceKind.VOLUME_ATTACHMENT: ("vmName", "volumeId", "instanceId", "suffix"),
}

# Fields that end up in a file name, a metadata.name or a command argument
NAME_FIELDS: dict[ResourceKind, tuple[str, ...]] = {
    ResourceKind.NAMESPACE: ("name",),
    ResourceKind.INSTANCE: ("name",),
    ResourceKind.VOLUME: ("name",),
    ResourceKind.VOLUME_ATTACHMENT: ("vmName",),
}

# DNS-1123 label shape, case-insensitive: no '/', no '.', no leading '-'
NAME_PATTERN = re.compile(r"^[A-Za-z0-9]([-A-Za-z0-9]*[A-Za-z0-9])?$")
NAME_MAX_LENGTH = 63


def _is_empty(value: Any) -> bool:
    return value is None or value == "" or value == 0 or value == [] or value == {}


def require(parameters: Mapping[str, Any], fields: tuple[str, ...]) -> None:
    """
    Check that every field is present and non-empty.

    Raises:
        ValidationError: Naming all missing fields, in declaration order.
    """
    missing = [f for f in fields if _is_empty(parameters.get(f))]
    if missing:
        raise ValidationError.missing(missing)


def validate_name(value: Any, field: str) -> str:
    """
    Check a team or resource name before it reaches a path or a command line.

    Raises:
        ValidationError: Not 1-63 letters, digits or '-', or starts / ends with '-'.
    """
    if (
        not isinstance(value, str)
        or len(value) > NAME_MAX_LENGTH
        or not NAME_PATTERN.match(value)
    ):
        raise ValidationError(
            f"Invalid {field} '{value}': use 1-{NAME_MAX_LENGTH} letters, digits "
            f"or '-', starting and ending with a letter or digit",
            fields=[field],
        )
    return value


def _provider_ref(parameters: Mapping[str, Any]) -> dict[str, str]:
    return {"name": parameters.get("providerConfig") or DEFAULT_PROVIDER_CONFIG}


def _namespace(tenant: str | None, p: Mapping[str, Any]) -> ResourceManifest:
    return ResourceManifest(
        apiVersion="v1",
        kind=ResourceKind.NAMESPACE.value,
        metadata={"name": p["name"]},
    )


def _instance(tenant: str | None, p: Mapping[str, Any]) -> ResourceManifest:
    security_groups = list(p.get("securityGroups") or DEFAULT_SECURITY_GROUPS)
    return ResourceManifest(
        apiVersion=COMPUTE_API_VERSION,
        kind=ResourceKind.INSTANCE.value,
        metadata={"name": p["name"], "namespace": tenant},
        spec={
            "forProvider": {
                "configDrive": True,
                "flavorId": p["flavorId"],
                "imageId": p["imageId"],
                "name": p["name"],
                "network": [{"uuid": p["networkId"]}],
                "securityGroups": security_groups,
            },
            "providerConfigRef": _provider_ref(p),
        },
    )


def _volume(tenant: str | None, p: Mapping[str, Any]) -> ResourceManifest:
    return ResourceManifest(
        apiVersion=BLOCKSTORAGE_API_VERSION,
        kind=ResourceKind.VOLUME.value,
        metadata={"name": p["name"], "namespace": tenant},
        spec={
            "forProvider": {
                "name": p["name"],
                "size": p["size"],
                "description": p.get("description") or "",
            },
            "providerConfigRef": _provider_ref(p),
        },
    )


def attachment_name(vm_name: str, suffix: str) -> str:
    """<vm>-attach-<suffix>, suffix truncated to 8 characters."""
    return f"{vm_name}-attach-{suffix[:8]}"


def _attachment(tenant: str | None, p: Mapping[str, Any]) -> ResourceManifest:
    return ResourceManifest(
        apiVersion=COMPUTE_API_VERSION,
        kind=ResourceKind.VOLUME_ATTACHMENT.value,
        metadata={"name": attachment_name(p["vmName"], p["suffix"]), "namespace": tenant},
        spec={
            "instanceId": p["instanceId"],
            "volumeId": p["volumeId"],
            "providerConfigRef": _provider_ref(p),
            "deletionPolicy": "Delete",
        },
    )


_BUILDERS: dict[ResourceKind, Callable[[str | None, Mapping[str, Any]], ResourceManifest]] = {
    ResourceKind.NAMESPACE: _namespace,
    ResourceKind.INSTANCE: _instance,
    ResourceKind.VOLUME: _volume,
    ResourceKind.VOLUME_ATTACHMENT: _attachment,
}


def build(
    kind: ResourceKind | str,
    tenant: str | None,
    parameters: Mapping[str, Any],
) -> ResourceManifest:
    """
    Build the manifest for one resource.

    Args:
        kind: Target kind (ResourceKind or its string value).
        tenant: Namespace the resource lives in. Ignored for Namespace.
        parameters: camelCase request fields, e.g. name, imageId, flavorId,
            networkId, securityGroups. An optional providerConfig overrides
            the providerConfigRef name.

    Returns:
        The ResourceManifest. Nothing is written or applied.

    Raises:
        ValidationError: Unknown kind, missing tenant, missing fields or
            a name that is not a DNS-1123 style label.
    """
    try:
        kind = ResourceKind(kind)
    except ValueError:
        raise ValidationError(f"Unsupported resource kind '{kind}'") from None

    require(parameters, REQUIRED_FIELDS[kind])
    if kind is not ResourceKind.NAMESPACE:
        if not tenant:
            raise ValidationError.missing(["tenant"])
        validate_name(tenant, "tenant")
    for field in NAME_FIELDS[kind]:
        validate_name(parameters[field], field)
    if kind is ResourceKind.VOLUME_ATTACHMENT:
        validate_name(str(parameters["suffix"])[:8], "suffix")

    size = parameters.get("size")
    if kind is ResourceKind.VOLUME and (not isinstance(size, int) or size < 0):
        raise ValidationError("'size' must be a positive integer", fields=["size"])

    return _BUILDERS[kind](tenant, parameters)
