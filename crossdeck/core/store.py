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
# MANIFEST STORE
# -----------------------------------------------------------------------------
# Responsibility: Read Applied-Manifest Files back and mutate in-memory copies.
#
# The store never writes. Persisting a mutated manifest is the executor's
# job, so "apply" stays the single point where state changes.
# -----------------------------------------------------------------------------

import copy
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError as PydanticValidationError
from rich.console import Console

from crossdeck.config import Settings
from crossdeck.domain.models import ResourceManifest, ResourceReference
from crossdeck.errors import MalformedManifestError, NotFoundError

console = Console()

FLAVOR_PATH = "spec.forProvider.flavorId"


def split_path(path: str | Sequence[str]) -> list[str]:
    if isinstance(path, str):
        return [segment for segment in path.split(".") if segment]
    return list(path)


def set_field(value: Any) -> Callable[[Any], Any]:
    """Mutation that replaces whatever is at the path with value."""
    return lambda _current: value


def set_nested(document: dict[str, Any], path: str | Sequence[str], value: Any) -> None:
    """
    Set document[a][b]...[leaf] = value in place.

    Every segment before the leaf must already exist and be a mapping; the
    leaf itself may be new.

    Raises:
        MalformedManifestError: If the path does not resolve.
    """
    apply_nested(document, path, set_field(value))


def apply_nested(
    document: dict[str, Any],
    path: str | Sequence[str],
    mutate: Callable[[Any], Any],
) -> None:
    """Replace the leaf at path with mutate(current leaf value or None)."""
    segments = split_path(path)
    if not segments:
        raise MalformedManifestError("Empty field path")

    node: Any = document
    walked: list[str] = []
    for segment in segments[:-1]:
        walked.append(segment)
        if not isinstance(node, dict) or not isinstance(node.get(segment), dict):
            raise MalformedManifestError(
                f"Manifest has no mapping at '{'.'.join(walked)}'"
            )
        node = node[segment]

    if not isinstance(node, dict):
        raise MalformedManifestError(f"Manifest has no mapping at '{'.'.join(walked)}'")

    leaf = segments[-1]
    node[leaf] = mutate(node.get(leaf))


class ManifestStore:
    """
    Accessor for Applied-Manifest Files.

    Files live at Settings.manifest_path(tenant, name).
    """

    def __init__(self, settings: Settings) -> None:
        self._settings = settings

    def path_for(self, reference: ResourceReference) -> Path:
        return self._settings.manifest_path(reference.tenant, reference.name)

    def load(self, reference: ResourceReference) -> ResourceManifest:
        """
        Load the last applied manifest for a reference.

        Raises:
            NotFoundError: No file for this reference.
            MalformedManifestError: File is not a manifest document.
        """
        path = self.path_for(reference)
        if not path.is_file():
            console.print(f"[yellow][STORE] No manifest for {reference}: {path}[/yellow]")
            raise NotFoundError(f"{path} not found")

        with open(path) as f:
            try:
                document = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise MalformedManifestError(f"Failed to parse {path}: {e}") from e

        if not isinstance(document, dict):
            raise MalformedManifestError(f"{path} does not contain a manifest mapping")

        try:
            return ResourceManifest.from_document(document)
        except PydanticValidationError as e:
            raise MalformedManifestError(f"{path} is not a valid manifest: {e}") from e

    def update(
        self,
        manifest: ResourceManifest,
        path: str | Sequence[str],
        mutate: Callable[[Any], Any],
    ) -> ResourceManifest:
        """
        Return a mutated copy of manifest; the original is left untouched.

        Args:
            manifest: A loaded (or freshly built) manifest.
            path: Dotted field path such as "spec.forProvider.flavorId".
            mutate: Receives the current leaf value, returns the new one.

        Raises:
            MalformedManifestError: If the nested structure is missing.
        """
        document = copy.deepcopy(manifest.to_document())
        apply_nested(document, path, mutate)
        try:
            return ResourceManifest.from_document(document)
        except PydanticValidationError as e:
            raise MalformedManifestError(f"Mutation produced an invalid manifest: {e}") from e
