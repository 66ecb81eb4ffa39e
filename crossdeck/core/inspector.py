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
# THE STATE INSPECTOR
# -----------------------------------------------------------------------------
# Responsibility: Ask the provider / control plane what a resource looks like
# right now. Nothing is cached; every call is a fresh query.
#
# A query that fails or returns something other than a JSON object is a
# hard failure (UpstreamUnavailableError). It is never read as "not busy".
# -----------------------------------------------------------------------------

import json
from typing import Any

from rich.console import Console

from crossdeck.config import Settings
from crossdeck.domain.models import TASK_STATE_FIELD, LiveStatusSnapshot
from crossdeck.errors import ExecutionError, NotFoundError, UpstreamUnavailableError
from crossdeck.infra.runner import CommandRunner, openstack_command

console = Console()

# stderr markers for "the thing you asked about does not exist"
SERVER_NOT_FOUND_MARKERS = ("No server with a name or ID",)
K8S_NOT_FOUND_MARKERS = ("(NotFound)",)


def _parse_object(output: str, what: str) -> dict[str, Any]:
    try:
        data = json.loads(output)
    except json.JSONDecodeError as e:
        raise UpstreamUnavailableError(f"Failed to parse {what}: {e}") from e
    if not isinstance(data, dict):
        raise UpstreamUnavailableError(f"Failed to parse {what}: expected a JSON object")
    return data


def extract_task_state(status: dict[str, Any]) -> str:
    """Transition-blocking value, or "" when absent / null / not a string."""
    value = status.get(TASK_STATE_FIELD)
    if isinstance(value, str):
        return value.strip()
    return ""


class StateInspector:
    """Fresh status queries through the Command Runner."""

    def __init__(self, settings: Settings, runner: CommandRunner) -> None:
        self._settings = settings
        self._runner = runner

    def current_state(self, resource_name: str) -> LiveStatusSnapshot:
        """
        Fetch the live status of a server.

        Raises:
            NotFoundError: The provider has no server by that name.
            UpstreamUnavailableError: The query failed or was unparsable.
        """
        argv = openstack_command(self._settings, "server", "show", resource_name, "-f", "json")
        try:
            result = self._runner.run_action(argv)
        except ExecutionError as e:
            if any(marker in e.stderr for marker in SERVER_NOT_FOUND_MARKERS):
                raise NotFoundError(f"VM '{resource_name}' not found") from e
            console.print(f"[red][INSPECTOR] Status query failed for {resource_name}[/red]")
            raise UpstreamUnavailableError(
                f"Failed to fetch VM status: {e}\n{e.stderr}".rstrip()
            ) from e

        status = _parse_object(result.stdout, "VM status")
        snapshot = LiveStatusSnapshot(
            name=resource_name,
            raw=status,
            task_state=extract_task_state(status),
        )
        if snapshot.busy:
            console.print(
                f"[yellow][INSPECTOR] {resource_name} busy (task_state: {snapshot.task_state})[/yellow]"
            )
        return snapshot

    def describe_namespace(self, tenant: str) -> Any:
        """
        Raw `kubectl get namespace <tenant> -o json` output, parsed but not typed.

        Raises:
            NotFoundError: The namespace does not exist.
            UpstreamUnavailableError: kubectl failed or printed non-JSON.
        """
        argv = [self._settings.kubectl_bin, "get", "namespace", tenant, "-o", "json"]
        try:
            result = self._runner.run_action(argv)
        except ExecutionError as e:
            if any(marker in e.stderr for marker in K8S_NOT_FOUND_MARKERS):
                raise NotFoundError(f"Team '{tenant}' not found") from e
            raise UpstreamUnavailableError(
                f"Failed to get namespace details: {e}\n{e.stderr}".rstrip()
            ) from e

        try:
            return json.loads(result.stdout)
        except json.JSONDecodeError as e:
            raise UpstreamUnavailableError(f"Failed to parse kubectl output: {e}") from e
