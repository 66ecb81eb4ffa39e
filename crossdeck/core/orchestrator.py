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
# THE ACTION ORCHESTRATOR
# -----------------------------------------------------------------------------
# Sequences every tenant request:
#
#   Idle -> Inspecting -> {Blocked | Proceeding} -> Executing -> {Completed | Failed}
#
# - Start / stop / delete on the action route inspect the live server first.
#   A non-empty task state ends the request with ConflictError and the
#   executor is never called.
# - Manifest operations (team, VM, volume, attachment, resize), scale and the
#   direct delete skip inspection and go straight to Proceeding.
# - Failures are surfaced once, annotated with action and target. No retries.
#
# The busy check is read-then-act. Two requests can both see "not busy".
# Settings.serialize_actions closes that window within one process only.
# -----------------------------------------------------------------------------

import threading
import uuid
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, TypeVar

from rich.console import Console

from crossdeck.config import Settings
from crossdeck.core import builder
from crossdeck.core.executor import ApplyExecutor
from crossdeck.core.inspector import StateInspector
from crossdeck.core.store import FLAVOR_PATH, ManifestStore, set_field
from crossdeck.domain.models import (
    ROUTE_ACTIONS,
    Action,
    ResourceKind,
    ResourceReference,
)
from crossdeck.errors import ConflictError, CrossdeckError, ExecutionError, ValidationError
from crossdeck.infra.runner import CommandRunner, SubprocessRunner

console = Console()

T = TypeVar("T")


class ActionState(str, Enum):
    IDLE = "Idle"
    INSPECTING = "Inspecting"
    BLOCKED = "Blocked"
    PROCEEDING = "Proceeding"
    EXECUTING = "Executing"
    COMPLETED = "Completed"
    FAILED = "Failed"


@dataclass
class ActionOutcome:
    """What a completed request reports back."""

    action: str
    target: str
    message: str
    output: str = ""
    states: list[ActionState] = field(default_factory=list)


@dataclass
class _HeldLock:
    lock: threading.Lock = field(default_factory=threading.Lock)
    # holders plus waiters
    users: int = 0


class ResourceLocks:
    """
    Optional per-resource mutual exclusion around inspect + act.

    Disabled, hold() is a no-op and the read-then-act race stays as is.
    An entry lives only while some request holds or waits on it.
    """

    def __init__(self, enabled: bool = False) -> None:
        self.enabled = enabled
        self._guard = threading.Lock()
        self._locks: dict[tuple, _HeldLock] = {}

    @property
    def tracked(self) -> int:
        """Number of resources currently held or waited on."""
        with self._guard:
            return len(self._locks)

    @contextmanager
    def hold(self, key: tuple) -> Iterator[None]:
        if not self.enabled:
            yield
            return
        with self._guard:
            entry = self._locks.setdefault(key, _HeldLock())
            entry.users += 1
        try:
            with entry.lock:
                yield
        finally:
            with self._guard:
                entry.users -= 1
                if entry.users == 0:
                    del self._locks[key]


class _Trace:
    """State path of one request, logged as it advances."""

    def __init__(self, action: str, target: str) -> None:
        self.action = action
        self.target = target
        self.states: list[ActionState] = [ActionState.IDLE]

    def advance(self, state: ActionState) -> None:
        self.states.append(state)
        color = {
            ActionState.BLOCKED: "yellow",
            ActionState.FAILED: "red",
            ActionState.COMPLETED: "green",
        }.get(state, "cyan")
        console.print(f"[{color}][ORCHESTRATOR] {self.action} {self.target}: {state.value}[/{color}]")

    def outcome(self, message: str, output: str = "") -> ActionOutcome:
        return ActionOutcome(
            action=self.action,
            target=self.target,
            message=message,
            output=output,
            states=list(self.states),
        )


class ActionOrchestrator:
    """
    Entry point for every tenant operation.

    Args:
        settings: Explicit configuration (paths, binaries, locking).
        runner: CommandRunner for the default inspector / executor.
        store, inspector, executor: Override individual collaborators.
    """

    def __init__(
        self,
        settings: Settings,
        runner: CommandRunner | None = None,
        *,
        store: ManifestStore | None = None,
        inspector: StateInspector | None = None,
        executor: ApplyExecutor | None = None,
    ) -> None:
        self._settings = settings
        runner = runner or SubprocessRunner(settings)
        self._store = store or ManifestStore(settings)
        self._inspector = inspector or StateInspector(settings, runner)
        self._executor = executor or ApplyExecutor(settings, runner)
        self._locks = ResourceLocks(enabled=settings.serialize_actions)

        console.print(
            f"[green][ORCHESTRATOR] Online (manifests: {settings.manifest_dir}, "
            f"serialize_actions={settings.serialize_actions})[/green]"
        )

    # =========================================================================
    # STATE MACHINE HELPERS
    # =========================================================================

    def _execute(self, trace: _Trace, step: Callable[[], T]) -> T:
        """Proceeding -> Executing -> {Completed | Failed}."""
        trace.advance(ActionState.EXECUTING)
        try:
            result = step()
        except ExecutionError as e:
            trace.advance(ActionState.FAILED)
            raise e.annotate(trace.action, trace.target) from e
        except CrossdeckError:
            trace.advance(ActionState.FAILED)
            raise
        trace.advance(ActionState.COMPLETED)
        return result

    def _provisioning_params(self, params: dict[str, Any]) -> dict[str, Any]:
        return {**params, "providerConfig": self._settings.provider_config}

    # =========================================================================
    # TENANTS
    # =========================================================================

    def register_team(self, name: str | None) -> ActionOutcome:
        trace = _Trace("register-team", name or "")
        manifest = builder.build(ResourceKind.NAMESPACE, None, {"name": name})
        trace.advance(ActionState.PROCEEDING)
        self._execute(
            trace, lambda: self._executor.apply_transient(manifest, f"namespace-{manifest.name}.yaml")
        )
        return trace.outcome(f"Namespace '{manifest.name}' created successfully.")

    def describe_team(self, team: str) -> Any:
        """Raw namespace status, passed through unmodified."""
        builder.validate_name(team, "tenant")
        return self._inspector.describe_namespace(team)

    # =========================================================================
    # MANIFEST OPERATIONS
    # =========================================================================

    def create_vm(self, team: str, params: dict[str, Any]) -> ActionOutcome:
        """Build an InstanceV2 and apply it to <manifest_dir>/<team>-<name>.yaml."""
        trace = _Trace("create-vm", f"{team}/{params.get('name') or ''}")
        manifest = builder.build(ResourceKind.INSTANCE, team, self._provisioning_params(params))
        path = self._settings.manifest_path(team, manifest.name)
        trace.advance(ActionState.PROCEEDING)
        self._execute(trace, lambda: self._executor.apply(manifest, path))
        return trace.outcome(
            f"VM '{manifest.name}' provisioned successfully in namespace '{team}'."
        )

    def resize_vm(self, team: str, vm_name: str, flavor_id: str | None) -> ActionOutcome:
        """
        Change the flavor of an existing VM in place.

        Load -> mutate spec.forProvider.flavorId -> re-apply at the same path.

        Raises:
            ValidationError: flavor_id missing.
            NotFoundError: No manifest was ever applied for (team, vm_name).
            MalformedManifestError: Stored manifest lacks spec.forProvider.
        """
        if not flavor_id:
            raise ValidationError("Missing 'flavorId' in request", fields=["flavorId"])
        builder.validate_name(team, "tenant")
        builder.validate_name(vm_name, "vmName")

        trace = _Trace("resize", vm_name)
        reference = ResourceReference(tenant=team, name=vm_name)
        with self._locks.hold((ResourceKind.INSTANCE.value, team, vm_name)):
            try:
                manifest = self._store.load(reference)
                updated = self._store.update(manifest, FLAVOR_PATH, set_field(flavor_id))
            except CrossdeckError:
                trace.advance(ActionState.FAILED)
                raise
            trace.advance(ActionState.PROCEEDING)
            self._execute(trace, lambda: self._executor.apply(updated, self._store.path_for(reference)))
        return trace.outcome(f"Flavor for VM '{vm_name}' updated successfully.")

    def attach_disk(
        self,
        team: str,
        vm_name: str,
        params: dict[str, Any],
        suffix: str | None = None,
    ) -> ActionOutcome:
        """Apply a transient VolumeAttachmentV2 named <vm>-attach-<8 hex>."""
        suffix = suffix or uuid.uuid4().hex[:8]
        manifest = builder.build(
            ResourceKind.VOLUME_ATTACHMENT,
            team,
            {**self._provisioning_params(params), "vmName": vm_name, "suffix": suffix},
        )
        trace = _Trace("attach-disk", manifest.name)
        trace.advance(ActionState.PROCEEDING)
        self._execute(trace, lambda: self._executor.apply_transient(manifest, f"{manifest.name}.yaml"))
        return trace.outcome(f"Disk attachment request sent: {manifest.name}")

    def create_block_volume(self, team: str, params: dict[str, Any]) -> ActionOutcome:
        trace = _Trace("create-block", f"{team}/{params.get('name') or ''}")
        manifest = builder.build(ResourceKind.VOLUME, team, self._provisioning_params(params))
        trace.advance(ActionState.PROCEEDING)
        result = self._execute(
            trace, lambda: self._executor.apply_transient(manifest, f"{manifest.name}-block.yaml")
        )
        return trace.outcome(
            f"Block volume '{manifest.name}' created successfully in namespace '{team}'.",
            output=result.output,
        )

    # =========================================================================
    # IMPERATIVE ACTIONS
    # =========================================================================

    def scale(self, team: str, resource_id: str, replicas: int | None) -> ActionOutcome:
        """kubectl scale deployment/<resource_id>. 0 replicas is valid; None is not."""
        if replicas is None:
            raise ValidationError("Missing 'replicas' in request", fields=["replicas"])
        if replicas < 0:
            raise ValidationError("'replicas' must not be negative", fields=["replicas"])
        builder.validate_name(team, "tenant")
        builder.validate_name(resource_id, "resourceId")

        trace = _Trace(Action.SCALE.value, resource_id)
        trace.advance(ActionState.PROCEEDING)
        self._execute(
            trace, lambda: self._executor.run(Action.SCALE, resource_id, team, replicas=replicas)
        )
        return trace.outcome(f"Scaled VM '{resource_id}' to {replicas} replicas.")

    def vm_action(self, team: str, vm_name: str, action: str) -> ActionOutcome:
        """
        Start, stop or delete a VM, refusing if it is mid-transition.

        Raises:
            ValidationError: action is not start / stop / delete.
            ConflictError: The server reports a non-empty task state.
            NotFoundError / UpstreamUnavailableError: Status query failed.
            ExecutionError: The action command failed.
        """
        try:
            requested = Action(action)
        except ValueError:
            requested = None
        if requested not in ROUTE_ACTIONS:
            raise ValidationError(f"Unsupported action '{action}'.")
        builder.validate_name(team, "tenant")
        builder.validate_name(vm_name, "vmName")

        trace = _Trace(requested.value, vm_name)
        with self._locks.hold((ResourceKind.INSTANCE.value, team, vm_name)):
            trace.advance(ActionState.INSPECTING)
            try:
                snapshot = self._inspector.current_state(vm_name)
            except CrossdeckError:
                trace.advance(ActionState.FAILED)
                raise

            if snapshot.busy:
                trace.advance(ActionState.BLOCKED)
                raise ConflictError(
                    f"VM is currently busy (task_state: {snapshot.task_state}). Try again later.",
                    task_state=snapshot.task_state,
                )

            trace.advance(ActionState.PROCEEDING)
            result = self._execute(trace, lambda: self._executor.run(requested, vm_name, team))

        return trace.outcome(
            f"Action '{requested.value}' executed on VM '{vm_name}'. Output:\n{result.stdout}",
            output=result.stdout,
        )

    def delete_vm(self, team: str, resource_id: str) -> ActionOutcome:
        """Direct delete-by-name; no busy check. vm_action(..., "delete") is the guarded path."""
        builder.validate_name(team, "tenant")
        builder.validate_name(resource_id, "resourceId")
        trace = _Trace(Action.REMOVE.value, resource_id)
        trace.advance(ActionState.PROCEEDING)
        self._execute(trace, lambda: self._executor.run(Action.REMOVE, resource_id, team))
        return trace.outcome(f"VM '{resource_id}' deleted from team '{team}'.")
