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
# COMMAND RUNNER - THE ONLY WAY OUT TO THE CONTROL PLANE
# -----------------------------------------------------------------------------
# Responsibility: Run kubectl / openstack as child processes and hand back
# their exit status and output streams.
#
# Two operations:
# - apply_manifest(path): kubectl apply -f <path>
# - run_action(argv):     any other command line
#
# Every process is bounded by Settings.command_timeout. A command that cannot
# be started, exits non-zero or times out raises ExecutionError with stderr
# preserved verbatim.
# -----------------------------------------------------------------------------

import shlex
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from rich.console import Console

from crossdeck.config import Settings
from crossdeck.errors import ExecutionError

console = Console()


@dataclass
class CommandResult:
    """Captured outcome of one external process."""

    argv: list[str]
    exit_status: int
    stdout: str = ""
    stderr: str = ""

    @property
    def succeeded(self) -> bool:
        return self.exit_status == 0


class CommandRunner(Protocol):
    """Capability for reaching the reconciler and the provider CLI."""

    def apply_manifest(self, path: Path) -> CommandResult:
        """Submit the manifest at path to the reconciler."""
        ...

    def run_action(self, argv: list[str]) -> CommandResult:
        """Run an imperative command line."""
        ...


class SubprocessRunner:
    """
    CommandRunner backed by subprocess.

    Args:
        settings: Supplies binary names and the per-command timeout.
    """

    def __init__(self, settings: Settings) -> None:
        self._settings = settings

    def apply_manifest(self, path: Path) -> CommandResult:
        return self.run_action([self._settings.kubectl_bin, "apply", "-f", str(path)])

    def run_action(self, argv: list[str]) -> CommandResult:
        timeout = self._settings.command_timeout
        console.print(f"[dim][RUNNER] {_preview(argv)}[/dim]")

        try:
            completed = subprocess.run(
                argv,
                capture_output=True,
                text=True,
                timeout=timeout,
                check=False,
            )
        except subprocess.TimeoutExpired as e:
            console.print(f"[red][RUNNER] Command timeout ({timeout}s): {argv[0]}[/red]")
            raise ExecutionError(
                f"Command timed out after {timeout}s",
                exit_status=-1,
                stderr=_as_text(e.stderr),
            ) from e
        except OSError as e:
            console.print(f"[red][RUNNER] Could not start {argv[0]}: {e}[/red]")
            raise ExecutionError(
                f"Failed to start '{argv[0]}': {e}",
                exit_status=-1,
                stderr=str(e),
            ) from e

        result = CommandResult(
            argv=list(argv),
            exit_status=completed.returncode,
            stdout=completed.stdout or "",
            stderr=completed.stderr or "",
        )
        if not result.succeeded:
            console.print(
                f"[red][RUNNER] {argv[0]} exited with status {result.exit_status}[/red]"
            )
            raise ExecutionError(
                f"Command exited with status {result.exit_status}",
                exit_status=result.exit_status,
                stderr=result.stderr,
            )
        return result


def admin_shell_command(settings: Settings, command: list[str]) -> list[str]:
    """
    Wrap a command so it runs after the admin credentials script is sourced.

    Every word is shell-quoted; resource names never reach the shell raw.
    """
    inner = " ".join(shlex.quote(part) for part in command)
    script = shlex.quote(settings.admin_script)
    return [settings.shell_bin, "-c", f"source {script} && {inner}"]


def openstack_command(settings: Settings, *args: str) -> list[str]:
    """openstack <args> behind the admin script."""
    return admin_shell_command(settings, [settings.openstack_bin, *args])


def _preview(argv: list[str]) -> str:
    return " ".join(argv)[:200]


def _as_text(value: bytes | str | None) -> str:
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return value
