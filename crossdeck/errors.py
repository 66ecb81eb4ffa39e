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
# ERROR TAXONOMY
# -----------------------------------------------------------------------------
# Every failure the orchestration layer can report. Each error carries the
# HTTP status the API surfaces it with; none of them is retried here.
#
#   ValidationError          400  missing / invalid request field
#   NotFoundError            404  manifest or live resource absent
#   ConflictError            409  resource is mid-transition
#   UpstreamUnavailableError 500  status query failed or was unparsable
#   ExecutionError           500  external command failed to start / exited != 0
#   MalformedManifestError   500  stored manifest lacks the expected structure
# -----------------------------------------------------------------------------


class CrossdeckError(Exception):
    """Base class for all orchestration failures."""

    status_code = 500


class ValidationError(CrossdeckError):
    """Raised when a request is missing required fields or carries bad values."""

    status_code = 400

    def __init__(self, message: str, fields: list[str] | None = None) -> None:
        super().__init__(message)
        self.fields = fields or []

    @classmethod
    def missing(cls, fields: list[str]) -> "ValidationError":
        """Build the error for one or more absent fields."""
        return cls(f"Missing required fields: {', '.join(fields)}", fields=fields)


class NotFoundError(CrossdeckError):
    """Raised when a referenced manifest or resource does not exist."""

    status_code = 404


class ConflictError(CrossdeckError):
    """Raised when a resource is busy and must not be mutated."""

    status_code = 409

    def __init__(self, message: str, task_state: str = "") -> None:
        super().__init__(message)
        self.task_state = task_state


class UpstreamUnavailableError(CrossdeckError):
    """Raised when a status query cannot run or returns unparsable output."""

    status_code = 500


class MalformedManifestError(CrossdeckError):
    """Raised when a stored manifest is missing the nesting an update needs."""

    status_code = 500


class ExecutionError(CrossdeckError):
    """
    Raised when an external command cannot be started or exits non-zero.

    stderr is kept verbatim so operators can diagnose the control plane.
    """

    status_code = 500

    def __init__(
        self,
        message: str,
        exit_status: int,
        stderr: str = "",
        action: str | None = None,
        target: str | None = None,
    ) -> None:
        super().__init__(message)
        self.exit_status = exit_status
        self.stderr = stderr
        self.action = action
        self.target = target

    def annotate(self, action: str, target: str) -> "ExecutionError":
        """Return a copy of this error labelled with the action and its target."""
        return ExecutionError(
            f"Failed to execute action '{action}' on '{target}': {self}",
            exit_status=self.exit_status,
            stderr=self.stderr,
            action=action,
            target=target,
        )

    def detail(self) -> str:
        """Message plus the preserved stderr, as shown to API callers."""
        if self.stderr:
            return f"{self}\n{self.stderr}"
        return str(self)
