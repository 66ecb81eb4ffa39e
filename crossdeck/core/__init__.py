# -----------------------------------------------------------------------------
# CORE LAYER
# -----------------------------------------------------------------------------
# The resource-manifest orchestration logic:
# - builder: Manifest Builder (pure)
# - ManifestStore: Applied-Manifest File reader / in-memory mutation
# - StateInspector: Live status queries
# - ApplyExecutor: Manifest apply and imperative commands
# - ActionOrchestrator: The request state machine
# -----------------------------------------------------------------------------

from . import builder
from .executor import ApplyExecutor, ApplyResult, ExecutionResult
from .inspector import StateInspector
from .orchestrator import ActionOrchestrator, ActionOutcome, ActionState, ResourceLocks
from .store import ManifestStore, set_field, set_nested

__all__ = [
    "builder",
    "ApplyExecutor", "ApplyResult", "ExecutionResult",
    "StateInspector",
    "ActionOrchestrator", "ActionOutcome", "ActionState", "ResourceLocks",
    "ManifestStore", "set_field", "set_nested",
]
