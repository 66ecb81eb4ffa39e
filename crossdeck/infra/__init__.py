# -----------------------------------------------------------------------------
# INFRASTRUCTURE LAYER
# -----------------------------------------------------------------------------
# Contains low-level process wrappers:
# - SubprocessRunner: kubectl / openstack execution with bounded timeouts
# -----------------------------------------------------------------------------

from .runner import CommandResult, CommandRunner, SubprocessRunner

__all__ = ["CommandResult", "CommandRunner", "SubprocessRunner"]
