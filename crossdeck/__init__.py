# -----------------------------------------------------------------------------
# CROSSDECK
# -----------------------------------------------------------------------------
# REST façade that turns tenant VM requests into Crossplane manifests and
# OpenStack actions.
# -----------------------------------------------------------------------------

__version__ = "1.0.0"
