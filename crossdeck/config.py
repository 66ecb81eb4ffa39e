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
# SETTINGS
# -----------------------------------------------------------------------------
# Responsibility: One explicit configuration object threaded into the
# orchestrator at construction. Handlers never read paths or binaries from
# globals or the working directory.
#
# Values come from the environment (a .env file at the project root is
# loaded by the API entry point before Settings.from_env() runs).
# -----------------------------------------------------------------------------

import os
import tempfile
from pathlib import Path

from pydantic import BaseModel, Field

PROJECT_ROOT = Path(__file__).parent.parent

DEFAULT_MANIFEST_DIR = PROJECT_ROOT / "manifests"
DEFAULT_ADMIN_SCRIPT = "/home/ubuntu/admin.sh"
DEFAULT_PROVIDER_CONFIG = "provider-openstack-config"
DEFAULT_COMMAND_TIMEOUT = 300
DEFAULT_PORT = 8080


class Settings(BaseModel):
    """
    Runtime configuration for the orchestration layer.

    Fields:
    - manifest_dir: Where Applied-Manifest Files live (<tenant>-<name>.yaml)
    - scratch_dir: Where transient creation manifests are written and removed
    - kubectl_bin / openstack_bin / shell_bin: External binaries
    - admin_script: Credentials script sourced before every openstack call
    - provider_config: providerConfigRef name stamped into every manifest
    - command_timeout: Upper bound (seconds) for every external process
    - serialize_actions: Hold a per-resource lock around inspect + act
    """

    manifest_dir: Path = DEFAULT_MANIFEST_DIR
    scratch_dir: Path = Field(default_factory=lambda: Path(tempfile.gettempdir()))
    kubectl_bin: str = "kubectl"
    openstack_bin: str = "openstack"
    shell_bin: str = "bash"
    admin_script: str = DEFAULT_ADMIN_SCRIPT
    provider_config: str = DEFAULT_PROVIDER_CONFIG
    command_timeout: int = Field(default=DEFAULT_COMMAND_TIMEOUT, gt=0)
    serialize_actions: bool = False
    port: int = DEFAULT_PORT

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from CROSSDECK_* environment variables."""
        values: dict = {}
        env_map = {
            "CROSSDECK_MANIFEST_DIR": "manifest_dir",
            "CROSSDECK_SCRATCH_DIR": "scratch_dir",
            "CROSSDECK_KUBECTL": "kubectl_bin",
            "CROSSDECK_OPENSTACK": "openstack_bin",
            "CROSSDECK_SHELL": "shell_bin",
            "CROSSDECK_ADMIN_SCRIPT": "admin_script",
            "CROSSDECK_PROVIDER_CONFIG": "provider_config",
            "CROSSDECK_COMMAND_TIMEOUT": "command_timeout",
            "CROSSDECK_PORT": "port",
        }
        for env_name, field_name in env_map.items():
            raw = os.getenv(env_name)
            if raw:
                values[field_name] = raw

        values["serialize_actions"] = (
            os.getenv("CROSSDECK_SERIALIZE_ACTIONS", "").lower() == "true"
        )
        return cls(**values)

    def manifest_path(self, tenant: str, name: str) -> Path:
        """Deterministic Applied-Manifest File location for (tenant, name)."""
        return self.manifest_dir / f"{tenant}-{name}.yaml"
