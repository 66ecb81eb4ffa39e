# =============================================================================
# CROSSDECK SETTINGS TESTS
# =============================================================================

from pathlib import Path

import pytest
from pydantic import ValidationError as PydanticValidationError

from crossdeck.config import DEFAULT_MANIFEST_DIR, Settings


class TestSettings:
    """Tests for Settings defaults and environment loading."""

    def test_defaults(self):
        settings = Settings()
        assert settings.manifest_dir == DEFAULT_MANIFEST_DIR
        assert settings.kubectl_bin == "kubectl"
        assert settings.openstack_bin == "openstack"
        assert settings.admin_script == "/home/ubuntu/admin.sh"
        assert settings.provider_config == "provider-openstack-config"
        assert settings.command_timeout == 300
        assert settings.serialize_actions is False
        assert settings.port == 8080

    def test_manifest_path(self, tmp_path):
        settings = Settings(manifest_dir=tmp_path)
        assert settings.manifest_path("teamA", "vm1") == tmp_path / "teamA-vm1.yaml"

    def test_from_env(self, monkeypatch, tmp_path):
        monkeypatch.setenv("CROSSDECK_MANIFEST_DIR", str(tmp_path))
        monkeypatch.setenv("CROSSDECK_KUBECTL", "/usr/local/bin/kubectl")
        monkeypatch.setenv("CROSSDECK_ADMIN_SCRIPT", "/etc/openstack/admin-openrc.sh")
        monkeypatch.setenv("CROSSDECK_COMMAND_TIMEOUT", "45")
        monkeypatch.setenv("CROSSDECK_SERIALIZE_ACTIONS", "TRUE")

        settings = Settings.from_env()

        assert settings.manifest_dir == Path(tmp_path)
        assert settings.kubectl_bin == "/usr/local/bin/kubectl"
        assert settings.admin_script == "/etc/openstack/admin-openrc.sh"
        assert settings.command_timeout == 45
        assert settings.serialize_actions is True

    def test_from_env_empty_values_ignored(self, monkeypatch):
        monkeypatch.setenv("CROSSDECK_KUBECTL", "")
        monkeypatch.delenv("CROSSDECK_SERIALIZE_ACTIONS", raising=False)
        settings = Settings.from_env()
        assert settings.kubectl_bin == "kubectl"
        assert settings.serialize_actions is False

    def test_serialize_actions_needs_true(self, monkeypatch):
        monkeypatch.setenv("CROSSDECK_SERIALIZE_ACTIONS", "yes")
        assert Settings.from_env().serialize_actions is False

    def test_timeout_must_be_positive(self):
        with pytest.raises(PydanticValidationError):
            Settings(command_timeout=0)
