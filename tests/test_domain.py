"""Tests for default registry domain selection."""

import pytest

from tfrget.registry.domain import (
    get_default_registry_domain,
    resolve_registry_domain,
)
from tfrget.registry.interfaces import RegistryOptions

pytestmark = [pytest.mark.unit]


class TestGetDefaultRegistryDomain:
    def test_defaults_to_terraform_registry(self):
        assert get_default_registry_domain() == "registry.terraform.io"

    def test_terraform_dialect(self):
        options = RegistryOptions(terraform_implementation="terraform")
        assert get_default_registry_domain(options) == "registry.terraform.io"

    def test_opentofu_dialect(self):
        """With no override the OpenTofu dialect resolves to the OpenTofu registry."""
        options = RegistryOptions(terraform_implementation="opentofu")
        assert get_default_registry_domain(options) == "registry.opentofu.org"

    def test_environment_override_beats_dialect(self, monkeypatch):
        monkeypatch.setenv("TG_TF_DEFAULT_REGISTRY_HOST", "registry.example.com")
        options = RegistryOptions(terraform_implementation="opentofu")
        assert get_default_registry_domain(options) == "registry.example.com"

    def test_environment_override_without_options(self, monkeypatch):
        monkeypatch.setenv("TG_TF_DEFAULT_REGISTRY_HOST", "registry.example.com")
        assert get_default_registry_domain(None) == "registry.example.com"

    def test_empty_override_is_ignored(self, monkeypatch):
        monkeypatch.setenv("TG_TF_DEFAULT_REGISTRY_HOST", "")
        assert get_default_registry_domain() == "registry.terraform.io"


class TestResolveRegistryDomain:
    def test_explicit_host_wins(self, monkeypatch):
        monkeypatch.setenv("TG_TF_DEFAULT_REGISTRY_HOST", "registry.example.com")
        options = RegistryOptions(terraform_implementation="opentofu")
        assert resolve_registry_domain("private.example.org", options) == "private.example.org"

    def test_empty_host_falls_back(self):
        assert resolve_registry_domain("") == "registry.terraform.io"
