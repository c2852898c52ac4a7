"""Tests for the ContextCore facade."""

import logging

import pytest

from docbudget.config import DocbudgetConfig
from docbudget.core import ContextCore
from docbudget.core.context import correlation_scope
from docbudget.core.errors import ProviderCallError
from docbudget.core.fallback import FallbackStrategyType
from docbudget.core.resilience import RetryManager
from docbudget.core.token_management import ProviderCapabilityRegistry

AUDIT_LOGGER = "docbudget.core.observability.audit.audit"


@pytest.fixture
def project(write_file, tmp_path):
    write_file("README.md", "# Portal\n\nThe portal project overview.\n")
    write_file("docs/scope.md", "# Scope\n\nWhat the portal covers.\n")
    write_file("scripts/deploy.sh", "#!/bin/sh\necho deploying the portal\n")
    return tmp_path


class TestProviderWindow:
    """Tests for provider window lookup."""

    def test_configured_provider(self):
        """Configured providers use their overridden window."""
        registry = ProviderCapabilityRegistry(
            ["ollama"], overrides={"ollama": {"context_window": 32_768, "budgeting_mode": "input_only"}}
        )
        core = ContextCore(registry=registry)
        assert core.provider_window("ollama") == 32_768

    def test_unconfigured_provider(self):
        """Unconfigured providers fall back to their known limits."""
        core = ContextCore()
        assert core.provider_window("azure-openai", "gpt-4") == 6_144
        assert core.provider_window("some-new-provider") == 128_000


class TestPrepareContext:
    """Tests for prepare_context."""

    def test_fits_without_fallback(self, project):
        """A small project renders and fits the provider window untouched."""
        prepared = ContextCore().prepare_context(project, "project-charter", "Anthropic")

        assert prepared.success is True
        assert prepared.fallback.strategy == FallbackStrategyType.NONE
        assert prepared.provider == "anthropic"
        assert prepared.window == 200_000
        assert "The portal project overview." in prepared.context
        assert "deploying" not in prepared.context
        assert {f.path for f in prepared.library.files} == {"README.md", "docs/scope.md"}

    def test_to_dict(self, project):
        """The diagnostic view omits the context text."""
        data = ContextCore().prepare_context(project, "project-charter", "anthropic").to_dict()

        assert set(data) == {"provider", "model", "window", "library", "fallback"}
        assert data["fallback"]["strategy"] == "none"
        assert data["library"]["documentation_files"] == 2

    def test_keeps_existing_correlation_id(self, project, caplog):
        """Audit events inside an existing scope keep its correlation id."""
        with caplog.at_level(logging.INFO, logger=AUDIT_LOGGER):
            with correlation_scope("doc-fixed"):
                ContextCore().prepare_context(project, "project-charter", "anthropic")

        events = [record.audit for record in caplog.records if hasattr(record, "audit")]
        assert events
        assert all(event["correlation_id"] == "doc-fixed" for event in events)

    def test_binds_correlation_id(self, project, caplog):
        """Without a scope, a fresh correlation id is bound for the run."""
        with caplog.at_level(logging.INFO, logger=AUDIT_LOGGER):
            ContextCore().prepare_context(project, "project-charter", "anthropic")

        events = [record.audit for record in caplog.records if hasattr(record, "audit")]
        assert events[0]["correlation_id"].startswith("doc-")

    def test_applies_configured_library_settings(self, project, write_file):
        """Configured size bounds and dependency extraction survive the profile."""
        write_file("README.md", "# Portal\n" + "The portal project overview. " * 200)
        write_file("src/app.ts", 'import express from "express";\n')
        config = DocbudgetConfig()
        config.apply_toml_dict({"library": {"max_file_size": 100, "include_dependencies": False}})
        core = ContextCore.from_config(config)

        prepared = core.prepare_context(project, "project-charter", "google-ai")

        paths = {f.path for f in prepared.library.files}
        assert "README.md" not in paths
        assert {"docs/scope.md", "src/app.ts"} <= paths
        assert prepared.library.dependencies == {}
        assert "README.md" not in {f.path for f in core.load_project_library(project).files}

    def test_inconsistent_provider_limits_ignored(self, project):
        """A configured reservation larger than the window falls back to known limits."""
        config = DocbudgetConfig()
        config.apply_toml_dict(
            {
                "providers": {
                    "configured": ["ollama"],
                    "limits": {"ollama": {"context_window": 1000, "output_reserved": 5000}},
                }
            }
        )

        prepared = ContextCore.from_config(config).prepare_context(project, "project-charter", "ollama")

        assert prepared.success is True
        assert prepared.window == 6_144


class TestDelegation:
    """Tests for the delegating operations."""

    def test_library_round_trip(self, project):
        """Loading, stats and rendering share one loader."""
        core = ContextCore()
        library = core.load_project_library(project)

        assert core.load_project_library(project) is library
        assert core.get_library_stats(library).total_files == 3
        assert core.library_to_context(library, "concatenated").count("=== ") == 3

    def test_apply_fallback_strategy(self):
        """Fallback runs through the core's engine."""
        result = ContextCore().apply_fallback_strategy("short", "project-charter", 100)
        assert result.strategy == FallbackStrategyType.NONE

    @pytest.mark.asyncio
    async def test_execute_with_retry(self, fake_sleep, seeded_rng):
        """Provider calls go through the core's retry manager."""
        core = ContextCore(retry_manager=RetryManager(sleep=fake_sleep, rng=seeded_rng))
        errors = [ProviderCallError("unavailable", status_code=503)]

        async def call():
            if errors:
                raise errors.pop()
            return "generated"

        assert await core.execute_with_retry(call, "generate", "google-ai") == "generated"
        assert len(fake_sleep.delays) == 1
