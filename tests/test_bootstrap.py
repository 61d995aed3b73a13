"""Tests for the predefined source stack."""

from __future__ import annotations

from pathlib import Path

import pytest

from layerconf.bootstrap import PredefinedBuilder
from layerconf.core.errors import SourceLoadError


class TestPredefinedBuilder:
    """Test suite for PredefinedBuilder."""

    def test_default_stack(self, tmp_path: Path):
        """Test the default source order."""
        config = PredefinedBuilder(environ={}).set_dir(tmp_path).init()
        names = config.source_names()
        assert names[:3] == ["overrides", "random", "env:CFG"]
        assert names[3:] == [
            f"{fmt}:{tmp_path / ('app.' + fmt)}" for fmt in ("toml", "yaml", "json", "ini", "env")
        ]

    def test_precedence(self, tmp_path: Path):
        """Test overrides > env > profile file > base file."""
        (tmp_path / "svc.toml").write_text('a = "base"\nb = "base"\nc = "base"\nd = "base"\n')
        (tmp_path / "svc-prod.yaml").write_text("b: profile\nc: profile\nd: profile\n")
        environ = {"CFG_C": "env", "CFG_D": "env"}
        config = (
            PredefinedBuilder(environ=environ)
            .set_name("svc")
            .set_profile("prod")
            .set_dir(tmp_path)
            .set("d", "override")
            .init()
        )
        assert [config.get(k) for k in "abcd"] == ["base", "profile", "env", "override"]

    def test_app_settings_from_env(self, tmp_path: Path):
        """Test app.name and app.profile can come from the environment."""
        (tmp_path / "billing-test.json").write_text('{"db": {"name": "billing_test"}}')
        environ = {
            "CFG_APP_NAME": "billing",
            "CFG_APP_PROFILE": "test",
            "CFG_APP_DIR": str(tmp_path),
        }
        config = PredefinedBuilder(environ=environ).init()
        assert config.get("db.name") == "billing_test"

    def test_env_prefix_variable(self, tmp_path: Path):
        """Test CFG_ENV_PREFIX switches the prefix."""
        environ = {"CFG_ENV_PREFIX": "MYAPP", "MYAPP_X": "1", "CFG_X": "2"}
        config = PredefinedBuilder(environ=environ).set_dir(tmp_path).init()
        assert "env:MYAPP" in config.source_names()
        assert config.get("x") == "1"

    def test_explicit_prefix_wins(self, tmp_path: Path):
        """Test set_prefix_env beats every other setting."""
        environ = {"CFG_ENV_PREFIX": "MYAPP", "OTHER_X": "3"}
        config = (
            PredefinedBuilder(environ=environ)
            .set_prefix_env("OTHER")
            .set("env.prefix", "IGNORED")
            .set_dir(tmp_path)
            .init()
        )
        assert config.get("x") == "3"

    def test_disable_sources(self, tmp_path: Path):
        """Test random and formats can be switched off."""
        config = (
            PredefinedBuilder(environ={})
            .set_dir(tmp_path)
            .set("app.sources.random.enabled", "false")
            .set("app.sources.ini.enabled", "no")
            .set("app.sources.env.enabled", False)
            .init()
        )
        names = config.source_names()
        assert "random" not in names
        assert not any(n.startswith(("ini:", "env:" + str(tmp_path))) for n in names)
        assert any(n.startswith("toml:") for n in names)

    def test_random_placeholder(self, tmp_path: Path):
        """Test random values are reachable from files."""
        (tmp_path / "app.yaml").write_text("instance: node-${random.u16}\n")
        config = PredefinedBuilder(environ={}).set_dir(tmp_path).init()
        assert config.get("instance").startswith("node-")

    def test_init_hook(self, tmp_path: Path):
        """Test the hook runs before files are registered."""
        seen = []

        def hook(config):
            seen.append(list(config.source_names()))
            config.register_kv("hook", {"from.hook": "yes"})

        config = PredefinedBuilder(environ={}).set_dir(tmp_path).set_init(hook).init()
        assert seen == [["overrides", "random", "env:CFG"]]
        assert config.source_names()[3] == "hook"
        assert config.get("from.hook") == "yes"

    def test_package_metadata(self, tmp_path: Path):
        """Test pkg.* keys from an installed distribution."""
        config = PredefinedBuilder(environ={}).set_dir(tmp_path).set_package("pytest").init()
        assert config.source_names()[0] == "package"
        assert config.get("pkg.name").lower() == "pytest"

    def test_broken_file_fails(self, tmp_path: Path):
        """Test a present but unparsable file is an error."""
        (tmp_path / "app.json").write_text("{broken")
        with pytest.raises(SourceLoadError):
            PredefinedBuilder(environ={}).set_dir(tmp_path).init()
