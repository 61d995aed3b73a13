"""Unit tests for dataclass binding."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta
from typing import List, Optional

import pytest

from layerconf import Configuration
from layerconf.binding import config_field, config_prefix, from_config, from_prefix
from layerconf.core.errors import CoercionError, MissingKeyError, ValidationError


def _port_ok(port: int) -> bool:
    return 0 < port < 65536


def _no_localhost(host: str) -> None:
    if host == "localhost":
        raise ValidationError("host", "localhost is not allowed")


@dataclass
class Pool:
    size: int = 5
    timeout: timedelta = timedelta(seconds=30)


@config_prefix("app.server")
@dataclass
class Server:
    host: str
    port: int = config_field(default=8080, validate=_port_ok)
    tags: List[str] = field(default_factory=list)
    debug_mode: bool = config_field(name="debug", default=False)
    nickname: Optional[str] = None
    pool: Pool = field(default_factory=Pool)


@dataclass
class Strict:
    host: str = config_field(default="example.org", validate=_no_localhost)


@dataclass
class NotDecorated:
    x: int = 0


class TestFromConfig:
    """Test suite for from_config and from_prefix."""

    def make(self, values):
        config = Configuration()
        config.register_kv("kv", values)
        return config

    def test_full(self):
        """Test every field read from configuration."""
        config = self.make({
            "app.server.host": "example.com",
            "app.server.port": "9000",
            "app.server.tags": ["a", "b"],
            "app.server.debug": "yes",
            "app.server.nickname": "edge",
            "app.server.pool.size": "10",
            "app.server.pool.timeout": "2m",
        })
        server = from_config(config, Server)
        assert server == Server(
            host="example.com",
            port=9000,
            tags=["a", "b"],
            debug_mode=True,
            nickname="edge",
            pool=Pool(size=10, timeout=timedelta(minutes=2)),
        )

    def test_defaults(self):
        """Test dataclass defaults cover missing keys."""
        server = from_config(self.make({"app.server.host": "h"}), Server)
        assert server.port == 8080
        assert server.tags == []
        assert server.debug_mode is False
        assert server.nickname is None
        assert server.pool == Pool()

    def test_required_field_missing(self):
        """Test a field without default must be present."""
        with pytest.raises(MissingKeyError) as exc_info:
            from_config(self.make({}), Server)
        assert exc_info.value.key == "app.server.host"

    def test_coercion_error(self):
        """Test bad values surface as CoercionError."""
        config = self.make({"app.server.host": "h", "app.server.port": "http"})
        with pytest.raises(CoercionError):
            from_config(config, Server)

    def test_validator_false(self):
        """Test a validator returning False."""
        config = self.make({"app.server.host": "h", "app.server.port": "70000"})
        with pytest.raises(ValidationError) as exc_info:
            from_config(config, Server)
        assert exc_info.value.field == "app.server.port"

    def test_validator_raises(self):
        """Test a validator raising ValidationError passes it through."""
        config = self.make({"svc.host": "localhost"})
        with pytest.raises(ValidationError) as exc_info:
            from_prefix(config, Strict, "svc")
        assert exc_info.value.reason == "localhost is not allowed"

    def test_placeholders_in_fields(self):
        """Test fields see expanded values."""
        config = self.make({"app.server.host": "${HOSTNAME:box}", "app.server.port": "${p:81}"})
        server = from_config(config, Server)
        assert (server.host, server.port) == ("box", 81)

    def test_from_prefix_explicit(self):
        """Test binding the same class under another prefix."""
        config = self.make({"other.host": "o"})
        assert from_prefix(config, Server, "other").host == "o"

    def test_not_decorated(self):
        """Test from_config needs @config_prefix."""
        with pytest.raises(TypeError):
            from_config(self.make({}), NotDecorated)

    def test_not_a_dataclass(self):
        """Test only dataclasses can be bound."""
        with pytest.raises(TypeError):
            from_prefix(self.make({}), dict, "x")
