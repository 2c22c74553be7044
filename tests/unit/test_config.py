"""Unit tests for the storepool.config module."""

from typing import Any

import pytest

from storepool import ConfigurationError, Endpoint, PoolConfig, TransportMode
from storepool.constants import DEFAULT_MAX_RETRIES, DEFAULT_RECYCLE, DEFAULT_SEND_TIMEOUT


class TestPoolConfig:

    def test_copy_method(self) -> None:
        config1 = PoolConfig(servers=["db1:9160"], credentials={"user": "alice"})
        config2 = config1.copy()

        config2.max_retries = 99
        config2.servers.append("db2:9160")
        assert config2.credentials is not None
        config2.credentials["user"] = "bob"

        assert config1 is not config2
        assert config1.max_retries != 99
        assert config1.servers == ["db1:9160"]
        assert config1.credentials == {"user": "alice"}

    def test_default_initialization(self) -> None:
        config = PoolConfig()

        assert config.servers == ["localhost:9160"]
        assert config.max_retries == DEFAULT_MAX_RETRIES
        assert config.send_timeout == DEFAULT_SEND_TIMEOUT
        assert config.recycle == DEFAULT_RECYCLE
        assert config.credentials is None
        assert config.framed_transport is True
        assert config.transport_mode == TransportMode.FRAMED

    def test_endpoints_property(self) -> None:
        config = PoolConfig(servers=["db1:9161", "[::1]:9162", "db3"])

        assert config.endpoints == [
            Endpoint(host="db1", port=9161),
            Endpoint(host="::1", port=9162),
            Endpoint(host="db3", port=9160),
        ]

    def test_from_dict_method(self) -> None:
        config_dict = {"max_retries": 3, "servers": ["db1:9160"], "unknown_field": "should_be_ignored"}

        config = PoolConfig.from_dict(config_dict=config_dict)

        assert config.max_retries == 3
        assert config.servers == ["db1:9160"]
        assert not hasattr(config, "unknown_field")

    def test_initialization_with_none_timeout(self) -> None:
        config = PoolConfig(recv_timeout=None, send_timeout=None)

        assert config.recv_timeout is None
        assert config.send_timeout is None

    def test_post_init_normalizes_single_server_string(self) -> None:
        config = PoolConfig(servers="db1:9160")  # type: ignore[arg-type]

        assert config.servers == ["db1:9160"]

    def test_post_init_normalizes_server_tuple(self) -> None:
        config = PoolConfig(servers=("db1:9160", "db2:9160"))  # type: ignore[arg-type]

        assert config.servers == ["db1:9160", "db2:9160"]

    def test_to_dict_method(self) -> None:
        config = PoolConfig(servers=["db1:9160"], framed_transport=False)

        data = config.to_dict()

        assert data["servers"] == ["db1:9160"]
        assert data["framed_transport"] is False
        assert data["recycle"] == DEFAULT_RECYCLE

    def test_transport_mode_buffered(self) -> None:
        config = PoolConfig(framed_transport=False)

        assert config.transport_mode == TransportMode.BUFFERED

    def test_update_method(self) -> None:
        config1 = PoolConfig()

        config2 = config1.update(max_retries=2, recycle=50)

        assert config1.max_retries == DEFAULT_MAX_RETRIES
        assert config2.max_retries == 2
        assert config2.recycle == 50

    def test_update_revalidates(self) -> None:
        config = PoolConfig()

        with pytest.raises(ConfigurationError, match="recycle must be positive"):
            config.update(recycle=0)

    def test_update_with_unknown_key_raises_error(self) -> None:
        config = PoolConfig()

        with pytest.raises(ConfigurationError, match="Unknown configuration key: 'unknown_key'"):
            config.update(unknown_key="some_value")

    @pytest.mark.parametrize(
        "invalid_attrs, error_match",
        [
            ({"servers": []}, "servers cannot be empty"),
            ({"servers": ["db1:notaport"]}, "Invalid server 'db1:notaport'"),
            ({"servers": ["db1:70000"]}, "Invalid server"),
            ({"max_retries": 0}, "max_retries must be positive"),
            ({"max_retries": 1.5}, "max_retries must be an integer"),
            ({"max_retries": True}, "max_retries must be an integer"),
            ({"recycle": -1}, "recycle must be positive"),
            ({"send_timeout": 0}, "Timeout must be positive: send_timeout"),
            ({"recv_timeout": -1.0}, "Timeout must be positive: recv_timeout"),
            ({"recv_timeout": "1s"}, "Timeout must be a number: recv_timeout"),
            ({"monitoring_interval": None}, "Timeout must be a number: monitoring_interval"),
            ({"framed_transport": "yes"}, "framed_transport must be a boolean"),
            ({"credentials": ["user", "alice"]}, "credentials must be a mapping"),
            ({"credentials": {"user": 1}}, "credentials keys and values must be strings"),
        ],
    )
    def test_validation_failures(self, invalid_attrs: dict[str, Any], error_match: str) -> None:
        with pytest.raises(ConfigurationError, match=error_match):
            PoolConfig(**invalid_attrs)

    def test_validation_failure_carries_config_key(self) -> None:
        with pytest.raises(ConfigurationError) as exc_info:
            PoolConfig(recycle=0)

        assert exc_info.value.config_key == "recycle"
