"""Unit tests for the storepool.utils module."""

import logging

import pytest
from pytest_mock import MockerFixture

from storepool.utils import format_duration, get_logger, get_timestamp


class TestFormatting:

    @pytest.mark.parametrize(
        "seconds, expected",
        [
            (1e-7, "100ns"),
            (5e-5, "50.0µs"),
            (0.1234, "123.4ms"),
            (5.67, "5.7s"),
            (90.5, "1m30.5s"),
            (3723.1, "1h2m3.1s"),
        ],
    )
    def test_format_duration(self, seconds: float, expected: str) -> None:
        result = format_duration(seconds=seconds)

        assert result == expected


class TestLoggingAndTime:

    def test_get_logger(self) -> None:
        logger = get_logger(name="storepool.pool")

        assert isinstance(logger, logging.Logger)
        assert logger.name == "storepool.pool"

    def test_get_timestamp(self, mocker: MockerFixture) -> None:
        mocker.patch("storepool.utils.time.perf_counter", return_value=42.5)

        assert get_timestamp() == 42.5
