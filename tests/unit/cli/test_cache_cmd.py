"""Tests for the cache CLI commands."""

from __future__ import annotations

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError
from typer.testing import CliRunner

from cacheaside.cli import app
from cacheaside.cli import cache_cmd
from tests.fakes import FakeRedis

runner = CliRunner()


@pytest.fixture(autouse=True)
def patch_redis(monkeypatch: pytest.MonkeyPatch, fake_redis: FakeRedis) -> FakeRedis:
    """Run CLI commands against the fake Redis."""

    async def get_fake_redis() -> FakeRedis:
        return fake_redis

    async def close_fake_redis() -> None:
        pass

    monkeypatch.setattr(cache_cmd, "get_redis", get_fake_redis)
    monkeypatch.setattr(cache_cmd, "close_redis", close_fake_redis)
    return fake_redis


class TestGetPut:
    def test_put_then_get(self, fake_redis: FakeRedis) -> None:
        put = runner.invoke(app, ["cache", "put", "product", "42", "--value", "hello", "--ttl", "60"])

        assert put.exit_code == 0
        assert "product:42" in put.stdout
        assert fake_redis.data["product:42"] == "hello"

        got = runner.invoke(app, ["cache", "get", "product", "42"])
        assert got.exit_code == 0
        assert "hello" in got.stdout

    def test_get_missing_exits_1(self) -> None:
        result = runner.invoke(app, ["cache", "get", "product", "99"])

        assert result.exit_code == 1

    def test_store_down_exits_1(self, fake_redis: FakeRedis) -> None:
        fake_redis.fail_with = RedisConnectionError("Connection refused")

        result = runner.invoke(app, ["cache", "get", "product", "42"])

        assert result.exit_code == 1
        assert "Error" in result.stdout


class TestScanDelete:
    def test_scan_with_field_filter(self, fake_redis: FakeRedis) -> None:
        fake_redis.data["session:1"] = {"user": "alice"}
        fake_redis.data["session:2"] = {"user": "bob"}

        result = runner.invoke(app, ["cache", "scan", "session:*", "--field", "user=alice"])

        assert result.exit_code == 0
        assert "alice" in result.stdout
        assert "bob" not in result.stdout
        assert "1 match(es)" in result.stdout

    def test_scan_rejects_bad_field(self) -> None:
        result = runner.invoke(app, ["cache", "scan", "session:*", "--field", "user"])

        assert result.exit_code != 0

    def test_delete_pattern(self, fake_redis: FakeRedis) -> None:
        fake_redis.data["product:1"] = "a"
        fake_redis.data["product:2"] = "b"
        fake_redis.data["order:1"] = "c"

        result = runner.invoke(app, ["cache", "delete-pattern", "product:*"])

        assert result.exit_code == 0
        assert "Deleted 2 key(s)" in result.stdout
        assert list(fake_redis.data) == ["order:1"]
