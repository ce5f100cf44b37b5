"""Pytest configuration and shared fixtures for quotawatch tests."""

from __future__ import annotations

import os
import time
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Generator
from unittest.mock import patch

import pytest

from quotawatch.config.secrets import SecretStore
from quotawatch.config.secrets import TTLCache
from quotawatch.config.secrets import set_secret_store
from quotawatch.config.settings import Config
from quotawatch.models import ProviderIdentity
from quotawatch.models import RateWindow
from quotawatch.models import UsageSnapshot
from quotawatch.models import WindowKind


class FakeSecretStore(SecretStore):
    """SecretStore backed by a dict instead of the system keyring."""

    def __init__(self, values: dict[tuple[str, str], str] | None = None) -> None:
        super().__init__(TTLCache(60.0))
        self.values: dict[tuple[str, str], str] = dict(values or {})
        self.writes: list[tuple[str, str, str | None]] = []

    def _read(self, provider_id: str, secret_type: str) -> str | None:
        return self.values.get((provider_id, secret_type))

    def _write(self, provider_id: str, secret_type: str, value: str | None) -> bool:
        self.writes.append((provider_id, secret_type, value))
        if value is None:
            self.values.pop((provider_id, secret_type), None)
        else:
            self.values[(provider_id, secret_type)] = value
        return True


@pytest.fixture
def utc_now() -> datetime:
    """Fixed UTC datetime for consistent testing."""
    return datetime(2025, 1, 15, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def sample_window(utc_now: datetime) -> RateWindow:
    """Session window, 65% used."""
    return RateWindow.create(
        65.0,
        WindowKind.SESSION,
        window_minutes=300,
        resets_at=utc_now + timedelta(hours=3),
        label="Session",
    )


@pytest.fixture
def sample_weekly_window(utc_now: datetime) -> RateWindow:
    """Weekly window, 30% used."""
    return RateWindow.create(
        30.0,
        WindowKind.WEEKLY,
        window_minutes=10080,
        resets_at=utc_now + timedelta(days=3),
        label="Weekly",
    )


@pytest.fixture
def sample_snapshot(
    utc_now: datetime,
    sample_window: RateWindow,
    sample_weekly_window: RateWindow,
) -> UsageSnapshot:
    """Sample complete usage snapshot."""
    return UsageSnapshot(
        provider="claude",
        primary=sample_window,
        secondary=sample_weekly_window,
        identity=ProviderIdentity(email="user@example.com", login_method="Pro"),
        updated_at=utc_now,
    )


def make_snapshot(
    provider: str = "claude",
    used_percent: float = 40.0,
    kind: WindowKind = WindowKind.SESSION,
) -> UsageSnapshot:
    return UsageSnapshot(
        provider=provider,
        primary=RateWindow.create(used_percent, kind),
        updated_at=datetime(2025, 1, 15, 12, 0, 0, tzinfo=timezone.utc),
    )


@pytest.fixture
def snapshot_factory():
    """Build minimal snapshots: ``snapshot_factory(provider, used_percent)``."""
    return make_snapshot


@pytest.fixture
def fake_secrets() -> Generator[FakeSecretStore, None, None]:
    """In-memory secret store installed as the process store."""
    store = FakeSecretStore()
    set_secret_store(store)
    yield store
    set_secret_store(None)


@pytest.fixture
def default_config() -> Config:
    return Config()


@pytest.fixture
def temp_config_dir(tmp_path: Path, monkeypatch) -> Generator[Path, None, None]:
    """Temporary config and cache directories for testing."""
    config_dir = tmp_path / "config"
    cache_dir = tmp_path / "cache"
    config_dir.mkdir()
    cache_dir.mkdir()
    monkeypatch.setenv("QUOTAWATCH_CONFIG_DIR", str(config_dir))
    monkeypatch.setenv("QUOTAWATCH_CACHE_DIR", str(cache_dir))
    monkeypatch.delenv("QUOTAWATCH_ENABLED_PROVIDERS", raising=False)
    monkeypatch.delenv("QUOTAWATCH_POLL_INTERVAL", raising=False)

    with patch("quotawatch.config.settings._config", None):
        yield config_dir


def _process_running(pid: int) -> bool:
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        return True
    # An unreaped zombie still answers signal 0 but is no longer running.
    stat = Path(f"/proc/{pid}/stat")
    try:
        return stat.read_text().rsplit(")", 1)[1].split()[0] != "Z"
    except (OSError, IndexError):
        return True


@pytest.fixture
def process_running():
    """Check whether a pid still belongs to a live process."""
    return _process_running


@pytest.fixture
def read_pid():
    """Poll a file a shell script writes ``$!`` into and return the pid."""

    def read(path: Path, timeout: float = 5.0) -> int:
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            if path.exists():
                text = path.read_text().strip()
                if text:
                    return int(text)
            time.sleep(0.02)
        raise AssertionError(f"{path} was never written")

    return read
