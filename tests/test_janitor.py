"""Tests for the storage janitor."""

import asyncio
import os
import time
from pathlib import Path
from unittest.mock import patch

import pytest

from unigif.media.janitor import DEFAULT_MAX_AGE_M, DEFAULT_SWEEP_INTERVAL_M, StorageJanitor
from unigif.media.pool import TempPool


def _age(path: Path, seconds: float) -> None:
    then = time.time() - seconds
    os.utime(path, (then, then))


def test_defaults():
    assert DEFAULT_SWEEP_INTERVAL_M == 10
    assert DEFAULT_MAX_AGE_M == 15


def test_sweep_removes_only_old_files(tmp_path):
    pool = TempPool(tmp_path)
    janitor = StorageJanitor(pool)

    stale = tmp_path / "out_1.mp4"
    fresh = tmp_path / "out_2.mp4"
    stale.write_bytes(b"x")
    fresh.write_bytes(b"x")
    _age(stale, 16 * 60)
    _age(fresh, 14 * 60)

    assert janitor.sweep() == 1
    assert not stale.exists()
    assert fresh.exists()


def test_sweep_ignores_directories(tmp_path):
    pool = TempPool(tmp_path)
    janitor = StorageJanitor(pool)
    sub = tmp_path / "keep"
    sub.mkdir()
    _age(sub, 3600)

    assert janitor.sweep() == 0
    assert sub.is_dir()


def test_sweep_ignores_delete_errors(tmp_path):
    pool = TempPool(tmp_path)
    janitor = StorageJanitor(pool)
    a = tmp_path / "a.mp4"
    b = tmp_path / "b.mp4"
    for p in (a, b):
        p.write_bytes(b"x")
        _age(p, 3600)

    real_unlink = Path.unlink

    def flaky_unlink(self, *args, **kwargs):
        if self.name == "a.mp4":
            raise PermissionError("locked")
        return real_unlink(self, *args, **kwargs)

    with patch.object(Path, "unlink", flaky_unlink):
        removed = janitor.sweep()

    assert removed == 1
    assert a.exists()
    assert not b.exists()


def test_sweep_on_missing_directory(tmp_path):
    pool = TempPool(tmp_path / "temp")
    pool.directory.rmdir()
    janitor = StorageJanitor(pool)
    assert janitor.sweep() == 0


@pytest.mark.asyncio
async def test_loop_sweeps_periodically(tmp_path):
    pool = TempPool(tmp_path)
    janitor = StorageJanitor(pool, interval_m=0.02 / 60, max_age_m=1)
    stale = tmp_path / "stale.gif"
    stale.write_bytes(b"x")
    _age(stale, 3600)

    await janitor.start()
    try:
        for _ in range(50):
            if not stale.exists():
                break
            await asyncio.sleep(0.02)
    finally:
        janitor.stop()

    assert not stale.exists()
    assert not janitor.running


@pytest.mark.asyncio
async def test_loop_survives_sweep_errors(tmp_path):
    pool = TempPool(tmp_path)
    janitor = StorageJanitor(pool, interval_m=0.01 / 60)
    calls = 0

    def boom(now=None):
        nonlocal calls
        calls += 1
        raise RuntimeError("disk on fire")

    janitor.sweep = boom
    await janitor.start()
    await asyncio.sleep(0.1)
    janitor.stop()

    assert calls >= 2
