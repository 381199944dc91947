"""Shared test helpers."""

import json
import os
import time
from pathlib import Path

from PySide6.QtCore import QCoreApplication


class FakeClock:
    """Monotonic clock stand-in advanced by hand."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class CountingReader:
    """Wraps a file reader and counts how often it touches the disk."""

    def __init__(self, reader):
        self._reader = reader
        self.count = 0
        self.paths: list[str] = []

    def __call__(self, path):
        self.count += 1
        self.paths.append(str(path))
        return self._reader(path)


def write_json(path: Path, data: dict, mtime: float | None = None) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data))
    if mtime is not None:
        os.utime(path, (mtime, mtime))
    return path


def write_session(
    storage: Path,
    session_id: str,
    updated_at: int,
    partition: str = "proj-1",
    title: str = "",
    directory: str = "/home/dev/app",
    created_at: int | None = None,
    mtime: float | None = None,
) -> Path:
    data = {
        "id": session_id,
        "projectID": partition,
        "directory": directory,
        "title": title,
        "time": {
            "created": created_at if created_at is not None else updated_at,
            "updated": updated_at,
        },
    }
    return write_json(storage / "session" / partition / f"{session_id}.json", data, mtime)


def write_message(
    storage: Path,
    session_id: str,
    message_id: str,
    tokens: dict | None = None,
    role: str = "assistant",
    created: int = 1000,
    completed: int | None = None,
    provider_id: str | None = "anthropic",
    model_id: str | None = "claude-sonnet-4-20250514",
    cost: float | None = None,
    model: dict | None = None,
) -> Path:
    data = {
        "id": message_id,
        "sessionID": session_id,
        "role": role,
        "time": {"created": created},
    }
    if completed is not None:
        data["time"]["completed"] = completed
    if provider_id:
        data["providerID"] = provider_id
    if model_id:
        data["modelID"] = model_id
    if tokens is not None:
        data["tokens"] = tokens
    if cost is not None:
        data["cost"] = cost
    if model is not None:
        data["model"] = model
    return write_json(storage / "message" / session_id / f"{message_id}.json", data)


def bump_mtime(path: Path, seconds: float = 10.0):
    """Move a file's mtime forward so staleness checks see a change."""
    mtime = path.stat().st_mtime + seconds
    os.utime(path, (mtime, mtime))


def pump_events(app, until=None, timeout: float = 3.0) -> bool:
    """Process Qt events until ``until()`` is true or the timeout elapses."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        app.processEvents()
        if until is not None and until():
            return True
        time.sleep(0.02)
    return until is None or bool(until())


def wait_for_worker(store):
    """Wait for any background refresh worker to finish and deliver its signal."""
    worker = store._worker
    if worker is not None:
        worker.wait(5000)
    QCoreApplication.processEvents()
