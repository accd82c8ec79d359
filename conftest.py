# Copyright 2024 BeardedGiant
# https://github.com/bearded-giant/gitlab-tools
# Licensed under Apache License 2.0

"""Shared test fixtures for gitlab-mr tests."""

import io
import json
import logging
import os
import sys
from pathlib import Path

import pytest

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from gitlab_mr.logging_utils import LOGGER_NAME
from gitlab_mr.terminal import TerminalSurface

MOCK_GITLAB_URL = "https://gitlab.example.com"
MOCK_API_URL = f"{MOCK_GITLAB_URL}/api/v4"


class MemorySurface(TerminalSurface):
    """Terminal surface that keeps the visible frame in a list."""

    def __init__(self):
        self.screen = []
        self.flushes = 0
        self._cursor_up = 0

    def write_line(self, text: str):
        self.screen.append(text)

    def move_up(self, count: int):
        self._cursor_up = count

    def clear_down(self):
        if self._cursor_up:
            del self.screen[-self._cursor_up:]
        self._cursor_up = 0

    def flush(self):
        self.flushes += 1

    @property
    def text(self) -> str:
        return "\n".join(self.screen)


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    """Keep every test away from the real HOME, config files and GitLab variables."""
    for key in list(os.environ):
        if key.startswith("GITLAB_") or key in ("CI", "XDG_CONFIG_HOME"):
            monkeypatch.delenv(key, raising=False)

    home = tmp_path / "home"
    xdg = tmp_path / "xdg"
    work = tmp_path / "work"
    for path in (home, xdg, work):
        path.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(xdg))
    monkeypatch.chdir(work)
    monkeypatch.setattr(sys, "stdin", io.StringIO(""))
    yield tmp_path

    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def config_dir(isolated_env) -> Path:
    return isolated_env / "xdg" / "gitlab-cli"


@pytest.fixture
def write_global_config(config_dir):
    """Write a document to the global config.json."""

    def write(document):
        config_dir.mkdir(parents=True, exist_ok=True)
        path = config_dir / "config.json"
        path.write_text(json.dumps(document), encoding="utf-8")
        return path

    return write


@pytest.fixture
def surface():
    return MemorySurface()
