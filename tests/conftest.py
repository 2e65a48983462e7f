"""Pytest configuration and fixtures for testing."""

import stat
from datetime import datetime

import pytest

from usage_config import KEYS


SAMPLE_OUTPUT = """\
License status tool v11.4 - status of license server 27000@lic01
Copyright (c) License Vendor. All rights reserved.

Feature              In use    Total
SMARTSKETCH          2         10
TANK                 0         4
CAESAR_II            1         5
UNTRACKED_FEATURE    7         7

Users:
    (alice@ws01)     SMARTSKETCH     since Mon 1/28 10:04
    (bob@ws07)       SMARTSKETCH     since Mon 1/28 10:15
    (carol@ws03)     CAESAR_II       since Mon 1/28 09:12
    (dave@ws11)      UNTRACKED_FEATURE  since Mon 1/28 08:00
"""


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep the caller's license monitor settings out of every test."""
    for key in KEYS:
        monkeypatch.delenv(key, raising=False)


@pytest.fixture
def sample_lines():
    return SAMPLE_OUTPUT.splitlines()


@pytest.fixture
def fixed_clock():
    when = datetime(2026, 1, 28, 10, 20, 0)
    return lambda: when


@pytest.fixture
def make_tool(tmp_path):
    """Write an executable shell script standing in for the status tool."""
    def _make(body, name="licstat", directory=None):
        directory = directory or tmp_path / "tools"
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / name
        path.write_text("#!/bin/sh\n" + body + "\n")
        path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return path
    return _make


@pytest.fixture
def sample_tool(make_tool):
    return make_tool("cat <<'EOF'\n" + SAMPLE_OUTPUT + "EOF")


@pytest.fixture
def empty_conf(tmp_path):
    path = tmp_path / "empty.conf.csh"
    path.write_text("# nothing configured\n")
    return path
