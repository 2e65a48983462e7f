"""
Locate and run the license status tool.

The tool is run once per collection with its no-pause flag; only stdout is
kept; stderr is reported when the output turns out to be empty.
"""

import glob
import logging
import os
import shutil
import subprocess
from datetime import datetime
from pathlib import Path

from usage_errors import EmptyOutputError, ToolInvocationError, ToolNotFoundError

logger = logging.getLogger(__name__)

SNAPSHOT_FMT = "status_%Y-%m-%d_%H-%M-%S.txt"


# ============================================================
# Discovery
# ============================================================

def _is_executable(path):
    return path.is_file() and os.access(path, os.X_OK)


def _executable_names(tool_name):
    if os.name == "nt" and not tool_name.lower().endswith(".exe"):
        return [tool_name + ".exe", tool_name]
    return [tool_name]


def find_status_tool(config):
    """Return the path of the status tool.

    An explicitly configured path wins; otherwise PATH is searched, then the
    glob patterns of config.tool_dirs in order.
    """
    if config.tool is not None:
        if _is_executable(config.tool):
            return config.tool
        raise ToolNotFoundError(f"status tool not found or not executable: {config.tool}")

    names = _executable_names(config.tool_name)
    for name in names:
        found = shutil.which(name)
        if found:
            logger.debug("Found %s on PATH", found)
            return Path(found)

    for pattern in config.tool_dirs:
        for directory in sorted(glob.glob(os.path.expanduser(pattern))):
            for name in names:
                candidate = Path(directory) / name
                if _is_executable(candidate):
                    logger.debug("Found %s under %s", candidate, pattern)
                    return candidate

    raise ToolNotFoundError(
        f"{config.tool_name} not found on PATH or in {os.pathsep.join(config.tool_dirs)}"
    )


# ============================================================
# Invocation
# ============================================================

def run_status_tool(tool, args=None, timeout=120):
    """Run the status tool and return its stdout as a list of lines."""
    cmd = [str(tool)] + list(args or [])
    logger.info("Running %s", " ".join(cmd))

    try:
        result = subprocess.run(
            cmd, capture_output=True, text=True, errors="replace", timeout=timeout
        )
    except subprocess.TimeoutExpired:
        raise ToolInvocationError(f"{tool} timed out ({timeout}s)") from None
    except OSError as e:
        raise ToolInvocationError(f"cannot run {tool}: {e}") from e

    stdout = result.stdout or ""
    stderr = (result.stderr or "").strip()

    if result.returncode != 0:
        if not stdout.strip():
            raise ToolInvocationError(
                f"{tool} exited with status {result.returncode}: {stderr[:300] or '(no stderr)'}"
            )
        logger.warning("%s exited with status %d, using its output anyway",
                       tool, result.returncode)

    if not stdout.strip():
        raise EmptyOutputError(f"{tool} produced no output", stderr=stderr[:300])

    return stdout.splitlines()


# ============================================================
# Raw snapshots
# ============================================================

def save_snapshot(lines, raw_dir, when=None):
    """Write the raw tool output under raw_dir and return the file path."""
    when = when or datetime.now()
    raw_dir = Path(raw_dir)
    raw_dir.mkdir(parents=True, exist_ok=True)
    out_path = raw_dir / when.strftime(SNAPSHOT_FMT)
    with open(out_path, "w", encoding="utf-8") as f:
        f.write("\n".join(lines))
        f.write("\n")
    return out_path


def read_snapshot(path):
    """Read a saved tool dump back as a list of lines."""
    try:
        with open(path, encoding="utf-8", errors="replace") as f:
            lines = f.read().splitlines()
    except OSError as e:
        raise ToolInvocationError(f"cannot read {path}: {e}") from e

    if not any(line.strip() for line in lines):
        raise EmptyOutputError(f"{path} is empty")
    return lines
