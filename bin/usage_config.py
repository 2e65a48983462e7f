"""
Configuration for the usage collector.

Values come from, lowest precedence first: built-in defaults, the csh config
file (the same `setenv NAME "value"` file the cron wrapper sources), the
process environment and finally command-line overrides.
"""

import os
import re
import shlex
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from usage_errors import ConfigError


# ============================================================
# Defaults
# ============================================================

BASE_DIR = Path(os.environ.get(
    "LICENSE_MONITOR_HOME",
    Path(__file__).parent.parent
))
CONF_PATH = BASE_DIR / "conf" / "license_usage.conf.csh"

DEFAULT_LICENSES = [
    "CADWORX_PLANT",
    "CADWORX_PID",
    "CADWORX_EQUIP",
    "CAESAR_II",
    "PV_ELITE",
    "TANK",
    "ISOGEN",
    "SMARTPLANT_3D",
    "SMARTPLANT_PID",
    "SMARTPLANT_ELEC",
    "SMARTPLANT_INST",
    "SMARTPLANT_REVIEW",
    "SMARTSKETCH",
    "GT_STRUDL",
]

DEFAULTS = {
    "STATUS_TOOL": "",
    "STATUS_TOOL_NAME": "licstat",
    "STATUS_TOOL_DIRS": "",            # derived from the base dir when empty
    "STATUS_TOOL_ARGS": "-nopause",
    "STATUS_TOOL_TIMEOUT": "120",
    "USAGE_LICENSES": " ".join(DEFAULT_LICENSES),
    "USAGE_DELIMITER": "tab",
    "USAGE_DIR": "",
    "RAW_DIR": "",
    "USAGE_LOG_FILE": "",
}
KEYS = ["LICENSE_MONITOR_HOME"] + list(DEFAULTS)

DELIMITER_ALIASES = {
    "tab": "\t",
    "\\t": "\t",
    "comma": ",",
    "space": " ",
    "pipe": "|",
    "semicolon": ";",
}


# ============================================================
# ConfigLoader — parse csh config
# ============================================================

class ConfigLoader:
    """Parse csh-style config file to extract setenv variables."""

    @staticmethod
    def load(conf_path=None, required=False, environ=None):
        """Return dict of resolved config variables.

        A missing file yields an empty dict unless required is set. $VAR
        references not set earlier in the file are looked up in environ
        (os.environ by default).
        """
        if environ is None:
            environ = os.environ
        if conf_path is None:
            conf_path = CONF_PATH
        conf_path = Path(conf_path)
        config = {}
        if not conf_path.exists():
            if required:
                raise ConfigError(f"config file not found: {conf_path}")
            return config

        def _resolve(match):
            name = match.group(1)
            return config.get(name, environ.get(name, match.group(0)))

        try:
            with open(conf_path, encoding="utf-8", errors="replace") as f:
                for line in f:
                    line = line.strip()
                    if not line or line.startswith("#"):
                        continue
                    m = re.match(r'setenv\s+(\w+)\s+"([^"]*)"', line)
                    if not m:
                        m = re.match(r"setenv\s+(\w+)\s+(\S+)", line)
                    if not m:
                        continue
                    key, val = m.group(1), m.group(2)
                    # Resolve ${VAR} references
                    val = re.sub(r'\$\{(\w+)\}', _resolve, val)
                    val = re.sub(r'\$(\w+)', _resolve, val)
                    config[key] = val
        except OSError as e:
            raise ConfigError(f"cannot read config file {conf_path}: {e}") from e
        return config


# ============================================================
# Value parsing
# ============================================================

def parse_delimiter(value):
    """Map a configured delimiter (alias or literal character) to one character."""
    if value is None or value == "":
        raise ConfigError("delimiter must not be empty")
    delimiter = DELIMITER_ALIASES.get(value.lower(), value)
    if len(delimiter) != 1:
        raise ConfigError(f"delimiter must be a single character, got {value!r}")
    return delimiter


def parse_licenses(value):
    """Split a whitespace or comma separated license list."""
    return [name for name in re.split(r"[\s,]+", value.strip()) if name]


def parse_timeout(value):
    try:
        timeout = int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"timeout must be an integer number of seconds, got {value!r}") from None
    if timeout <= 0:
        raise ConfigError(f"timeout must be positive, got {timeout}")
    return timeout


# ============================================================
# UsageConfig
# ============================================================

@dataclass
class UsageConfig:
    base_dir: Path
    tool: Optional[Path]
    tool_name: str
    tool_dirs: List[str]
    tool_args: List[str]
    timeout: int
    licenses: List[str]
    delimiter: str
    usage_dir: Path
    raw_dir: Path
    log_file: Optional[Path] = None

    @classmethod
    def from_values(cls, values):
        base_dir = Path(values.get("LICENSE_MONITOR_HOME") or BASE_DIR)

        tool_dirs = values.get("STATUS_TOOL_DIRS") or os.pathsep.join([
            str(base_dir / "bin"), "/opt/*/bin", "/usr/local/bin",
        ])
        licenses = parse_licenses(values.get("USAGE_LICENSES", ""))
        if not licenses:
            raise ConfigError("no license names configured")

        try:
            tool_args = shlex.split(values.get("STATUS_TOOL_ARGS", ""))
        except ValueError as e:
            raise ConfigError(f"cannot parse STATUS_TOOL_ARGS: {e}") from e

        tool = values.get("STATUS_TOOL")
        log_file = values.get("USAGE_LOG_FILE")
        return cls(
            base_dir=base_dir,
            tool=Path(tool).expanduser() if tool else None,
            tool_name=values.get("STATUS_TOOL_NAME") or DEFAULTS["STATUS_TOOL_NAME"],
            tool_dirs=[d for d in tool_dirs.split(os.pathsep) if d],
            tool_args=tool_args,
            timeout=parse_timeout(values.get("STATUS_TOOL_TIMEOUT")),
            licenses=licenses,
            delimiter=parse_delimiter(values.get("USAGE_DELIMITER")),
            usage_dir=Path(values.get("USAGE_DIR") or base_dir / "usage").expanduser(),
            raw_dir=Path(values.get("RAW_DIR") or base_dir / "raw" / "status").expanduser(),
            log_file=Path(log_file).expanduser() if log_file else None,
        )


def load_config(conf_path=None, environ=None, overrides=None):
    """Build a UsageConfig from defaults, config file, environment and overrides.

    overrides maps config keys to values; None values are ignored so that
    unset command-line options fall through.
    """
    if environ is None:
        environ = os.environ

    values = dict(DEFAULTS)
    values.update(ConfigLoader.load(conf_path, required=conf_path is not None, environ=environ))
    values.update({key: environ[key] for key in KEYS if key in environ})
    if overrides:
        values.update({key: val for key, val in overrides.items() if val is not None})
    return UsageConfig.from_values(values)
