"""
Append usage records to one delimited file per license.

    <usage_dir>/<LICENSE>.txt

    license  observed_at          in_use  holders
    TANK     2026-01-28 10:04:22  2       alice@ws01 bob@ws07
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List

import pandas as pd

from usage_errors import PersistenceError

logger = logging.getLogger(__name__)

COLUMNS = ["license", "observed_at", "in_use", "holders"]
TS_FMT = "%Y-%m-%d %H:%M:%S"


@dataclass
class WriteSummary:
    written: Dict[Path, int] = field(default_factory=dict)   # path -> rows appended
    failed: List[PersistenceError] = field(default_factory=list)

    @property
    def ok(self):
        return not self.failed

    @property
    def rows(self):
        return sum(self.written.values())


def usage_file_path(output_dir, name):
    if not name or Path(name).name != name or name in (".", ".."):
        raise PersistenceError(name, "license name is not usable as a file name")
    return Path(output_dir) / f"{name}.txt"


def records_to_frame(records):
    """Build a DataFrame with one row per record, in record order."""
    rows = [
        {
            "license": r.name,
            "observed_at": r.observed_at.strftime(TS_FMT),
            "in_use": r.in_use,
            "holders": r.holders,
        }
        for r in records
    ]
    return pd.DataFrame(rows, columns=COLUMNS)


def append_records(records, output_dir, delimiter="\t"):
    """Append records to their license files.

    The header row is written only to new or empty files. A failure on one
    file is logged and reported in the summary; other files are still
    written and nothing already written is rolled back.
    """
    summary = WriteSummary()
    if not records:
        return summary

    output_dir = Path(output_dir)
    df = records_to_frame(records)

    try:
        output_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        for name in df["license"].unique():
            err = PersistenceError(output_dir / f"{name}.txt", e)
            logger.error("%s", err)
            summary.failed.append(err)
        return summary

    for name, group in df.groupby("license", sort=False):
        try:
            path = usage_file_path(output_dir, name)
            write_header = not path.exists() or path.stat().st_size == 0
            group.to_csv(path, sep=delimiter, mode="a", header=write_header, index=False)
        except PersistenceError as err:
            logger.error("%s", err)
            summary.failed.append(err)
            continue
        except OSError as e:
            err = PersistenceError(output_dir / f"{name}.txt", e)
            logger.error("%s", err)
            summary.failed.append(err)
            continue

        logger.debug("Appended %d row(s) to %s", len(group), path)
        summary.written[path] = len(group)

    return summary


def read_usage_file(path, delimiter="\t"):
    """Load a usage file written by append_records."""
    return pd.read_csv(
        path, sep=delimiter, dtype={"license": str, "holders": str},
        keep_default_na=False,
    )
