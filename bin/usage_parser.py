"""
Usage parser
================================================================================
Turns the raw text dump of the license status tool into UsageRecord rows.

Two kinds of lines matter once whitespace has been collapsed:

    SMARTSKETCH,3                      summary line  (license, in-use count)
    (alice@host1),SMARTSKETCH          holder line   (user@host, license)

Every summary line for a tracked license becomes one record; holder lines
are correlated to it by their second field.

A comma already present in the dump is indistinguishable from a collapsed
whitespace run afterwards, so it splits fields as well: `LICX,5` reads as
a summary line and `smith,j  LICX` is not a holder line for LICX.
================================================================================
"""

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Iterable, List

logger = logging.getLogger(__name__)

SEPARATOR = ","
MAX_COUNT = 2**31 - 1

_WHITESPACE_RUN = re.compile(r"\s+")
_COUNT_RE = re.compile(r"[0-9]+")


# ============================================================
# Records
# ============================================================

@dataclass(frozen=True)
class UsageRecord:
    """One license's usage at the moment the status tool was read."""
    name: str
    observed_at: datetime
    in_use: int
    holders: str = ""

    def __post_init__(self):
        if not self.name:
            raise ValueError("license name must not be empty")
        if not 0 <= self.in_use <= MAX_COUNT:
            raise ValueError(f"in-use count out of range for {self.name}: {self.in_use}")


@dataclass
class ParseResult:
    records: List[UsageRecord] = field(default_factory=list)
    skipped: int = 0


# ============================================================
# UsageParser — summary/holder correlation
# ============================================================

class UsageParser:
    """Static methods to parse status tool output."""

    @staticmethod
    def normalize(line):
        """Strip leading whitespace and collapse every whitespace run to SEPARATOR."""
        return _WHITESPACE_RUN.sub(SEPARATOR, line.lstrip())

    @staticmethod
    def split_fields(normalized):
        return normalized.split(SEPARATOR)

    @staticmethod
    def is_summary(fields, license_name):
        """True when fields read `<license_name>,<digits>`."""
        return (
            len(fields) >= 2
            and fields[0] == license_name
            and _COUNT_RE.fullmatch(fields[1]) is not None
        )

    @staticmethod
    def holder_token(raw):
        if raw.startswith("("):
            raw = raw[1:]
        if raw.endswith(")"):
            raw = raw[:-1]
        return raw

    @staticmethod
    def find_holders(split_lines, license_token):
        """Return holder tokens of every line whose field 1 names license_token."""
        wanted = license_token.lower()
        holders = []
        for fields in split_lines:
            if len(fields) < 2 or fields[1].lower() != wanted:
                continue
            token = UsageParser.holder_token(fields[0])
            if token:
                holders.append(token)
        return holders

    @staticmethod
    def parse(raw_lines: Iterable[str], target_names: Iterable[str],
              clock: Callable[[], datetime] = datetime.now) -> ParseResult:
        """Parse raw_lines and return records plus the number of skipped candidates.

        Lines are visited in order and, for each line, the targets in
        iteration order. Duplicate and empty target names are ignored.
        """
        targets = [name for name in dict.fromkeys(target_names) if name]
        split_lines = [
            UsageParser.split_fields(UsageParser.normalize(line)) for line in raw_lines
        ]

        result = ParseResult()
        if not targets:
            return result

        for line_no, fields in enumerate(split_lines, start=1):
            for license_name in targets:
                if not UsageParser.is_summary(fields, license_name):
                    continue

                holders = UsageParser.find_holders(split_lines, fields[0])
                try:
                    record = UsageRecord(
                        name=fields[0],
                        observed_at=clock(),
                        in_use=int(fields[1]),
                        holders=" ".join(holders),
                    )
                except ValueError as e:
                    logger.warning("Skipping summary line %d: %s", line_no, e)
                    result.skipped += 1
                    continue

                logger.debug("%s: %d in use (%d holders)",
                             record.name, record.in_use, len(holders))
                result.records.append(record)

        return result

    @staticmethod
    def extract(raw_lines: Iterable[str], target_names: Iterable[str],
                clock: Callable[[], datetime] = datetime.now) -> List[UsageRecord]:
        """Return the usage records found in raw_lines."""
        return UsageParser.parse(raw_lines, target_names, clock).records
