"""Tests for the status output parser."""

from datetime import datetime

import pytest

from usage_parser import MAX_COUNT, SEPARATOR, UsageParser, UsageRecord


def test_normalize_collapses_whitespace():
    assert UsageParser.normalize("   (alice@host1)    LICX\t since  Mon") == \
        SEPARATOR.join(["(alice@host1)", "LICX", "since", "Mon"])


def test_scenario_single_license_two_holders(fixed_clock):
    lines = ["(alice@host1)    LICX", "LICX    3", "(bob@host2)    LICX"]

    records = UsageParser.extract(lines, ["LICX"], clock=fixed_clock)

    assert len(records) == 1
    record = records[0]
    assert record.name == "LICX"
    assert record.in_use == 3
    assert record.holders == "alice@host1 bob@host2"
    assert record.observed_at == fixed_clock()


def test_count_is_parsed():
    records = UsageParser.extract(["LICX 7"], ["LICX"])
    assert records[0].in_use == 7
    assert records[0].holders == ""


def test_holder_parentheses_are_stripped():
    records = UsageParser.extract(["(alice@host1) LICX", "LICX 1"], ["LICX"])
    assert records[0].holders == "alice@host1"


def test_holders_keep_line_order():
    lines = ["LICX 2", "(bob@h2) LICX", "(carol@h3) LICX"]
    assert UsageParser.extract(lines, ["LICX"])[0].holders == "bob@h2 carol@h3"


def test_holder_match_ignores_case():
    lines = ["LICX 1", "(erin@h5) licx"]
    assert UsageParser.extract(lines, ["LICX"])[0].holders == "erin@h5"


def test_holder_without_parentheses_is_kept():
    lines = ["LICX 1", "frank@h6 LICX"]
    assert UsageParser.extract(lines, ["LICX"])[0].holders == "frank@h6"


def test_empty_input_gives_no_records():
    assert UsageParser.extract([], ["LICX"]) == []


def test_no_match_gives_no_records():
    assert UsageParser.extract(["UNRELATED 5"], ["LICX"]) == []


def test_no_targets_gives_no_records():
    assert UsageParser.extract(["LICX 5"], []) == []


def test_holder_lines_alone_are_not_records():
    assert UsageParser.extract(["(alice@host1) LICX"], ["LICX"]) == []


def test_name_must_be_followed_by_a_number():
    assert UsageParser.extract(["LICX in use", "LICX 3x"], ["LICX"]) == []


def test_prefix_names_do_not_cross_match():
    lines = ["LICX 3", "LIC 1", "(alice@h1) LICX"]

    records = UsageParser.extract(lines, ["LIC", "LICX"])

    assert [(r.name, r.in_use, r.holders) for r in records] == [
        ("LICX", 3, "alice@h1"),
        ("LIC", 1, ""),
    ]


def test_only_target_names_produce_records(sample_lines):
    targets = ["SMARTSKETCH", "CAESAR_II", "TANK", "ISOGEN"]
    records = UsageParser.extract(sample_lines, targets)
    assert {r.name for r in records} <= set(targets)
    assert "UNTRACKED_FEATURE" not in {r.name for r in records}


def test_sample_output(sample_lines, fixed_clock):
    targets = ["TANK", "SMARTSKETCH", "CAESAR_II", "ISOGEN"]

    records = UsageParser.extract(sample_lines, targets, clock=fixed_clock)

    # line order, not target order
    assert [(r.name, r.in_use, r.holders) for r in records] == [
        ("SMARTSKETCH", 2, "alice@ws01 bob@ws07"),
        ("TANK", 0, ""),
        ("CAESAR_II", 1, "carol@ws03"),
    ]


def test_parse_is_repeatable(sample_lines):
    first = UsageParser.extract(sample_lines, ["SMARTSKETCH", "TANK"])
    second = UsageParser.extract(sample_lines, ["SMARTSKETCH", "TANK"])
    strip = lambda recs: [(r.name, r.in_use, r.holders) for r in recs]
    assert strip(first) == strip(second)


def test_duplicate_targets_do_not_duplicate_records():
    records = UsageParser.extract(["LICX 2"], ["LICX", "LICX", ""])
    assert len(records) == 1


def test_each_summary_line_gives_a_record():
    records = UsageParser.extract(["LICX 2", "LICX 4"], ["LICX"])
    assert [r.in_use for r in records] == [2, 4]


def test_out_of_range_count_is_skipped_and_counted():
    lines = ["LICX 99999999999", "LICY 2", "(amy@h1) LICY"]

    result = UsageParser.parse(lines, ["LICX", "LICY"])

    assert result.skipped == 1
    assert [(r.name, r.in_use, r.holders) for r in result.records] == [("LICY", 2, "amy@h1")]


def test_record_rejects_empty_name():
    with pytest.raises(ValueError):
        UsageRecord(name="", observed_at=datetime.now(), in_use=1)


@pytest.mark.parametrize("count", [-1, MAX_COUNT + 1])
def test_record_rejects_bad_count(count):
    with pytest.raises(ValueError):
        UsageRecord(name="LICX", observed_at=datetime.now(), in_use=count)


def test_comma_in_dump_splits_fields():
    records = UsageParser.extract(["LICX,5"], ["LICX"])
    assert [(r.name, r.in_use) for r in records] == [("LICX", 5)]


def test_comma_in_holder_token_breaks_correlation():
    records = UsageParser.extract(["smith,j  LICX", "LICX 1"], ["LICX"])
    assert records[0].holders == ""
