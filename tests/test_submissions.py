from pathlib import Path

import pytest

from homework_pipeline.config.models import StudentSettings
from homework_pipeline.processing.submissions import (
    matches_convention,
    parse_student_info,
    submission_name_from_archive,
)


@pytest.mark.parametrize(
    "name, expected_id, expected_name",
    [
        ("2023001-Li Lei", "2023001", "LiLei"),
        ("  2023 001 -  Han  Meimei ", "2023001", "HanMeimei"),
        ("2023001-", "2023001", "unknown_name"),
        ("-Li Lei", "unknown_id", "LiLei"),
        ("   -   ", "unknown_id", "unknown_name"),
        ("2023001", "2023001", "unknown_name"),
        ("01-Anne-Marie", "01", "Anne-Marie"),
    ],
)
def test_parse_student_info(name, expected_id, expected_name):
    info = parse_student_info(name)

    assert info.student_id == expected_id
    assert info.name == expected_name


def test_parsed_fields_are_never_empty():
    for name in ["", "-", " - ", "\t-\n", "a-", "-b"]:
        info = parse_student_info(name)
        assert info.student_id
        assert info.name
        assert " " not in info.student_id + info.name


def test_custom_separator_and_sentinels():
    settings = StudentSettings(separator="_", unknown_id="?", unknown_name="??")

    info = parse_student_info("42_", settings)

    assert info.student_id == "42"
    assert info.name == "??"
    assert info.label == "42_??"


def test_submission_name_from_archive():
    assert submission_name_from_archive(Path("2023001-Li Lei.zip")) == "2023001-Li Lei"
    assert submission_name_from_archive(Path("2023001-Li Lei.tar.gz")) == "2023001-Li Lei"
    assert submission_name_from_archive(Path("x/2023001-Li.7z")) == "2023001-Li"


def test_matches_convention():
    assert matches_convention("2023001-Li Lei")
    assert not matches_convention("readme")


def test_label_of_sentinels_parses_back():
    info = parse_student_info("-")

    assert info.label == "unknown_id-unknown_name"
    assert parse_student_info(info.label) == info


def test_label_round_trips_with_custom_separator():
    settings = StudentSettings(separator="_")

    info = parse_student_info("2023001_Anne-Marie", settings)

    assert info.label == "2023001_Anne-Marie"
    assert parse_student_info(info.label, settings) == info
