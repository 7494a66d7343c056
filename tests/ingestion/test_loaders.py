import pandas as pd
import pytest

from carrier_extractor.ingestion.loaders import UnsupportedFileTypeError, load_identifiers, parse_identifier_lines


def test_text_file_is_trimmed_and_blank_lines_skipped(tmp_path):
    path = tmp_path / "mc_list.txt"
    path.write_text("  123456 \n\n\t\nMC 987654\n   \n042\n", encoding="utf-8")

    assert load_identifiers(path) == ["123456", "MC 987654", "042"]


def test_parse_identifier_lines_keeps_order():
    assert parse_identifier_lines(["b", " ", "a", "c "]) == ["b", "a", "c"]


def test_csv_identifier_column_is_resolved_by_name(tmp_path):
    path = tmp_path / "carriers.csv"
    pd.DataFrame(
        [
            {"Carrier": "Acme", "MC Number": "012345"},
            {"Carrier": "Blank", "MC Number": ""},
            {"Carrier": "Beta", "MC Number": " 67890 "},
        ]
    ).to_csv(path, index=False)

    # dtype=str keeps leading zeros intact.
    assert load_identifiers(path) == ["012345", "67890"]


def test_explicit_column_and_excel(tmp_path):
    pytest.importorskip("openpyxl")
    path = tmp_path / "carriers.xlsx"
    pd.DataFrame({"name": ["Acme", "Beta"], "docket_id": ["111", "222"]}).to_excel(path, index=False)

    assert load_identifiers(path, column="docket_id") == ["111", "222"]


def test_first_column_is_the_fallback(tmp_path):
    path = tmp_path / "carriers.tsv"
    path.write_text("ids\tnote\n5551\tx\n5552\ty\n", encoding="utf-8")

    assert load_identifiers(path) == ["5551", "5552"]


def test_missing_column_and_file_raise(tmp_path):
    path = tmp_path / "carriers.csv"
    path.write_text("mc\n1\n", encoding="utf-8")

    with pytest.raises(KeyError):
        load_identifiers(path, column="docket")
    with pytest.raises(FileNotFoundError):
        load_identifiers(tmp_path / "absent.txt")


def test_unsupported_file_type_is_a_value_error():
    assert issubclass(UnsupportedFileTypeError, ValueError)
