import io
import zipfile
from dataclasses import dataclass, field
from typing import ClassVar
from xml.sax.saxutils import escape

import pytest

from imchat.xlsx import (
    User,
    Workbook,
    get_axis,
    get_sheet_name,
    num_to_az,
    open_workbook,
    parse_all,
    parse_sheet,
    string_to_value,
    zero_value,
)

_MAIN = "http://schemas.openxmlformats.org/spreadsheetml/2006/main"
_REL = "http://schemas.openxmlformats.org/officeDocument/2006/relationships"
_PKG_REL = "http://schemas.openxmlformats.org/package/2006/relationships"


def _rows_xml(rows):
    row_parts = []
    for row_number, row in enumerate(rows, start=1):
        cells = "".join(
            f'<c r="{chr(ord("A") + offset)}{row_number}" t="inlineStr">'
            f"<is><t>{escape(text)}</t></is></c>"
            for offset, text in enumerate(row)
            if text
        )
        row_parts.append(f'<row r="{row_number}">{cells}</row>')
    return f'<worksheet xmlns="{_MAIN}"><sheetData>{"".join(row_parts)}</sheetData></worksheet>'


def _workbook_bytes(sheets, shared_xml=None):
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        sheet_entries = []
        relations = []
        for number, (name, xml) in enumerate(sheets.items(), start=1):
            sheet_entries.append(f'<sheet name="{name}" sheetId="{number}" r:id="rId{number}"/>')
            relations.append(
                f'<Relationship Id="rId{number}" Type="{_REL}/worksheet" '
                f'Target="worksheets/sheet{number}.xml"/>'
            )
            archive.writestr(f"xl/worksheets/sheet{number}.xml", xml)
        archive.writestr(
            "xl/workbook.xml",
            f'<workbook xmlns="{_MAIN}" xmlns:r="{_REL}"><sheets>{"".join(sheet_entries)}</sheets></workbook>',
        )
        archive.writestr(
            "xl/_rels/workbook.xml.rels",
            f'<Relationships xmlns="{_PKG_REL}">{"".join(relations)}</Relationships>',
        )
        if shared_xml is not None:
            archive.writestr("xl/sharedStrings.xml", shared_xml)
    return buffer.getvalue()


@dataclass
class Score:
    SHEET_NAME: ClassVar[str] = "scores"

    name: str = field(metadata={"column": "player"})
    points: int
    active: bool
    note: str = field(default="none", metadata={"column": "-"})


@dataclass
class Plain:
    value: str = ""


@dataclass
class Hidden:
    secret_note: str = field(default="", metadata={"column": "-"})


def test_num_to_az_single_letters():
    assert num_to_az(1) == "A"
    assert num_to_az(26) == "Z"
    assert num_to_az(0) == ""


def test_num_to_az_multiple_letters():
    assert num_to_az(27) == "AA"
    assert num_to_az(702) == "ZZ"
    assert num_to_az(703) == "AAA"


def test_num_to_az_unique_and_ordered():
    names = [num_to_az(number) for number in range(1, 2000)]
    assert len(set(names)) == len(names)
    assert sorted(names, key=lambda name: (len(name), name)) == names
    assert all(name.isalpha() and name.isupper() for name in names)


def test_num_to_az_negative_raises():
    with pytest.raises(ValueError):
        num_to_az(-1)


def test_get_axis_addresses_cells():
    workbook = Workbook({"s": {"c4": "v", "A1": "w"}})
    assert workbook.get_cell_value("s", get_axis(3, 4)) == "v"
    assert workbook.get_cell_value("s", get_axis(1, 1)) == "w"
    assert workbook.get_cell_value("s", get_axis(4, 3)) == ""


@pytest.mark.parametrize(
    ("text", "kind", "expected"),
    [
        ("true", "bool", True),
        ("T", "bool", True),
        ("1", "bool", True),
        ("0", "bool", False),
        ("FALSE", "bool", False),
        ("42", "int", 42),
        ("-7", "int8", -7),
        ("+5", "int64", 5),
        ("255", "uint8", 255),
        ("1.5", "float64", 1.5),
        ("hello", "string", "hello"),
        ("7", int, 7),
        ("2.25", float, 2.25),
        ("t", bool, True),
    ],
)
def test_string_to_value(text, kind, expected):
    assert string_to_value(text, kind) == expected


@pytest.mark.parametrize(
    ("text", "kind"),
    [
        ("yes", "bool"),
        ("128", "int8"),
        ("-1", "uint"),
        ("256", "uint8"),
        ("1_000", "int"),
        (" 1", "int"),
        ("abc", "float64"),
        ("1e400", "float64"),
        ("1e39", "float32"),
    ],
)
def test_string_to_value_invalid(text, kind):
    with pytest.raises(ValueError):
        string_to_value(text, kind)


@pytest.mark.parametrize("kind", ["bool", "int", "int16", "uint32", "float32", "string", str])
def test_empty_text_gives_zero_value(kind):
    assert string_to_value("", kind) == zero_value(kind)


def test_zero_values():
    assert zero_value("bool") is False
    assert zero_value("int") == 0
    assert zero_value(float) == 0.0
    assert zero_value("string") == ""


def test_unsupported_kind_raises():
    with pytest.raises(TypeError):
        zero_value("complex64")
    with pytest.raises(TypeError):
        string_to_value("1", list)


def test_float32_is_rounded():
    value = string_to_value("0.1", "float32")
    assert abs(value - 0.1) < 1e-7
    assert value != 0.1


def test_get_sheet_name():
    assert get_sheet_name(User) == "user"
    assert get_sheet_name(User()) == "user"
    assert get_sheet_name(Plain) == "Plain"
    assert get_sheet_name(int) == ""


def test_parse_sheet_users():
    workbook = Workbook(
        {
            "user": {
                "A1": "user_id", "B1": "nickname", "C1": "email", "D1": "extra",
                "A2": "u1", "B2": "Alice", "C2": "alice@example.com", "D2": "x",
                "A3": "u2", "B3": "Bob",
                "A5": "u3",
            }
        }
    )
    users = parse_sheet(workbook, User)
    assert users == [
        User(user_id="u1", nickname="Alice", email="alice@example.com"),
        User(user_id="u2", nickname="Bob"),
    ]


def test_parse_sheet_missing_sheet_gives_empty_list():
    assert parse_sheet(Workbook({"other": {"A1": "user_id"}}), User) == []


def test_parse_sheet_without_matching_columns():
    with pytest.raises(ValueError, match="sheet column empty"):
        parse_sheet(Workbook({"user": {"A1": "unknown", "A2": "x"}}), User)


def test_parse_sheet_aliases_kinds_and_skipped_fields():
    workbook = Workbook(
        {
            "scores": {
                "A1": "player", "B1": "points", "C1": "active", "D1": "note",
                "A2": "ann", "B2": "12", "C2": "t", "D2": "x",
                "A3": "ben", "C3": "0",
            }
        }
    )
    scores = parse_sheet(workbook, Score)
    assert scores == [Score("ann", 12, True), Score("ben", 0, False)]
    assert [score.note for score in scores] == ["none", "none"]


def test_parse_sheet_bad_cell_value():
    workbook = Workbook({"scores": {"A1": "points", "A2": "many"}})
    with pytest.raises(ValueError):
        parse_sheet(workbook, Score)


def test_parse_sheet_empty_column_struct():
    with pytest.raises(ValueError, match="empty column struct"):
        parse_sheet(Workbook({"Hidden": {"A1": "secret_note"}}), Hidden)


def test_parse_sheet_requires_dataclass():
    with pytest.raises(TypeError, match="not struct"):
        parse_sheet(Workbook(), dict)


def test_parse_all_from_bytes():
    data = _workbook_bytes(
        {
            "user": _rows_xml(
                [["user_id", "nickname", "email"], ["u1", "Alice", "alice@example.com"]]
            ),
            "other": _rows_xml([["a"]]),
        }
    )
    users, scores = parse_all(data, User, Score)
    assert users == [User(user_id="u1", nickname="Alice", email="alice@example.com")]
    assert scores == []


def test_parse_all_needs_models():
    with pytest.raises(ValueError, match="empty models"):
        parse_all(_workbook_bytes({"user": _rows_xml([["user_id"]])}))


def test_parse_all_rejects_non_archive():
    with pytest.raises(zipfile.BadZipFile):
        parse_all(b"not a workbook", User)


def test_open_workbook_cell_kinds(tmp_path):
    shared = (
        f'<sst xmlns="{_MAIN}"><si><r><t>be</t></r><r><t>ta</t></r></si>'
        "<si><t>gamma</t></si></sst>"
    )
    raw = (
        f'<worksheet xmlns="{_MAIN}"><sheetData>'
        '<row r="1"><c r="A1" t="inlineStr"><is><t>alpha</t></is></c>'
        '<c t="s"><v>0</v></c><c><v>3.5</v></c></row>'
        '<row><c r="B2" t="s"><v>1</v></c></row>'
        "</sheetData></worksheet>"
    )
    path = tmp_path / "book.xlsx"
    path.write_bytes(_workbook_bytes({"raw": raw, "second": _rows_xml([])}, shared))
    workbook = open_workbook(path)
    assert workbook.sheet_names() == ["raw", "second"]
    assert workbook.get_cell_value("raw", "A1") == "alpha"
    assert workbook.get_cell_value("raw", "B1") == "beta"
    assert workbook.get_cell_value("raw", "C1") == "3.5"
    assert workbook.get_cell_value("raw", "B2") == "gamma"
    assert workbook.get_cell_value("second", "A1") == ""


def test_open_workbook_from_file_object():
    data = _workbook_bytes({"user": _rows_xml([["user_id"], ["u9"]])})
    workbook = open_workbook(io.BytesIO(data))
    assert parse_sheet(workbook, User) == [User(user_id="u9")]


def test_get_cell_value_errors():
    workbook = Workbook({"s": {"A1": "x"}})
    with pytest.raises(ValueError):
        workbook.get_cell_value("missing", "A1")
    with pytest.raises(ValueError):
        workbook.get_cell_value("s", "1A")