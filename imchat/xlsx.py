"""Reading rows of spreadsheet workbooks into dataclass records."""

from __future__ import annotations

import dataclasses
import io
import itertools
import math
import os
import posixpath
import re
import struct
import zipfile
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, BinaryIO, ClassVar, Union

from defusedxml import ElementTree

_AXIS_RE = re.compile(r"([A-Za-z]{1,3})([1-9][0-9]*)")
_SIGNED_RE = re.compile(r"[+-]?[0-9]+")
_UNSIGNED_RE = re.compile(r"[0-9]+")
_FLOAT_RE = re.compile(
    r"[+-]?(?:(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?|inf(?:inity)?|nan)",
    re.IGNORECASE,
)

_SIGNED_BITS = {"int": 64, "int8": 8, "int16": 16, "int32": 32, "int64": 64}
_UNSIGNED_BITS = {"uint": 64, "uint8": 8, "uint16": 16, "uint32": 32, "uint64": 64}
_FLOAT_BITS = {"float32": 32, "float64": 64}
_KINDS = {"bool", "string", *_SIGNED_BITS, *_UNSIGNED_BITS, *_FLOAT_BITS}
_PYTHON_KINDS = {bool: "bool", int: "int", float: "float64", str: "string"}
_ANNOTATION_KINDS = {"str": "string", "float": "float64"}

_WORKBOOK_PART = "xl/workbook.xml"
_WORKBOOK_RELS = "xl/_rels/workbook.xml.rels"
_SHARED_STRINGS = "xl/sharedStrings.xml"

Source = Union[str, os.PathLike, bytes, bytearray, BinaryIO]


def _kind_name(kind: Any) -> str:
    if isinstance(kind, type):
        name = _PYTHON_KINDS.get(kind)
        if name is None:
            raise TypeError(f"not Supported {kind.__name__}")
        return name
    if isinstance(kind, str):
        lowered = kind.strip().lower()
        if lowered in _KINDS:
            return lowered
        if lowered in _ANNOTATION_KINDS:
            return _ANNOTATION_KINDS[lowered]
    raise TypeError(f"not Supported {kind}")


def num_to_az(num: int) -> str:
    """Return the spreadsheet column letters for a 1-based column number."""
    if num < 0:
        raise ValueError(f"column number {num} is negative")
    letters = []
    while num > 0:
        num, remainder = divmod(num - 1, 26)
        letters.append(chr(ord("A") + remainder))
    return "".join(reversed(letters))


def _column_number(letters: str) -> int:
    number = 0
    for letter in letters.upper():
        number = number * 26 + (ord(letter) - ord("A") + 1)
    return number


def get_axis(x: int, y: int) -> str:
    """Return the cell reference for column ``x`` and row ``y``, both 1-based."""
    return num_to_az(x) + str(y)


def _normalize_axis(axis: str) -> str:
    match = _AXIS_RE.fullmatch(axis)
    if match is None:
        raise ValueError(f'cannot convert cell "{axis}" to coordinates')
    return f"{match.group(1).upper()}{int(match.group(2))}"


def zero_value(kind: Any) -> Any:
    """Return the zero value of a column kind."""
    name = _kind_name(kind)
    if name == "bool":
        return False
    if name == "string":
        return ""
    if name in _FLOAT_BITS:
        return 0.0
    return 0


def _parse_int(text: str, bits: int, signed: bool) -> int:
    pattern = _SIGNED_RE if signed else _UNSIGNED_RE
    function = "ParseInt" if signed else "ParseUint"
    if pattern.fullmatch(text) is None:
        raise ValueError(f'{function}: parsing "{text}": invalid syntax')
    value = int(text)
    if signed:
        low, high = -(1 << (bits - 1)), (1 << (bits - 1)) - 1
    else:
        low, high = 0, (1 << bits) - 1
    if not low <= value <= high:
        raise ValueError(f'{function}: parsing "{text}": value out of range')
    return value


def _parse_float(text: str, bits: int) -> float:
    if _FLOAT_RE.fullmatch(text) is None:
        raise ValueError(f'ParseFloat: parsing "{text}": invalid syntax')
    value = float(text)
    literal_infinite = text.lstrip("+-").lower().startswith("inf")
    if math.isinf(value) and not literal_infinite:
        raise ValueError(f'ParseFloat: parsing "{text}": value out of range')
    if bits == 32 and math.isfinite(value):
        try:
            value = struct.unpack("<f", struct.pack("<f", value))[0]
        except OverflowError:
            raise ValueError(f'ParseFloat: parsing "{text}": value out of range') from None
    return value


def string_to_value(s: str, kind: Any) -> Any:
    """Convert cell text to a value of the given kind.

    ``kind`` is one of the names bool, int, int8 to int64, uint, uint8 to
    uint64, float32, float64 and string, or one of the types bool, int,
    float and str. Empty text gives the kind's zero value.
    """
    name = _kind_name(kind)
    if s == "":
        return zero_value(name)
    if name == "bool":
        lowered = s.lower()
        if lowered in ("false", "f", "0"):
            return False
        if lowered in ("true", "t", "1"):
            return True
        raise ValueError(f"parse {s} to bool error")
    if name in _SIGNED_BITS:
        return _parse_int(s, _SIGNED_BITS[name], signed=True)
    if name in _UNSIGNED_BITS:
        return _parse_int(s, _UNSIGNED_BITS[name], signed=False)
    if name in _FLOAT_BITS:
        return _parse_float(s, _FLOAT_BITS[name])
    return s


class Workbook:
    """Cell texts of a workbook, by sheet name and cell reference."""

    def __init__(self, sheets: Mapping[str, Mapping[str, str]] | None = None) -> None:
        self._sheets: dict[str, dict[str, str]] = {
            name: {_normalize_axis(axis): str(value) for axis, value in cells.items()}
            for name, cells in (sheets or {}).items()
        }

    def sheet_names(self) -> list[str]:
        """Return the sheet names in workbook order."""
        return list(self._sheets)

    def get_cell_value(self, sheet: str, axis: str) -> str:
        """Return the text of a cell, or an empty string for an empty cell."""
        try:
            cells = self._sheets[sheet]
        except KeyError:
            raise ValueError(f"sheet {sheet} does not exist") from None
        return cells.get(_normalize_axis(axis), "")


def _local(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _children(element, name: str):
    return (child for child in element if _local(child.tag) == name)


def _parse_part(archive: zipfile.ZipFile, name: str):
    return ElementTree.fromstring(archive.read(name))


def _rich_text(element) -> str:
    parts = []
    for child in element:
        tag = _local(child.tag)
        if tag == "t":
            parts.append(child.text or "")
        elif tag == "r":
            parts.extend(sub.text or "" for sub in _children(child, "t"))
    return "".join(parts)


def _read_shared_strings(archive: zipfile.ZipFile, names: set[str]) -> list[str]:
    if _SHARED_STRINGS not in names:
        return []
    root = _parse_part(archive, _SHARED_STRINGS)
    return [_rich_text(item) for item in _children(root, "si")]


def _read_relationships(archive: zipfile.ZipFile, names: set[str]) -> dict[str, str]:
    if _WORKBOOK_RELS not in names:
        return {}
    targets = {}
    for relation in _children(_parse_part(archive, _WORKBOOK_RELS), "Relationship"):
        target = relation.get("Target", "")
        if target.startswith("/"):
            target = target.lstrip("/")
        else:
            target = posixpath.normpath(posixpath.join("xl", target))
        targets[relation.get("Id", "")] = target
    return targets


def _cell_text(cell, shared: list[str]) -> str:
    cell_type = cell.get("t", "n")
    value_element = next(_children(cell, "v"), None)
    raw = (value_element.text or "") if value_element is not None else ""
    if cell_type == "s":
        try:
            return shared[int(raw)]
        except (ValueError, IndexError):
            return ""
    if cell_type == "inlineStr":
        inline = next(_children(cell, "is"), None)
        return _rich_text(inline) if inline is not None else raw
    if cell_type == "b":
        return {"1": "TRUE", "0": "FALSE"}.get(raw, raw)
    return raw


def _read_sheet(root, shared: list[str]) -> dict[str, str]:
    cells: dict[str, str] = {}
    for sheet_data in _children(root, "sheetData"):
        row_number = 0
        for row in _children(sheet_data, "row"):
            row_number = int(row.get("r", row_number + 1))
            column = 0
            for cell in _children(row, "c"):
                reference = cell.get("r")
                if reference:
                    axis = _normalize_axis(reference)
                    match = _AXIS_RE.fullmatch(axis)
                    column = _column_number(match.group(1))
                else:
                    column += 1
                    axis = get_axis(column, row_number)
                text = _cell_text(cell, shared)
                if text:
                    cells[axis] = text
    return cells


def _read_archive(archive: zipfile.ZipFile) -> Workbook:
    names = set(archive.namelist())
    if _WORKBOOK_PART not in names:
        raise ValueError("archive holds no workbook")
    shared = _read_shared_strings(archive, names)
    targets = _read_relationships(archive, names)
    sheets: dict[str, dict[str, str]] = {}
    for sheets_element in _children(_parse_part(archive, _WORKBOOK_PART), "sheets"):
        for sheet in _children(sheets_element, "sheet"):
            relation_id = next(
                (value for key, value in sheet.attrib.items() if key.endswith("}id")), ""
            )
            target = targets.get(relation_id)
            if target is None or target not in names:
                sheets[sheet.get("name", "")] = {}
            else:
                sheets[sheet.get("name", "")] = _read_sheet(
                    _parse_part(archive, target), shared
                )
    return Workbook(sheets)


def open_workbook(source: Source) -> Workbook:
    """Read a workbook from a path, a bytes object or a binary file."""
    if isinstance(source, (bytes, bytearray, memoryview)):
        source = io.BytesIO(bytes(source))
    with zipfile.ZipFile(source) as archive:
        return _read_archive(archive)


def get_sheet_name(model: Any) -> str:
    """Return the sheet a record class reads from, or "" if it is no dataclass.

    A class names its sheet with a ``SHEET_NAME`` class variable; otherwise
    the class name is used.
    """
    cls = model if isinstance(model, type) else type(model)
    if not dataclasses.is_dataclass(cls):
        return ""
    name = getattr(cls, "SHEET_NAME", None)
    return name if isinstance(name, str) and name else cls.__name__


def _field_kind(record_field: dataclasses.Field) -> Any:
    return record_field.metadata.get("kind") or record_field.type


def _build_record(model: type, values: dict[str, Any]) -> Any:
    arguments: dict[str, Any] = {}
    late: dict[str, Any] = {}
    for record_field in dataclasses.fields(model):
        if record_field.name in values:
            target = arguments if record_field.init else late
            target[record_field.name] = values[record_field.name]
        elif (
            record_field.init
            and record_field.default is dataclasses.MISSING
            and record_field.default_factory is dataclasses.MISSING
        ):
            arguments[record_field.name] = zero_value(_field_kind(record_field))
    record = model(**arguments)
    for name, value in late.items():
        object.__setattr__(record, name, value)
    return record


def parse_sheet(workbook: Workbook, model: type) -> list:
    """Read the rows of the model's sheet into records of the model.

    The first row holds column names, matched against each field's
    ``column`` metadata or its name; fields whose column is ``-`` are not
    read. Reading stops at the first row whose mapped cells are all empty.
    A workbook without the sheet gives an empty list.
    """
    if not (isinstance(model, type) and dataclasses.is_dataclass(model)):
        raise TypeError("not struct")
    sheet = get_sheet_name(model)
    if sheet not in workbook.sheet_names():
        return []
    columns: dict[str, dataclasses.Field] = {}
    for record_field in dataclasses.fields(model):
        alias = record_field.metadata.get("column", "")
        if alias == "-":
            continue
        columns[alias or record_field.name] = record_field
    if not columns:
        raise ValueError("empty column struct")

    positions: dict[str, int] = {}
    for index in itertools.count(1):
        name = workbook.get_cell_value(sheet, get_axis(index, 1))
        if name == "":
            break
        if name in columns:
            positions[name] = index
    if not positions:
        raise ValueError("sheet column empty")

    records = []
    for row in itertools.count(2):
        values: dict[str, Any] = {}
        for column, index in positions.items():
            text = workbook.get_cell_value(sheet, get_axis(index, row))
            if text == "":
                continue
            record_field = columns[column]
            values[record_field.name] = string_to_value(text, _field_kind(record_field))
        if not values:
            break
        records.append(_build_record(model, values))
    return records


def parse_all(source: Source, *args: type) -> list[list]:
    """Read one workbook and parse a sheet for each model, in order."""
    if not args:
        raise ValueError("empty models")
    workbook = open_workbook(source)
    return [parse_sheet(workbook, model) for model in args]


def _column(name: str):
    return field(default="", metadata={"column": name})


@dataclass
class User:
    """A user row of an import workbook."""

    SHEET_NAME: ClassVar[str] = "user"

    user_id: str = _column("user_id")
    nickname: str = _column("nickname")
    face_url: str = _column("face_url")
    birth: str = _column("birth")
    gender: str = _column("gender")
    area_code: str = _column("area_code")
    phone_number: str = _column("phone_number")
    email: str = _column("email")
    account: str = _column("account")
    password: str = _column("password")