"""Spreadsheet ingestion: uploaded Excel/CSV files to header + row structures."""
import logging
import math
import re
from dataclasses import dataclass, field
from datetime import date, datetime
from io import BytesIO
from typing import Any, Dict, Iterable, List, Optional

import numpy as np
import pandas as pd

from xlsmart.exceptions import ValidationError

logger = logging.getLogger(__name__)

EXCEL_EXTENSIONS = (".xlsx", ".xls")
CSV_EXTENSIONS = (".csv",)

ROLE_TITLE_COLUMNS = (
    "title", "role title", "roletitle", "role_title", "position", "job title",
    "jobtitle", "job_title",
)
ROLE_DEPARTMENT_COLUMNS = ("department", "dept", "division")
ROLE_LEVEL_COLUMNS = ("level", "role level", "seniority", "band", "seniority band", "grade")

EMPLOYEE_COLUMNS = {
    "employee_number": ("employee id", "employee number", "employee_number", "employee no",
                        "emp id", "nik", "id"),
    "first_name": ("first name", "first_name", "firstname"),
    "last_name": ("last name", "last_name", "lastname", "surname"),
    "full_name": ("name", "full name", "employee name"),
    "email": ("email", "e-mail", "email address"),
    "source_company": ("company", "source company", "source_company", "entity"),
    "current_position": ("position", "current position", "current_position", "title",
                         "job title", "role"),
    "current_department": ("department", "current department", "current_department", "dept"),
    "current_level": ("level", "current level", "current_level", "grade", "band"),
    "years_of_experience": ("years of experience", "years_of_experience", "experience",
                            "experience (years)", "yoe"),
    "performance_rating": ("performance rating", "performance_rating", "rating", "performance"),
    "skills": ("skills", "skill set", "competencies"),
    "certifications": ("certifications", "certification", "certificates"),
}


@dataclass
class SheetData:
    """One worksheet (or CSV file) as a header row plus data rows."""

    file_name: str
    sheet_name: str
    headers: List[str]
    rows: List[List[Any]] = field(default_factory=list)

    def records(self) -> List[Dict[str, Any]]:
        return [
            {header: row[i] if i < len(row) else None for i, header in enumerate(self.headers)}
            for row in self.rows
        ]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "file_name": self.file_name,
            "sheet_name": self.sheet_name,
            "headers": self.headers,
            "rows": self.rows,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SheetData":
        return cls(
            file_name=str(data.get("file_name") or data.get("fileName") or "unknown"),
            sheet_name=str(data.get("sheet_name") or data.get("sheetName") or ""),
            headers=[str(h).strip() for h in data.get("headers") or []],
            rows=[list(r) for r in data.get("rows") or []],
        )


def _clean_cell(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, (pd.Timestamp, datetime, date)):
        return value.isoformat()
    if isinstance(value, np.generic):
        value = value.item()
    if isinstance(value, float) and math.isnan(value):
        return None
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value


def _frame_to_sheet(df: pd.DataFrame, file_name: str, sheet_name: str) -> SheetData:
    headers = [str(c).strip() for c in df.columns]
    rows = []
    for raw in df.itertuples(index=False, name=None):
        row = [_clean_cell(v) for v in raw]
        if any(v is not None for v in row):
            rows.append(row)
    return SheetData(file_name=file_name, sheet_name=sheet_name, headers=headers, rows=rows)


def read_spreadsheet(file_name: str, content: bytes) -> List[SheetData]:
    """
    Parse an uploaded spreadsheet.

    Every worksheet of an Excel workbook becomes one ``SheetData``; a CSV file
    becomes a single sheet. Fully blank rows are dropped.

    Raises:
        ValidationError: unsupported extension or unreadable file
    """
    lower = (file_name or "").lower()
    try:
        if lower.endswith(EXCEL_EXTENSIONS):
            frames = pd.read_excel(BytesIO(content), sheet_name=None, dtype=object)
        elif lower.endswith(CSV_EXTENSIONS):
            frames = {"": pd.read_csv(BytesIO(content), dtype=object, skipinitialspace=True)}
        else:
            raise ValidationError(f"Unsupported file type: {file_name} (expected .xlsx, .xls or .csv)")
    except ValidationError:
        raise
    except Exception as e:
        logger.warning(f"Could not read spreadsheet {file_name}: {e}")
        raise ValidationError(f"Could not read spreadsheet {file_name}: {e}") from e

    sheets = [_frame_to_sheet(df, file_name, name) for name, df in frames.items()]
    logger.info(
        f"Read {file_name}: {len(sheets)} sheet(s), {sum(len(s.rows) for s in sheets)} rows"
    )
    return sheets


def _normalize_key(key: Any) -> str:
    return re.sub(r"\s+", " ", str(key).strip().lower())


def _lookup(record: Dict[str, Any], aliases: Iterable[str]) -> Any:
    normalized = {_normalize_key(k): v for k, v in record.items()}
    for alias in aliases:
        value = normalized.get(alias)
        if value not in (None, ""):
            return value
    return None


def _split_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return [str(v).strip() for v in value if str(v).strip()]
    return [part.strip() for part in re.split(r"[,;\n]", str(value)) if part.strip()]


def _to_float(value: Any) -> Optional[float]:
    """Parse a number; blanks, text, NaN and infinities become None."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _to_int(value: Any) -> Optional[int]:
    number = _to_float(value)
    return int(number) if number is not None else None


def _to_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, float):
        if not math.isfinite(value):
            return None
        if value.is_integer():
            value = int(value)
    text = str(value).strip()
    return text or None


def normalize_role_row(record: Dict[str, Any], source_file: str = "unknown") -> Optional[Dict[str, Any]]:
    """Map a raw role row onto ``role_title`` / ``department`` / ``seniority_band``."""
    title = _to_text(_lookup(record, ROLE_TITLE_COLUMNS))
    if not title:
        return None
    return {
        "role_title": title,
        "department": _to_text(_lookup(record, ROLE_DEPARTMENT_COLUMNS)) or "",
        "seniority_band": _to_text(_lookup(record, ROLE_LEVEL_COLUMNS)) or "",
        "source_file": source_file,
    }


def role_rows_from_sheets(sheets: Iterable[SheetData]) -> List[Dict[str, Any]]:
    rows = []
    for sheet in sheets:
        for record in sheet.records():
            row = normalize_role_row(record, sheet.file_name)
            if row:
                rows.append(row)
    return rows


def normalize_employee_row(record: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """
    Map a raw employee row onto ``Employee`` column names.

    Returns None when the row has no position or no way to identify the person.
    """
    values = {name: _lookup(record, aliases) for name, aliases in EMPLOYEE_COLUMNS.items()}

    first_name = _to_text(values["first_name"])
    last_name = _to_text(values["last_name"]) or ""
    if not first_name and values["full_name"]:
        parts = str(values["full_name"]).strip().split(None, 1)
        first_name = parts[0]
        last_name = parts[1] if len(parts) > 1 else ""

    position = _to_text(values["current_position"])
    employee_number = _to_text(values["employee_number"])
    if not position or not (first_name or employee_number):
        return None

    return {
        "employee_number": employee_number or "",
        "first_name": first_name or employee_number,
        "last_name": last_name,
        "email": _to_text(values["email"]),
        "source_company": _to_text(values["source_company"]),
        "current_position": position,
        "current_department": _to_text(values["current_department"]),
        "current_level": _to_text(values["current_level"]),
        "years_of_experience": _to_int(values["years_of_experience"]),
        "performance_rating": _to_float(values["performance_rating"]),
        "skills": _split_list(values["skills"]),
        "certifications": _split_list(values["certifications"]),
    }
