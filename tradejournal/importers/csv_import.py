"""CSV import for broker trade-history exports.

Headers are matched to trade fields by pattern, so exports from MT4/MT5,
cTrader and spreadsheets work without manual mapping.  Rows missing a pair,
direction, entry price or P&L are skipped and reported; the importer never
raises on bad rows.

Usage::

    result = import_csv(Path("history.csv").read_text())
    store.log_trades(result.trades)
    for error in result.errors:
        print(error.row, error.message)
"""

from __future__ import annotations

import csv
import hashlib
import io
import logging
import re
from datetime import date, datetime
from typing import Optional, Sequence

from pydantic import BaseModel, Field, ValidationError

from tradejournal.analytics.aggregation import TimeConvention
from tradejournal.models import Direction, Trade

logger = logging.getLogger(__name__)

DEFAULT_LOTS = 0.01
DEFAULT_TIME = "09:00"
DEFAULT_SETUP = "Imported"

# Field -> header patterns, checked in order; the first field to claim a header wins
COLUMN_PATTERNS: dict[str, list[str]] = {
    "id": [r"^id$", r"^trade.?id$", r"^ticket$", r"^order$", r"^position$"],
    "pair": [r"^pair$", r"^symbol$", r"^instrument$", r"^market$", r"^currency$"],
    "direction": [r"^direction$", r"^side$", r"^type$", r"^buy.?sell$", r"^action$"],
    "entry": [r"^entry$", r"^open.?price$", r"^entry.?price$", r"^price$"],
    "exit": [r"^exit$", r"^close.?price$", r"^exit.?price$"],
    "ts": [r"^timestamp$", r"^unix$", r"^epoch$"],
    "date": [r"^date$", r"^open.?date$", r"^trade.?date$", r"^open.?time$", r"^time$"],
    "time": [r"^time$", r"^trade.?time$", r"^hour$"],
    "lots": [r"^lot", r"^size$", r"^volume$", r"^qty$", r"^quantity$", r"^units$"],
    "pnl": [r"^pnl$", r"^p&l$", r"^profit$", r"^net.?profit$", r"^result$", r"^gain$"],
    "setup": [r"^setup$", r"^strategy$", r"^pattern$", r"^playbook$"],
    "mood": [r"^emotion$", r"^mood$", r"^feeling$", r"^mental$"],
    "session_type": [r"^session$", r"^market.?session$"],
    "violation_reason": [r"^violation", r"^rule.?violation$", r"^broken.?rule$"],
    "setup_quality": [r"^quality$", r"^setup.?quality$", r"^grade$"],
    "sl": [r"^sl$", r"^stop", r"^s/l$"],
    "tp": [r"^tp$", r"^take.?profit$", r"^target$", r"^t/p$"],
    "notes": [r"^note", r"^comment", r"^remark", r"^description$"],
}

REQUIRED_FIELDS = ("pair", "direction", "entry", "pnl")

DATE_FORMATS = [
    (re.compile(r"^\d{4}-\d{2}-\d{2}"), "%Y-%m-%d"),
    (re.compile(r"^\d{4}\.\d{2}\.\d{2}"), "%Y.%m.%d"),
    (re.compile(r"^\d{2}/\d{2}/\d{4}"), "%m/%d/%Y"),
    (re.compile(r"^\d{2}\.\d{2}\.\d{4}"), "%d.%m.%Y"),
    (re.compile(r"^\d{2}-\d{2}-\d{4}"), "%d-%m-%Y"),
]

TIME_PATTERN = re.compile(r"(\d{1,2}):(\d{2})(?::(\d{2}))?")


class ColumnMapping(BaseModel):
    """A source header and the trade field it feeds."""

    source: str
    target: Optional[str] = None

    model_config = {"frozen": True}


class ImportValidationError(BaseModel):
    """A problem with one cell of an imported row."""

    row: int = Field(..., description="1-based line number in the file")
    column: str
    value: str
    message: str

    model_config = {"frozen": True}


class ImportResult(BaseModel):
    """Outcome of an import."""

    trades: list[Trade] = Field(default_factory=list)
    errors: list[ImportValidationError] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    skipped_rows: int = 0

    @property
    def success(self) -> bool:
        return not self.errors


# ==================== Parsing ====================

def detect_delimiter(first_line: str) -> str:
    """Pick comma, tab or semicolon from the header line."""
    if "\t" in first_line and "," not in first_line:
        return "\t"
    if ";" in first_line and "," not in first_line:
        return ";"
    return ","


def parse_csv(content: str) -> tuple[list[str], list[dict[str, str]]]:
    """Split CSV content into headers and row dicts.

    Blank lines are dropped; short rows are padded with empty strings.
    """
    lines = [line for line in content.splitlines() if line.strip()]
    if not lines:
        return [], []

    reader = csv.reader(io.StringIO("\n".join(lines)), delimiter=detect_delimiter(lines[0]))
    records = list(reader)
    headers = [h.strip() for h in records[0]]
    rows = []
    for values in records[1:]:
        values = [v.strip() for v in values]
        rows.append({h: values[i] if i < len(values) else "" for i, h in enumerate(headers)})
    return headers, rows


def detect_column_mappings(headers: Sequence[str]) -> list[ColumnMapping]:
    """Map each header to at most one trade field, each field used once."""
    used: set[str] = set()
    mappings = []
    for header in headers:
        target = None
        for field, patterns in COLUMN_PATTERNS.items():
            if field in used:
                continue
            if any(re.search(p, header.strip(), re.IGNORECASE) for p in patterns):
                target = field
                used.add(field)
                break
        mappings.append(ColumnMapping(source=header, target=target))
    return mappings


def parse_direction(value: str) -> Optional[Direction]:
    try:
        return Direction.parse(value)
    except ValueError:
        return None


def parse_number(value: str) -> Optional[float]:
    """Parse a number, ignoring currency symbols, spaces and thousands separators."""
    if not value or not value.strip():
        return None
    cleaned = re.sub(r"[,$€£¥\s]", "", value)
    try:
        number = float(cleaned)
    except ValueError:
        return None
    if number != number or number in (float("inf"), float("-inf")):
        return None
    return number


def parse_date(value: str) -> Optional[date]:
    """Parse ISO, MT4 (yyyy.mm.dd), US (mm/dd/yyyy) and EU (dd.mm.yyyy, dd-mm-yyyy) dates."""
    if not value or not value.strip():
        return None
    text = value.strip()
    for pattern, fmt in DATE_FORMATS:
        match = pattern.match(text)
        if match:
            try:
                return datetime.strptime(match.group(0), fmt).date()
            except ValueError:
                return None
    return None


def parse_time(value: str) -> Optional[tuple[int, int, int]]:
    """Pull ``HH:MM[:SS]`` out of a time or datetime cell."""
    match = TIME_PATTERN.search(value or "")
    if not match:
        return None
    hour, minute, second = int(match.group(1)), int(match.group(2)), int(match.group(3) or 0)
    if hour > 23 or minute > 59 or second > 59:
        return None
    return hour, minute, second


def _epoch_ms(value: str) -> Optional[int]:
    number = parse_number(value)
    if number is None:
        return None
    # Values below 1e11 are epoch seconds
    return int(number * 1000) if abs(number) < 1e11 else int(number)


def _row_id(row: dict[str, str]) -> str:
    digest = hashlib.sha1("|".join(f"{k}={v}" for k, v in sorted(row.items())).encode("utf-8"))
    return f"csv-{digest.hexdigest()[:16]}"


# ==================== Conversion ====================

def convert_rows(
    rows: Sequence[dict[str, str]],
    mappings: Sequence[ColumnMapping],
    convention: Optional[TimeConvention] = None,
    today: Optional[date] = None,
) -> ImportResult:
    """Convert parsed rows to validated trades.

    Args:
        rows: Row dicts from ``parse_csv``.
        mappings: Header mappings from ``detect_column_mappings``.
        convention: Time zone used to build timestamps from date and time.
        today: Date for rows without a date column. Defaults to today in
            the convention's zone.

    Returns:
        ImportResult with the trades, per-cell errors and skipped row count.
    """
    convention = convention or TimeConvention()
    today = today or convention.today()
    lookup = {m.target: m.source for m in mappings if m.target}
    trades: list[Trade] = []
    errors: list[ImportValidationError] = []
    skipped = 0

    for index, row in enumerate(rows):
        line = index + 2

        def value(field: str) -> str:
            source = lookup.get(field)
            return row.get(source, "") if source else ""

        def fail(column: str, message: str) -> None:
            errors.append(ImportValidationError(
                row=line, column=column, value=value(column), message=message
            ))

        pair = re.sub(r"[^A-Z0-9]", "", value("pair").upper())
        direction = parse_direction(value("direction"))
        entry = parse_number(value("entry"))
        pnl = parse_number(value("pnl"))

        if not pair:
            fail("pair", "Missing pair/symbol")
        if direction is None:
            fail("direction", "Invalid direction (expected Long/Short)")
        if entry is None:
            fail("entry", "Invalid entry price")
        if pnl is None:
            fail("pnl", "Invalid P&L value")
        if not pair or direction is None or entry is None or pnl is None:
            skipped += 1
            continue

        ts = _epoch_ms(value("ts")) if value("ts") else None
        trade_date = parse_date(value("date"))
        if trade_date is None and ts is not None:
            try:
                trade_date = convention.localize(ts).date()
            except (OverflowError, OSError, ValueError):
                fail("ts", "Timestamp out of range")
                skipped += 1
                continue
        trade_date = trade_date or today
        if ts is None:
            clock = parse_time(value("time")) or parse_time(value("date")) or parse_time(DEFAULT_TIME)
            ts = convention.to_epoch_ms(datetime.combine(trade_date, datetime.min.time()).replace(
                hour=clock[0], minute=clock[1], second=clock[2]
            ))

        exit_price = parse_number(value("exit"))
        try:
            trade = Trade(
                id=value("id") or _row_id(row),
                pair=pair,
                direction=direction,
                entry=entry,
                exit=exit_price if exit_price is not None else entry,
                lots=parse_number(value("lots")) or DEFAULT_LOTS,
                pnl=pnl,
                date=trade_date,
                ts=ts,
                setup=value("setup") or DEFAULT_SETUP,
                mood=value("mood") or None,
                session_type=value("session_type") or None,
                violation_reason=value("violation_reason") or None,
                setup_quality=value("setup_quality").upper() or None,
                sl=parse_number(value("sl")),
                tp=parse_number(value("tp")),
                notes=value("notes") or None,
                source="csv",
            )
        except ValidationError as e:
            for problem in e.errors():
                column = str(problem["loc"][0]) if problem["loc"] else "row"
                fail(column, problem["msg"])
            skipped += 1
            continue
        trades.append(trade)

    warnings = []
    if skipped:
        warnings.append(f"{skipped} rows skipped due to missing or invalid fields")
        logger.warning("CSV import skipped %d of %d rows", skipped, len(rows))
    if errors:
        warnings.append(f"{len(errors)} validation errors found")

    return ImportResult(trades=trades, errors=errors, warnings=warnings, skipped_rows=skipped)


def import_csv(
    content: str,
    convention: Optional[TimeConvention] = None,
    today: Optional[date] = None,
) -> ImportResult:
    """Parse, map and convert a CSV export in one step."""
    headers, rows = parse_csv(content)
    if not headers:
        return ImportResult(warnings=["File is empty"])

    mappings = detect_column_mappings(headers)
    missing = [f for f in REQUIRED_FIELDS if f not in {m.target for m in mappings}]
    if missing:
        logger.debug("CSV headers %s lack columns for %s", headers, missing)

    result = convert_rows(rows, mappings, convention, today)
    logger.debug("Imported %d trades from %d rows", len(result.trades), len(rows))
    return result
