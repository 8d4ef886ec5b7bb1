# core/ingestion.py
"""
CSV ingestion: turns an uploaded sales export into SalesData records.

Row normalization:
  - repId / repName / repEmail default to ""
  - businessLine outside the known lines falls back to the default line
  - amount that does not parse becomes 0; negative amounts are clamped to 0
  - date that does not parse becomes None
  - every other column is carried in extra_fields
Row problems are logged and defaulted, never raised.
"""
import logging
import math
import os
from io import BytesIO, StringIO
from pathlib import Path
from typing import Any, BinaryIO, Callable, Dict, Iterable, List, Optional, TextIO, Union

import pandas as pd

from backend.core.commission_engine import default_id_factory
from backend.core.errors import IngestionError
from backend.models.commission_schemas import BusinessLine, SalesData

logger = logging.getLogger(__name__)

CORE_COLUMNS = ("id", "repId", "repName", "repEmail", "businessLine", "amount", "date")

CsvSource = Union[str, Path, bytes, BinaryIO, TextIO]


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return isinstance(value, str) and not value.strip()


def normalize_business_line(value: Any, default: BusinessLine = BusinessLine.LINE1) -> BusinessLine:
    if _is_blank(value):
        return default
    try:
        return BusinessLine(str(value).strip().lower())
    except ValueError:
        logger.warning(f"Unrecognized business line {value!r}, using '{default.value}'")
        return default


def parse_amount(value: Any) -> float:
    if _is_blank(value):
        return 0.0
    try:
        amount = float(str(value).replace(",", "").strip())
    except ValueError:
        logger.warning(f"Unparseable amount {value!r}, using 0")
        return 0.0
    if math.isnan(amount) or math.isinf(amount):
        logger.warning(f"Non-finite amount {value!r}, using 0")
        return 0.0
    if amount < 0:
        logger.warning(f"Negative amount {value!r} clamped to 0")
        return 0.0
    return amount


def parse_date(value: Any):
    if _is_blank(value):
        return None
    parsed = pd.to_datetime(value, errors="coerce")
    if pd.isna(parsed):
        logger.warning(f"Unparseable date {value!r}")
        return None
    return parsed.to_pydatetime()


def _text(value: Any) -> str:
    return "" if _is_blank(value) else str(value).strip()


def records_to_sales(
    rows: Iterable[Dict[str, Any]],
    id_factory: Optional[Callable[[], str]] = None,
    default_business_line: BusinessLine = BusinessLine.LINE1,
) -> List[SalesData]:
    """Normalize raw row dicts (CSV header -> cell) into SalesData."""
    make_id = id_factory or default_id_factory
    sales: List[SalesData] = []

    for row in rows:
        extra = {
            key: (None if _is_blank(value) else value)
            for key, value in row.items()
            if key not in CORE_COLUMNS
        }
        sales.append(SalesData(
            id=_text(row.get("id")) or make_id(),
            rep_id=_text(row.get("repId")),
            rep_name=_text(row.get("repName")),
            rep_email=_text(row.get("repEmail")),
            business_line=normalize_business_line(row.get("businessLine"), default_business_line),
            amount=parse_amount(row.get("amount")),
            date=parse_date(row.get("date")),
            extra_fields=extra,
        ))

    return sales


def read_sales_frame(source: CsvSource) -> pd.DataFrame:
    """Read a CSV source into a string-typed DataFrame.

    A ``str`` is CSV text unless it names an existing file; pass a ``Path``
    to require a file.
    """
    if isinstance(source, bytes):
        source = BytesIO(source)
    elif isinstance(source, str) and not os.path.isfile(source):
        source = StringIO(source)

    try:
        df = pd.read_csv(source, dtype=str, keep_default_na=False, skip_blank_lines=True)
    except pd.errors.EmptyDataError:
        logger.warning("Sales CSV is empty")
        return pd.DataFrame()
    except (pd.errors.ParserError, UnicodeDecodeError, OSError) as e:
        logger.error(f"Error reading sales CSV: {e}")
        raise IngestionError(f"Error processing CSV data: {e}") from e

    df.columns = [str(col).strip() for col in df.columns]
    return df


def parse_sales_csv(
    source: CsvSource,
    id_factory: Optional[Callable[[], str]] = None,
    default_business_line: BusinessLine = BusinessLine.LINE1,
) -> List[SalesData]:
    """
    Parse a sales CSV (path, raw text, bytes or file object) into SalesData.

    Raises:
        IngestionError: the source cannot be read as CSV at all.
    """
    df = read_sales_frame(source)
    if df.empty:
        return []

    logger.info(f"📄 Loaded {len(df)} sales rows with columns: {df.columns.tolist()}")
    sales = records_to_sales(
        df.to_dict(orient="records"),
        id_factory=id_factory,
        default_business_line=default_business_line,
    )
    logger.info(f"✅ Parsed {len(sales)} sales records")
    return sales
