# core/exports.py
"""
Tabular exports of commission calculations.

Values stay raw (no currency or date formatting); presentation is left to
whoever opens the file.
"""
import logging
from datetime import datetime, timezone
from io import BytesIO
from pathlib import Path
from typing import Optional, Sequence

import pandas as pd

from backend.models.commission_schemas import CommissionCalculation

logger = logging.getLogger(__name__)

CALCULATION_COLUMNS = [
    "id", "repId", "repName", "repEmail", "planId", "planName",
    "salesAmount", "commissionAmount", "calculationDate",
]
DATE_COLUMNS = ("calculationDate",)
DETAIL_COLUMNS = [
    "calculationId", "repId", "planId", "criteriaId", "criteriaName", "amount",
]


def calculations_to_frame(calculations: Sequence[CommissionCalculation]) -> pd.DataFrame:
    """One row per calculation, camelCase columns, details left out."""
    rows = [
        calc.model_dump(by_alias=True, exclude={"details"})
        for calc in calculations
    ]
    return pd.DataFrame(rows, columns=CALCULATION_COLUMNS)


def details_to_frame(calculations: Sequence[CommissionCalculation]) -> pd.DataFrame:
    """One row per (calculation, criterion) breakdown entry."""
    rows = [
        {
            "calculationId": calc.id,
            "repId": calc.rep_id,
            "planId": calc.plan_id,
            "criteriaId": detail.criteria_id,
            "criteriaName": detail.criteria_name,
            "amount": detail.amount,
        }
        for calc in calculations
        for detail in calc.details
    ]
    return pd.DataFrame(rows, columns=DETAIL_COLUMNS)


def _naive_utc(value):
    if isinstance(value, datetime) and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def _strip_timezones(df: pd.DataFrame) -> pd.DataFrame:
    # Excel cannot store tz-aware datetimes. Mixed offsets (or naive next to
    # aware values) leave an object column, so convert value by value.
    for col in DATE_COLUMNS:
        df[col] = df[col].map(_naive_utc)
    return df


def to_csv(calculations: Sequence[CommissionCalculation], outpath: Optional[Path] = None) -> str:
    """Write calculations as CSV; returns the CSV text."""
    csv_text = calculations_to_frame(calculations).to_csv(index=False)
    if outpath:
        outpath = Path(outpath)
        outpath.parent.mkdir(parents=True, exist_ok=True)
        outpath.write_text(csv_text, encoding="utf-8")
        logger.info("Calculations CSV written to %s", outpath)
    return csv_text


def to_excel(
    calculations: Sequence[CommissionCalculation],
    outpath: Optional[Path] = None,
    calculations_sheet: str = "Calculations",
    details_sheet: str = "Details",
) -> bytes:
    """
    Write calculations and their breakdown to a two-sheet workbook.

    Returns:
        bytes of the Excel workbook
    """
    buffer = BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        _strip_timezones(calculations_to_frame(calculations)).to_excel(
            writer, sheet_name=calculations_sheet, index=False
        )
        details_to_frame(calculations).to_excel(writer, sheet_name=details_sheet, index=False)

        # Keep amounts as plain two-decimal numbers
        for sheet_name, amount_headers in (
            (calculations_sheet, ("salesAmount", "commissionAmount")),
            (details_sheet, ("amount",)),
        ):
            ws = writer.sheets[sheet_name]
            header_row = next(ws.rows)
            for i, cell in enumerate(header_row):
                if cell.value not in amount_headers:
                    continue
                for row in ws.iter_rows(min_row=2, min_col=i + 1, max_col=i + 1):
                    for amount_cell in row:
                        amount_cell.number_format = "0.00"

    workbook_bytes = buffer.getvalue()

    if outpath:
        outpath = Path(outpath)
        outpath.parent.mkdir(parents=True, exist_ok=True)
        outpath.write_bytes(workbook_bytes)
        logger.info("Calculations workbook written to %s", outpath)

    return workbook_bytes
