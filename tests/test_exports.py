"""Tests for CSV and Excel exports."""
from datetime import datetime, timedelta, timezone
from io import BytesIO, StringIO

import pandas as pd
import pytest

from backend.core.commission_engine import CommissionEngine
from backend.core.exports import (
    CALCULATION_COLUMNS,
    DETAIL_COLUMNS,
    calculations_to_frame,
    details_to_frame,
    to_csv,
    to_excel,
)


@pytest.fixture
def calculations(id_factory, clock, sale_factory, line1_plan, line2_plan):
    engine = CommissionEngine(id_factory=id_factory, clock=clock)
    sales = [sale_factory(150, "line1", sale_id="a"), sale_factory(1000, "line2", sale_id="b")]
    return engine.calculate_commissions(sales, [line1_plan, line2_plan])


class TestFrames:
    def test_calculation_rows(self, calculations):
        df = calculations_to_frame(calculations)
        assert list(df.columns) == CALCULATION_COLUMNS
        assert df["repId"].tolist() == ["rep-a", "rep-b"]
        assert df["commissionAmount"].tolist() == pytest.approx([90.0, 50.0])

    def test_detail_rows(self, calculations):
        df = details_to_frame(calculations)
        assert list(df.columns) == DETAIL_COLUMNS
        # three criteria on p1, one on p2
        assert len(df) == 4
        assert df["criteriaId"].tolist() == ["c1", "c2", "c3", "c4"]
        assert df["calculationId"].tolist() == ["id-1", "id-1", "id-1", "id-2"]

    def test_empty_input_keeps_headers(self):
        assert list(calculations_to_frame([]).columns) == CALCULATION_COLUMNS
        assert details_to_frame([]).empty


class TestCsvExport:
    def test_round_trips_through_pandas(self, calculations, tmp_path):
        outpath = tmp_path / "out" / "commissions.csv"
        text = to_csv(calculations, outpath)

        assert outpath.read_text(encoding="utf-8") == text
        df = pd.read_csv(StringIO(text))
        assert list(df.columns) == CALCULATION_COLUMNS
        assert df["planId"].tolist() == ["p1", "p2"]


class TestExcelExport:
    def test_writes_both_sheets(self, calculations):
        data = to_excel(calculations)

        book = pd.ExcelFile(BytesIO(data))
        assert book.sheet_names == ["Calculations", "Details"]

        summary = book.parse("Calculations")
        assert summary["commissionAmount"].tolist() == pytest.approx([90.0, 50.0])

        details = book.parse("Details")
        assert details["criteriaName"].tolist() == ["Base", "Flat bonus", "Band bonus", "Line 2 base"]

    def test_custom_sheet_names_and_file(self, calculations, tmp_path):
        outpath = tmp_path / "commissions.xlsx"
        to_excel(calculations, outpath, calculations_sheet="Totals", details_sheet="Breakdown")

        assert pd.ExcelFile(outpath).sheet_names == ["Totals", "Breakdown"]

    @pytest.mark.parametrize("dates", [
        [
            datetime(2024, 3, 31, 12, 0, tzinfo=timezone.utc),
            datetime(2024, 3, 31, 14, 0, tzinfo=timezone(timedelta(hours=2))),
        ],
        [
            datetime(2024, 3, 31, 12, 0),
            datetime(2024, 3, 31, 14, 0, tzinfo=timezone(timedelta(hours=2))),
        ],
    ])
    def test_mixed_offsets_are_written_as_utc(self, calculations, dates):
        mixed = [
            calc.model_copy(update={"calculation_date": date})
            for calc, date in zip(calculations, dates)
        ]

        summary = pd.ExcelFile(BytesIO(to_excel(mixed))).parse("Calculations")

        assert list(summary["calculationDate"]) == [pd.Timestamp("2024-03-31 12:00")] * 2
