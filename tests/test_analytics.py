"""Tests for production dashboard figures and CSV export."""

from datetime import date
from decimal import Decimal

from iamcfo.production.analytics import (
    ViewMode,
    calculate_kpis,
    client_distribution,
    daily_series,
    fallback_logs,
    filter_period,
    monthly_series,
    todays_production,
    week_bounds,
    weekly_production,
)
from iamcfo.production.export import CSV_HEADER, export_filename, format_number, to_csv, write_csv


def _logs(make_entry):
    return [
        make_entry("1", log_date=date(2025, 9, 26), tonnage="80", client="Panzarella"),
        make_entry("2", log_date=date(2025, 9, 24), tonnage="50", client="Metro Waste"),
        make_entry("3", log_date=date(2025, 8, 15), tonnage="40", client="Panzarella"),
        make_entry("4", log_date=date(2024, 12, 1), tonnage="10", client="Old Client"),
    ]


class TestKPIs:
    def test_monthly_kpis_and_growth(self, make_entry):
        kpis = calculate_kpis(_logs(make_entry), 2025, 9)

        assert kpis.total_tonnage == Decimal("130")
        assert kpis.total_revenue == Decimal("2600")
        assert kpis.avg_price_per_ton == Decimal("20")
        assert kpis.total_logs == 2
        # 2600 vs 800 in August
        assert kpis.monthly_growth == Decimal("225")

    def test_growth_is_zero_without_previous_revenue(self, make_entry):
        # Nothing was logged in July 2025
        assert calculate_kpis(_logs(make_entry), 2025, 8).monthly_growth == 0

    def test_january_compares_with_december(self, make_entry):
        logs = [
            make_entry("a", log_date=date(2025, 1, 5), tonnage="20"),
            make_entry("b", log_date=date(2024, 12, 5), tonnage="10"),
        ]
        assert calculate_kpis(logs, 2025, 1).monthly_growth == Decimal("100")

    def test_empty_period(self):
        kpis = calculate_kpis([], 2025, 9)

        assert kpis.total_logs == 0
        assert kpis.avg_price_per_ton == 0

    def test_yearly_filter(self, make_entry):
        selected = filter_period(_logs(make_entry), 2025, 9, ViewMode.YEARLY)
        assert {e.id for e in selected} == {"1", "2", "3"}


class TestSeries:
    def test_monthly_series_sorted_and_capped(self, make_entry):
        logs = [make_entry(str(m), log_date=date(2024, m, 1)) for m in range(1, 13)]
        logs.append(make_entry("13", log_date=date(2025, 1, 1)))

        series = monthly_series(logs)

        assert len(series) == 12
        assert series[0].label == "2024-02"
        assert series[-1].label == "2025-01"

    def test_daily_series_oldest_first(self, make_entry):
        points = daily_series(_logs(make_entry), 2025, 9)
        assert [p.label for p in points] == ["2025-09-24", "2025-09-26"]

    def test_client_distribution_top_five(self, make_entry):
        logs = [
            make_entry(str(i), client=f"Client {i}", tonnage=str(i + 1)) for i in range(7)
        ]

        top = client_distribution(logs, 2025, 9)

        assert len(top) == 5
        assert top[0] == ("Client 6", Decimal("140"))


class TestTodayAndWeek:
    def test_week_runs_monday_to_sunday(self):
        # 2025-09-28 is a Sunday
        assert week_bounds(date(2025, 9, 28)) == (date(2025, 9, 22), date(2025, 9, 28))

    def test_today_and_week_totals(self, make_entry):
        logs = _logs(make_entry)

        today = todays_production(logs, today=date(2025, 9, 26))
        week = weekly_production(logs, today=date(2025, 9, 26))

        assert today.tonnage == Decimal("80")
        assert week.tonnage == Decimal("130")
        assert week.revenue == Decimal("2600")


def test_fallback_logs_are_september_demo_rows():
    logs = fallback_logs()

    assert [e.client_name for e in logs] == [
        "Panzarella",
        "Metro Waste",
        "City Municipal",
        "Industrial Services",
    ]
    assert logs[0].file_name == "09.26.2025 - 80 Tons.jpg"
    assert all(e.processing_status == "Processed" for e in logs)


class TestExport:
    def test_number_formatting(self):
        assert format_number(Decimal("80.00")) == "80"
        assert format_number(Decimal("12.50")) == "12.5"
        assert format_number(Decimal("1600")) == "1600"

    def test_csv_rows(self, make_entry):
        entry = make_entry(
            tonnage="80.00",
            price="20.00",
            project_deliverable="MRF",
            processing_status="Processed",
            total_amount=Decimal("1600.00"),
        )

        assert to_csv([entry]).splitlines() == [
            CSV_HEADER,
            "2025-09-26,Panzarella,MRF,80,20,1600,Processed",
        ]

    def test_embedded_commas_are_not_quoted(self, make_entry):
        entry = make_entry(client="Smith, Inc")
        assert to_csv([entry]).splitlines()[1].startswith("2025-09-26,Smith, Inc,")

    def test_filename(self):
        assert export_filename(2025, 9) == "wastex-production-2025-09.csv"

    def test_write_csv(self, tmp_path, make_entry):
        path = write_csv([make_entry()], 2025, 9, tmp_path)

        assert path.name == "wastex-production-2025-09.csv"
        assert path.read_text().startswith(CSV_HEADER)
