"""
Dashboard TUI

Architectural Intent:
- Textual-based GM dashboard rendering sales, labor and guest satisfaction
- Polls the fetch use case on a timer and on manual refresh (r key)
- Severity-tagged activity log; error banner with retry hint on failure

Refresh Model:
- Each refresh runs as a worker; overlapping refreshes are allowed and the
  last one to finish replaces the displayed snapshot
- Panels whose slice is None show "No data available"
"""

from __future__ import annotations
from datetime import datetime
from typing import Optional

from textual.app import App, ComposeResult
from textual.containers import Vertical
from textual.widgets import DataTable, Footer, Header, Log, Static

from gmdash.application.use_cases.fetch_dashboard import FetchDashboard
from gmdash.domain.value_objects.comparison import ComparisonMetric
from gmdash.domain.value_objects.labor import LaborSummary
from gmdash.domain.value_objects.satisfaction import SatisfactionSnapshot
from gmdash.domain.value_objects.snapshot import DashboardSnapshot, SalesComparison
from gmdash.presentation.formatting import (
    format_compact,
    format_currency,
    format_date,
    format_number,
    format_percent,
)

NO_DATA = "No data available"

SALES_COLUMNS = ("Metric", "This Season", "Last Season", "Change", "Change %")
LABOR_COLUMNS = ("Division", "Labor", "Hours", "Revenue", "% of Revenue")
SATISFACTION_COLUMNS = ("Measure", "Yesterday", "Last Year", "Change")


def _comparison_rows(label: str, metric: Optional[ComparisonMetric]) -> list[tuple[str, ...]]:
    if metric is None:
        return [(label, NO_DATA, "", "", "")]
    current, last = metric.current_season, metric.last_season
    revenue, quantity = metric.revenue_comparison, metric.quantity_comparison
    return [
        (
            f"{label} revenue",
            format_currency(current.revenue),
            format_currency(last.revenue),
            format_currency(revenue.absolute_change),
            format_percent(revenue.percent_change),
        ),
        (
            f"{label} quantity",
            format_number(current.quantity),
            format_number(last.quantity),
            format_number(quantity.absolute_change),
            format_percent(quantity.percent_change),
        ),
    ]


def sales_rows(sales: Optional[SalesComparison]) -> list[tuple[str, ...]]:
    sales = sales or SalesComparison()
    return _comparison_rows("Tickets", sales.ticket_sales) + _comparison_rows(
        "Season passes", sales.season_pass_sales
    )


def labor_rows(labor: Optional[LaborSummary]) -> list[tuple[str, ...]]:
    if labor is None:
        return [(NO_DATA, "", "", "", "")]
    rows = [
        (
            d.division,
            format_currency(d.total_labor),
            format_number(d.total_hours),
            format_currency(d.revenue),
            format_percent(d.percent_of_revenue, 2).lstrip("+"),
        )
        for d in labor.ranked()
    ]
    rows.append((
        "Total",
        format_currency(labor.total_labor),
        format_number(labor.total_hours),
        format_currency(labor.total_revenue),
        format_percent(labor.percent_of_revenue, 2).lstrip("+"),
    ))
    return rows


def satisfaction_rows(satisfaction: Optional[SatisfactionSnapshot]) -> list[tuple[str, ...]]:
    if satisfaction is None:
        return [(NO_DATA, "", "", "")]
    s = satisfaction
    return [
        (
            "Resort NPS",
            format_number(s.yesterday_score, 1),
            format_number(s.last_year_yesterday_score, 1),
            f"{format_number(s.score_difference, 1)} ({format_percent(s.percent_change)})",
        ),
        (
            "Compset NPS",
            format_number(s.yesterday_compset, 1),
            format_number(s.last_year_yesterday_compset, 1),
            format_number(s.yesterday_compset - s.last_year_yesterday_compset, 1),
        ),
        (
            "Date",
            format_date(s.yesterday_date, "medium"),
            format_date(s.last_year_yesterday_date, "medium"),
            "",
        ),
    ]


def headline(snapshot: DashboardSnapshot) -> str:
    passes = snapshot.sales.season_pass_sales
    parts = [f"Last updated: {snapshot.fetched_at.astimezone().strftime('%H:%M:%S')}"]
    if passes is not None:
        parts.append(f"Pass revenue {format_compact(passes.current_season.revenue, '$')}")
    if snapshot.labor is not None:
        parts.append(f"Labor {format_percent(snapshot.labor.percent_of_revenue).lstrip('+')} of revenue")
    return "  |  ".join(parts)


class Dashboard(App):
    """General Manager dashboard: resort performance overview."""

    TITLE = "General Manager Dashboard"
    SUB_TITLE = "Resort Performance Overview"

    CSS = """
    Screen {
        layout: vertical;
    }
    #status {
        height: 1;
        padding: 0 1;
    }
    #status.error {
        color: red;
    }
    DataTable {
        height: auto;
        border: solid green;
    }
    Log {
        height: 1fr;
        border: solid yellow;
    }
    """

    BINDINGS = [
        ("q", "quit", "Quit"),
        ("r", "refresh", "Refresh Data"),
    ]

    def __init__(self, fetch_dashboard: FetchDashboard, refresh_interval: float = 300.0):
        super().__init__()
        self.fetch_dashboard = fetch_dashboard
        self.refresh_interval = refresh_interval
        self.snapshot: Optional[DashboardSnapshot] = None
        self.error: Optional[str] = None

    def compose(self) -> ComposeResult:
        yield Header()
        yield Static("Loading...", id="status", markup=False)
        yield Vertical(
            DataTable(id="sales_table"),
            DataTable(id="labor_table"),
            DataTable(id="satisfaction_table"),
            Log(id="activity_log"),
        )
        yield Footer()

    def on_mount(self) -> None:
        self.query_one("#sales_table", DataTable).add_columns(*SALES_COLUMNS)
        self.query_one("#labor_table", DataTable).add_columns(*LABOR_COLUMNS)
        self.query_one("#satisfaction_table", DataTable).add_columns(*SATISFACTION_COLUMNS)
        self.log_message(f"Refresh interval: {self.refresh_interval:g}s (r to refresh now)")
        self.set_interval(self.refresh_interval, self.action_refresh)
        self.action_refresh()

    def log_message(self, message: str, severity: str = "info") -> None:
        timestamp = datetime.now().strftime("%H:%M:%S")
        self.query_one(Log).write_line(f"[{timestamp}] [{severity.upper()}] {message}")

    def action_refresh(self) -> None:
        self.run_worker(self.load_snapshot(), group="refresh")

    async def load_snapshot(self) -> None:
        status = self.query_one("#status", Static)
        status.update("Refreshing...")
        try:
            snapshot = await self.fetch_dashboard.fetch_all_data()
        except Exception as e:
            self.error = str(e) or type(e).__name__
            status.add_class("error")
            status.update(f"Error Loading Data: {self.error} (press r to try again)")
            self.log_message(f"Refresh failed: {self.error}", severity="error")
            return

        self.error = None
        self.snapshot = snapshot
        status.remove_class("error")
        status.update(headline(snapshot))
        self.render_snapshot(snapshot)
        self.log_message("Dashboard data refreshed.")

    def render_snapshot(self, snapshot: DashboardSnapshot) -> None:
        for table_id, rows in (
            ("#sales_table", sales_rows(snapshot.sales)),
            ("#labor_table", labor_rows(snapshot.labor)),
            ("#satisfaction_table", satisfaction_rows(snapshot.satisfaction)),
        ):
            table = self.query_one(table_id, DataTable)
            table.clear()
            for row in rows:
                table.add_row(*row)
