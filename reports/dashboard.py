"""
Dashboard data loading and view assembly.

load_dashboard_data() fans the backend fetches out over a thread pool and
joins them. Each fetch falls back to an empty result on its own failure so
one broken endpoint never blanks the whole dashboard; an expired session is
the exception and escalates after cancelling whatever has not started yet.

build_view() is pure: it takes the fetched data plus the active filter and
returns a fresh DashboardView. A filter change always means a new view, the
previous one is never patched.
"""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from datetime import date

from utils.api_client import ApiError, SessionExpired
from reports import aggregation

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DashboardData:
    crops: list = field(default_factory=list)
    activities: list = field(default_factory=list)
    expenses: list = field(default_factory=list)
    expense_by_category: dict = field(default_factory=dict)
    activities_by_crop: dict = field(default_factory=dict)
    activities_by_type: dict = field(default_factory=dict)
    upcoming_activities: list = field(default_factory=list)
    monthly_expense_total: float = 0.0


@dataclass(frozen=True)
class DashboardView:
    data: DashboardData
    active_filter: aggregation.ActiveFilter
    year: int
    filtered_expenses: list
    filtered_activities: list
    stats: dict
    filtered_summary: dict
    monthly: list
    charts: dict
    budget: dict


def _guarded(label, fetch, default):
    try:
        return fetch()
    except ApiError as e:
        logger.warning('Dashboard %s unavailable: %s', label, e)
        return default


def load_dashboard_data(client, today=None, upcoming_days=7, parts=None):
    """Fetch the dashboard collections and reports concurrently.

    `parts` limits the fetch to a subset of DashboardData fields, the export
    route only needs the base collections.
    """
    today = today or date.today()
    month_start, month_end = aggregation.current_month_bounds(today)

    fetches = {
        'crops': (client.list_crops, []),
        'activities': (client.list_activities, []),
        'expenses': (client.list_expenses, []),
        'expense_by_category': (client.expenses_by_category, {}),
        'activities_by_crop': (client.activities_by_crop, {}),
        'activities_by_type': (client.activities_by_type, {}),
        'upcoming_activities': (lambda: client.upcoming_activities(upcoming_days), []),
        'monthly_expense_total': (
            lambda: client.expense_total_in_range(month_start.isoformat(), month_end.isoformat()),
            0.0,
        ),
    }
    if parts is not None:
        fetches = {name: fetches[name] for name in parts}

    results = {}
    with ThreadPoolExecutor(max_workers=len(fetches) or 1) as pool:
        futures = {
            pool.submit(_guarded, name, fetch, default): name
            for name, (fetch, default) in fetches.items()
        }
        try:
            for future in as_completed(futures):
                results[futures[future]] = future.result()
        except SessionExpired:
            for future in futures:
                future.cancel()
            raise

    return DashboardData(**results)


def build_view(data, active_filter, year=None, budget=0.0, today=None):
    today = today or date.today()
    year = year or today.year

    filtered_expenses, filtered_activities = aggregation.apply_filter(
        active_filter, data.expenses, data.activities)

    stats = aggregation.dashboard_stats(data.crops, data.activities, data.expenses, today)
    filtered_summary = {
        'expense_count': len(filtered_expenses),
        'expense_total': aggregation.total_amount(filtered_expenses),
        'activity_count': len(filtered_activities),
        'by_category': aggregation.sum_by_category(filtered_expenses),
        'by_type': aggregation.count_by_type(filtered_activities),
        'by_crop': aggregation.count_by_crop(filtered_activities),
    }
    charts = {
        'expense_by_category': aggregation.report_series(data.expense_by_category),
        'activities_by_crop': aggregation.report_series(data.activities_by_crop),
        'activities_by_type': aggregation.report_series(data.activities_by_type),
    }

    return DashboardView(
        data=data,
        active_filter=active_filter,
        year=year,
        filtered_expenses=filtered_expenses,
        filtered_activities=filtered_activities,
        stats=stats,
        filtered_summary=filtered_summary,
        monthly=aggregation.monthly_series(data.crops, data.expenses, year),
        charts=charts,
        budget=aggregation.budget_status(budget, data.monthly_expense_total),
    )


def crop_names(crops):
    """Distinct crop names in first-seen order, for the crop filter"""
    names = []
    for crop in crops:
        name = crop.get('name')
        if name and name not in names:
            names.append(name)
    return names
