"""
Derived figures for the dashboard.

Everything here is a pure function of the collections already fetched from
the farm backend. Nothing is cached: callers recompute whenever a collection
or the active filter changes, and every filter returns a new list in the
original order.
"""

import calendar
from dataclasses import dataclass, replace
from datetime import date, timedelta

import pandas as pd

DATE_RANGES = ('week', 'month', 'year', 'custom')
DEFAULT_DATE_RANGE = 'month'


def _iso(value):
    if value is None:
        return ''
    if isinstance(value, date):
        return value.isoformat()
    return str(value)


def _amount(value):
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0.0
    return float(value)


def resolve_date_range(date_range, start='', end='', today=None):
    """Turn a date range preset into (start, end) ISO strings.

    Presets count back from today; 'custom' hands the supplied bounds back
    untouched.
    """
    today = today or date.today()
    if date_range == 'week':
        begin = today - timedelta(days=7)
    elif date_range == 'month':
        begin = (pd.Timestamp(today) - pd.DateOffset(months=1)).date()
    elif date_range == 'year':
        begin = (pd.Timestamp(today) - pd.DateOffset(years=1)).date()
    else:
        return start or '', end or ''
    return begin.isoformat(), today.isoformat()


@dataclass(frozen=True)
class ActiveFilter:
    date_range: str = 'custom'
    start: str = ''
    end: str = ''
    category: str = ''
    crop: str = ''
    activity_type: str = ''

    @classmethod
    def from_args(cls, args, today=None):
        """Build the filter from query parameters, resolving presets"""
        date_range = args.get('range') or DEFAULT_DATE_RANGE
        if date_range not in DATE_RANGES:
            date_range = DEFAULT_DATE_RANGE
        start, end = resolve_date_range(
            date_range,
            (args.get('start') or '').strip(),
            (args.get('end') or '').strip(),
            today,
        )
        return cls(
            date_range=date_range,
            start=start,
            end=end,
            category=(args.get('category') or '').strip(),
            crop=(args.get('crop') or '').strip(),
            activity_type=(args.get('type') or '').strip(),
        )

    def cleared(self):
        return ActiveFilter()

    def with_changes(self, **changes):
        return replace(self, **changes)

    def is_empty(self):
        return not any([self.start, self.end, self.category, self.crop, self.activity_type])

    def to_args(self):
        """Query parameters that reproduce this filter"""
        args = {'range': self.date_range}
        if self.date_range == 'custom':
            args.update({'start': self.start, 'end': self.end})
        for key, value in (('category', self.category), ('crop', self.crop),
                           ('type', self.activity_type)):
            if value:
                args[key] = value
        return args


def _within(value, start, end):
    value = _iso(value)
    if start and not (value and value >= start):
        return False
    if end and not (value and value <= end):
        return False
    return True


def filter_expenses(expenses, start='', end='', category=''):
    """Expenses dated within [start, end] and matching the category"""
    return [
        e for e in expenses
        if _within(e.get('expenseDate'), start, end)
        and (not category or e.get('category') == category)
    ]


def filter_activities(activities, start='', end='', crop='', activity_type=''):
    """Activities dated within [start, end] for the given crop name and type"""
    return [
        a for a in activities
        if _within(a.get('date'), start, end)
        and (not crop or (a.get('crop') or {}).get('name') == crop)
        and (not activity_type or a.get('type') == activity_type)
    ]


def apply_filter(active_filter, expenses, activities):
    return (
        filter_expenses(expenses, active_filter.start, active_filter.end,
                        active_filter.category),
        filter_activities(activities, active_filter.start, active_filter.end,
                          active_filter.crop, active_filter.activity_type),
    )


def total_area(crops):
    return sum(_amount(c.get('area')) for c in crops)


def total_amount(expenses):
    return sum(_amount(e.get('amount')) for e in expenses)


def is_active_crop(crop, today=None):
    """A crop stays active until its harvest date has passed"""
    harvest = crop.get('harvestDate')
    if not harvest:
        return True
    return _iso(harvest)[:10] > (today or date.today()).isoformat()


def count_active_crops(crops, today=None):
    return sum(1 for c in crops if is_active_crop(c, today))


def sum_by_category(expenses):
    totals = {}
    for expense in expenses:
        category = expense.get('category') or 'Uncategorized'
        totals[category] = totals.get(category, 0.0) + _amount(expense.get('amount'))
    return totals


def count_by_type(activities):
    counts = {}
    for activity in activities:
        key = activity.get('type') or 'Other'
        counts[key] = counts.get(key, 0) + 1
    return counts


def count_by_crop(activities):
    counts = {}
    for activity in activities:
        name = (activity.get('crop') or {}).get('name')
        if name:
            counts[name] = counts.get(name, 0) + 1
    return counts


def report_series(mapping):
    """name -> value mapping as chart series points"""
    return [{'name': name, 'value': value} for name, value in (mapping or {}).items()]


def monthly_series(crops, expenses, year):
    """Per-month expense sums and crops planted or harvested during `year`"""
    months = []
    for month in range(1, 13):
        prefix = f'{year}-{month:02d}'
        month_expenses = [e for e in expenses if _iso(e.get('expenseDate')).startswith(prefix)]
        month_crops = [
            c for c in crops
            if _iso(c.get('plantingDate')).startswith(prefix)
            or _iso(c.get('harvestDate')).startswith(prefix)
        ]
        months.append({
            'month': calendar.month_abbr[month],
            'expenses': total_amount(month_expenses),
            'crops': len(month_crops),
        })
    return months


def current_month_bounds(today=None):
    """First and last day of this month, both inclusive"""
    today = today or date.today()
    last_day = calendar.monthrange(today.year, today.month)[1]
    return today.replace(day=1), today.replace(day=last_day)


def budget_exceeded(budget, monthly_total):
    return budget > 0 and monthly_total > budget


def budget_status(budget, monthly_total):
    budget = _amount(budget)
    monthly_total = _amount(monthly_total)
    return {
        'budget': budget,
        'spent': monthly_total,
        'exceeded': budget_exceeded(budget, monthly_total),
        'remaining': budget - monthly_total if budget > 0 else None,
        'percent_used': round(monthly_total / budget * 100, 1) if budget > 0 else None,
    }


def cost_per_area(expense_total, area):
    """Average spend per unit of planted area, 0 when nothing is planted"""
    return expense_total / area if area > 0 else 0.0


def dashboard_stats(crops, activities, expenses, today=None):
    area = total_area(crops)
    spent = total_amount(expenses)
    return {
        'total_crops': len(crops),
        'active_crops': count_active_crops(crops, today),
        'total_activities': len(activities),
        'total_expenses': len(expenses),
        'total_area': area,
        'total_expense_amount': spent,
        'cost_per_area': cost_per_area(spent, area),
    }
