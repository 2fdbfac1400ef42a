import logging
from datetime import date

from flask import Blueprint, render_template, request, redirect, url_for, flash, current_app

from utils.auth import login_required, current_session
from utils.api_client import get_api_client
from utils.config import ACTIVITY_TYPES, EXPENSE_CATEGORIES
from utils.forms import to_float
from reports.aggregation import ActiveFilter, DATE_RANGES
from reports.dashboard import load_dashboard_data, build_view, crop_names
from reports.export import EXPORT_DATASETS, EXPORT_FORMATS

logger = logging.getLogger(__name__)

dashboard_bp = Blueprint('dashboard', __name__)


def observed_year(value, today=None):
    """Year shown in the monthly chart, ?year= or the current one"""
    today = today or date.today()
    try:
        year = int(value)
    except (TypeError, ValueError):
        return today.year
    return year if 1900 <= year <= 9999 else today.year


@dashboard_bp.route('/dashboard')
@login_required
def dashboard():
    today = date.today()
    store = current_session()

    if request.args.get('clear'):
        active_filter = ActiveFilter.from_args({}, today).cleared()
    else:
        active_filter = ActiveFilter.from_args(request.args, today)

    logger.debug('Dashboard filter: %s', active_filter)
    data = load_dashboard_data(get_api_client(), today=today,
                               upcoming_days=current_app.config.get('UPCOMING_DAYS', 7))
    view = build_view(data, active_filter,
                      year=observed_year(request.args.get('year'), today),
                      budget=store.get_budget(),
                      today=today)

    if view.budget['exceeded']:
        flash(f"⚠️ Monthly budget exceeded! Spent {view.budget['spent']:.2f} "
              f"of {view.budget['budget']:.2f} this month.", 'warning')

    return render_template('dashboard.html',
                           view=view,
                           user=store.get_user_info(),
                           crop_names=crop_names(data.crops),
                           activity_types=ACTIVITY_TYPES,
                           expense_categories=EXPENSE_CATEGORIES,
                           date_ranges=DATE_RANGES,
                           export_datasets=list(EXPORT_DATASETS),
                           export_formats=list(EXPORT_FORMATS),
                           filter_args=active_filter.to_args())


@dashboard_bp.route('/dashboard/budget', methods=['POST'])
@login_required
def set_budget():
    amount = max(to_float(request.form.get('monthly_budget')), 0.0)
    current_session().set_budget(amount)
    if amount:
        flash(f'✅ Monthly budget set to {amount:.2f}', 'success')
    else:
        flash('Monthly budget cleared.', 'info')
    return redirect(url_for('dashboard.dashboard'))
