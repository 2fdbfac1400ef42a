import io
import logging
from datetime import date, datetime

from flask import Blueprint, jsonify, request, redirect, url_for, flash, send_file, current_app

from utils.auth import login_required, current_session
from utils.api_client import get_api_client
from reports.aggregation import ActiveFilter, apply_filter
from reports.dashboard import load_dashboard_data, build_view
from reports.export import build_export, NoDataToExport

logger = logging.getLogger(__name__)

report_bp = Blueprint('report', __name__)

BASE_COLLECTIONS = ['crops', 'activities', 'expenses']


@report_bp.route('/dashboard/export')
@login_required
def export_data():
    """Download the filtered expenses and/or activities as a file"""
    dataset = request.args.get('dataset', 'all')
    fmt = request.args.get('format', 'csv')
    active_filter = ActiveFilter.from_args(request.args)

    data = load_dashboard_data(get_api_client(), parts=BASE_COLLECTIONS)
    expenses, activities = apply_filter(active_filter, data.expenses, data.activities)

    try:
        export = build_export(dataset, fmt, expenses, activities)
    except NoDataToExport as e:
        flash(f'ℹ️ {e.message}', 'info')
        return redirect(url_for('dashboard.dashboard', **active_filter.to_args()))
    except ValueError as e:
        flash(f'❌ {e}', 'error')
        return redirect(url_for('dashboard.dashboard', **active_filter.to_args()))
    except Exception:
        logger.exception('Export of %s as %s failed', dataset, fmt)
        flash('❌ Failed to generate the export file. Please try again.', 'error')
        return redirect(url_for('dashboard.dashboard', **active_filter.to_args()))

    return send_file(
        io.BytesIO(export.data),
        mimetype=export.mimetype,
        as_attachment=True,
        download_name=export.filename,
    )


@report_bp.route('/api/report/summary', methods=['GET'])
@login_required
def report_summary():
    """Dashboard figures as JSON for the charts"""
    today = date.today()
    active_filter = ActiveFilter.from_args(request.args, today)
    try:
        year = int(request.args.get('year', today.year))
    except ValueError:
        year = today.year

    data = load_dashboard_data(get_api_client(), today=today,
                               upcoming_days=current_app.config.get('UPCOMING_DAYS', 7))
    view = build_view(data, active_filter, year=year,
                      budget=current_session().get_budget(), today=today)

    return jsonify({
        'success': True,
        'data': {
            'stats': view.stats,
            'filter': active_filter.to_args(),
            'filtered': view.filtered_summary,
            'charts': view.charts,
            'monthly': view.monthly,
            'budget': view.budget,
            'upcoming': data.upcoming_activities,
            'generated_at': datetime.now().strftime('%Y-%m-%d %H:%M:%S'),
        }
    })
