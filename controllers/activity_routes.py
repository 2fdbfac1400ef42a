import logging

from flask import Blueprint, render_template, request, redirect, url_for, flash

from utils.auth import login_required
from utils.api_client import get_api_client, ApiError
from utils.config import ACTIVITY_TYPES
from utils.forms import activity_from_form, activity_to_form, FormValidationError
from controllers.crop_routes import find_by_id

logger = logging.getLogger(__name__)

activity_bp = Blueprint('activity', __name__)


def load_activity_data(client):
    """Activities plus the crops offered in the owning-crop selector"""
    try:
        return client.list_activities(), client.list_crops(), None
    except ApiError as e:
        logger.warning('Failed to fetch activities: %s', e)
        return [], [], 'Failed to fetch data'


def render_activity_screen(activities, crops, error=None, form=None, editing=None,
                           mode='idle', confirm_delete=None, status=200):
    return render_template('activities.html',
                           activities=activities,
                           crops=crops,
                           activity_types=ACTIVITY_TYPES,
                           mode=mode,
                           form=form or {},
                           editing=editing,
                           confirm_delete=confirm_delete,
                           error=error), status


@activity_bp.route('/activities')
@login_required
def activity_list():
    activities, crops, error = load_activity_data(get_api_client())

    if request.args.get('add'):
        return render_activity_screen(activities, crops, error, form={'cropId': 0}, mode='editing')

    edit_id = request.args.get('edit')
    if edit_id:
        activity = find_by_id(activities, edit_id)
        if activity is None:
            flash('Activity not found', 'error')
            return redirect(url_for('activity.activity_list'))
        return render_activity_screen(activities, crops, error, form=activity_to_form(activity),
                                      editing=activity, mode='editing')

    delete_id = request.args.get('delete')
    confirm_delete = find_by_id(activities, delete_id) if delete_id else None
    return render_activity_screen(activities, crops, error, confirm_delete=confirm_delete)


@activity_bp.route('/activities', methods=['POST'])
@activity_bp.route('/activities/<int:activity_id>', methods=['POST'])
@login_required
def save_activity(activity_id=None):
    """Create an activity, or update one when an id is in the URL"""
    client = get_api_client()
    editing = {'id': activity_id} if activity_id else None

    try:
        payload = activity_from_form(request.form)
        if activity_id:
            client.update_activity(activity_id, payload)
            flash('Activity updated successfully!', 'success')
        else:
            client.create_activity(payload)
            flash('Activity added successfully!', 'success')
    except FormValidationError as e:
        activities, crops, _ = load_activity_data(client)
        return render_activity_screen(activities, crops, '; '.join(e.errors.values()),
                                      form=request.form, editing=editing, mode='editing', status=400)
    except ApiError as e:
        logger.warning('Saving activity failed: %s', e)
        activities, crops, _ = load_activity_data(client)
        return render_activity_screen(activities, crops, e.message or 'Operation failed',
                                      form=request.form, editing=editing, mode='editing', status=400)

    return redirect(url_for('activity.activity_list'))


@activity_bp.route('/activities/<int:activity_id>/delete', methods=['POST'])
@login_required
def delete_activity(activity_id):
    if request.form.get('confirm') != 'yes':
        flash('Please confirm that you want to delete this activity.', 'warning')
        return redirect(url_for('activity.activity_list', delete=activity_id))

    try:
        get_api_client().delete_activity(activity_id)
        flash('Activity deleted successfully!', 'success')
    except ApiError as e:
        logger.warning('Deleting activity %s failed: %s', activity_id, e)
        flash('Failed to delete activity', 'error')

    return redirect(url_for('activity.activity_list'))
