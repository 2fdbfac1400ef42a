import logging
from datetime import date

from flask import Blueprint, render_template, request, redirect, url_for, flash

from utils.auth import login_required
from utils.api_client import get_api_client, ApiError
from utils.forms import crop_from_form, crop_to_form, FormValidationError
from reports.aggregation import total_area, count_active_crops, is_active_crop

logger = logging.getLogger(__name__)

crop_bp = Blueprint('crop', __name__)


def load_crops(client):
    """Fetch the crop list, falling back to an empty list with an error message"""
    try:
        return client.list_crops(), None
    except ApiError as e:
        logger.warning('Failed to fetch crops: %s', e)
        return [], 'Failed to fetch crops'


def find_by_id(items, item_id):
    return next((item for item in items if str(item.get('id')) == str(item_id)), None)


def render_crop_screen(crops, error=None, form=None, editing=None, mode='idle',
                       confirm_delete=None, status=200):
    today = date.today()
    rows = [dict(crop, is_active=is_active_crop(crop, today)) for crop in crops]
    return render_template('crops.html',
                           crops=rows,
                           total_area=total_area(crops),
                           active_crops=count_active_crops(crops, today),
                           mode=mode,
                           form=form or {},
                           editing=editing,
                           confirm_delete=confirm_delete,
                           error=error), status


@crop_bp.route('/crops')
@login_required
def crop_list():
    crops, error = load_crops(get_api_client())

    if request.args.get('add'):
        return render_crop_screen(crops, error, form={'area': 0}, mode='editing')

    edit_id = request.args.get('edit')
    if edit_id:
        crop = find_by_id(crops, edit_id)
        if crop is None:
            flash('Crop not found', 'error')
            return redirect(url_for('crop.crop_list'))
        return render_crop_screen(crops, error, form=crop_to_form(crop), editing=crop, mode='editing')

    confirm_delete = find_by_id(crops, request.args.get('delete')) if request.args.get('delete') else None
    return render_crop_screen(crops, error, confirm_delete=confirm_delete)


@crop_bp.route('/crops', methods=['POST'])
@crop_bp.route('/crops/<int:crop_id>', methods=['POST'])
@login_required
def save_crop(crop_id=None):
    """Create a crop, or update one when an id is in the URL"""
    client = get_api_client()
    editing = {'id': crop_id} if crop_id else None

    try:
        payload = crop_from_form(request.form)
        if crop_id:
            client.update_crop(crop_id, payload)
            flash('Crop updated successfully!', 'success')
        else:
            client.create_crop(payload)
            flash('Crop added successfully!', 'success')
    except FormValidationError as e:
        crops, _ = load_crops(client)
        return render_crop_screen(crops, '; '.join(e.errors.values()), form=request.form,
                                  editing=editing, mode='editing', status=400)
    except ApiError as e:
        logger.warning('Saving crop failed: %s', e)
        crops, _ = load_crops(client)
        return render_crop_screen(crops, e.message or 'Operation failed', form=request.form,
                                  editing=editing, mode='editing', status=400)

    return redirect(url_for('crop.crop_list'))


@crop_bp.route('/crops/<int:crop_id>/delete', methods=['POST'])
@login_required
def delete_crop(crop_id):
    if request.form.get('confirm') != 'yes':
        flash('Please confirm that you want to delete this crop.', 'warning')
        return redirect(url_for('crop.crop_list', delete=crop_id))

    try:
        get_api_client().delete_crop(crop_id)
        flash('Crop deleted successfully!', 'success')
    except ApiError as e:
        logger.warning('Deleting crop %s failed: %s', crop_id, e)
        flash('Failed to delete crop', 'error')

    return redirect(url_for('crop.crop_list'))
