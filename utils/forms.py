import math
from datetime import datetime


class FormValidationError(Exception):
    """Raised before submission when required form fields are missing"""

    def __init__(self, errors):
        self.errors = errors
        super().__init__('; '.join(errors.values()))


def to_float(value):
    """Coerce form input to a number, falling back to zero"""
    try:
        number = float(str(value).strip())
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(number) or math.isinf(number):
        return 0.0
    return number


def to_int(value):
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return 0


def _text(form, name):
    return (form.get(name) or '').strip()


def _check_required(form, labels):
    errors = {}
    for name, label in labels.items():
        if not _text(form, name):
            errors[name] = f'{label} is required'
    return errors


def _check_dates(form, names, errors):
    for name in names:
        value = _text(form, name)
        if not value or name in errors:
            continue
        try:
            datetime.strptime(value, '%Y-%m-%d')
        except ValueError:
            errors[name] = 'Please enter a valid date (YYYY-MM-DD)'


def crop_from_form(form):
    """Build a crop payload from submitted form data"""
    errors = _check_required(form, {
        'name': 'Crop name',
        'variety': 'Variety',
        'area': 'Area',
        'plantingDate': 'Planting date',
    })
    _check_dates(form, ['plantingDate', 'harvestDate'], errors)
    if errors:
        raise FormValidationError(errors)

    return {
        'name': _text(form, 'name'),
        'variety': _text(form, 'variety'),
        'area': to_float(form.get('area')),
        'plantingDate': _text(form, 'plantingDate'),
        'harvestDate': _text(form, 'harvestDate') or None,
        'notes': _text(form, 'notes'),
    }


def activity_from_form(form):
    """Build an activity payload; a crop reference of 0 means no crop"""
    errors = _check_required(form, {
        'type': 'Activity type',
        'description': 'Description',
        'date': 'Date',
    })
    _check_dates(form, ['date'], errors)
    if errors:
        raise FormValidationError(errors)

    crop_id = to_int(form.get('cropId'))
    return {
        'type': _text(form, 'type'),
        'description': _text(form, 'description'),
        'date': _text(form, 'date'),
        'cropId': crop_id,
        'crop': {'id': crop_id} if crop_id else None,
    }


def expense_from_form(form):
    errors = _check_required(form, {
        'expenseTitle': 'Title',
        'amount': 'Amount',
        'category': 'Category',
        'expenseDate': 'Date',
    })
    _check_dates(form, ['expenseDate'], errors)
    if errors:
        raise FormValidationError(errors)

    return {
        'expenseTitle': _text(form, 'expenseTitle'),
        'amount': to_float(form.get('amount')),
        'category': _text(form, 'category'),
        'expenseDate': _text(form, 'expenseDate'),
        'description': _text(form, 'description'),
    }


def crop_to_form(crop):
    return {
        'name': crop.get('name', ''),
        'variety': crop.get('variety', ''),
        'area': crop.get('area', 0),
        'plantingDate': crop.get('plantingDate', ''),
        'harvestDate': crop.get('harvestDate') or '',
        'notes': crop.get('notes') or '',
    }


def activity_to_form(activity):
    crop = activity.get('crop') or {}
    return {
        'type': activity.get('type') or '',
        'description': activity.get('description') or '',
        'date': activity.get('date') or '',
        'cropId': crop.get('id') or activity.get('cropId') or 0,
    }


def expense_to_form(expense):
    return {
        'expenseTitle': expense.get('expenseTitle', ''),
        'amount': expense.get('amount', 0),
        'category': expense.get('category', ''),
        'expenseDate': expense.get('expenseDate', ''),
        'description': expense.get('description') or '',
    }
