import logging
from datetime import date, datetime

from flask import Blueprint, render_template, request, redirect, url_for, flash

from utils.auth import login_required
from utils.api_client import get_api_client, ApiError
from utils.config import EXPENSE_CATEGORIES
from utils.forms import expense_from_form, expense_to_form, FormValidationError
from controllers.crop_routes import find_by_id
from reports.aggregation import total_amount

logger = logging.getLogger(__name__)

expense_bp = Blueprint('expense', __name__)


def load_expenses(client):
    try:
        return client.list_expenses(), None
    except ApiError as e:
        logger.warning('Failed to fetch expenses: %s', e)
        return [], 'Failed to fetch expenses'


def selected_month(value, today=None):
    """Parse a YYYY-MM month selector, defaulting to the current month"""
    try:
        return datetime.strptime(value or '', '%Y-%m').strftime('%Y-%m')
    except ValueError:
        return (today or date.today()).strftime('%Y-%m')


def expense_summary(expenses, month):
    """Overall total, the selected month's total and per-category totals"""
    month_expenses = [e for e in expenses if str(e.get('expenseDate') or '').startswith(month)]
    return {
        'total': total_amount(expenses),
        'month': month,
        'month_total': total_amount(month_expenses),
        'by_category': [
            {'category': category,
             'total': total_amount([e for e in expenses if e.get('category') == category])}
            for category in EXPENSE_CATEGORIES
        ],
    }


def render_expense_screen(expenses, error=None, form=None, editing=None, mode='idle',
                          confirm_delete=None, status=200):
    month = selected_month(request.args.get('month'))
    return render_template('expenses.html',
                           expenses=expenses,
                           summary=expense_summary(expenses, month),
                           categories=EXPENSE_CATEGORIES,
                           mode=mode,
                           form=form or {},
                           editing=editing,
                           confirm_delete=confirm_delete,
                           error=error), status


@expense_bp.route('/expenses')
@login_required
def expense_list():
    expenses, error = load_expenses(get_api_client())

    if request.args.get('add'):
        return render_expense_screen(expenses, error,
                                     form={'amount': 0, 'expenseDate': date.today().isoformat()},
                                     mode='editing')

    edit_id = request.args.get('edit')
    if edit_id:
        expense = find_by_id(expenses, edit_id)
        if expense is None:
            flash('Expense not found', 'error')
            return redirect(url_for('expense.expense_list'))
        return render_expense_screen(expenses, error, form=expense_to_form(expense),
                                     editing=expense, mode='editing')

    delete_id = request.args.get('delete')
    confirm_delete = find_by_id(expenses, delete_id) if delete_id else None
    return render_expense_screen(expenses, error, confirm_delete=confirm_delete)


@expense_bp.route('/expenses', methods=['POST'])
@expense_bp.route('/expenses/<int:expense_id>', methods=['POST'])
@login_required
def save_expense(expense_id=None):
    client = get_api_client()
    editing = {'id': expense_id} if expense_id else None

    try:
        payload = expense_from_form(request.form)
        if expense_id:
            client.update_expense(expense_id, payload)
            flash('Expense updated successfully!', 'success')
        else:
            client.create_expense(payload)
            flash('Expense added successfully!', 'success')
    except FormValidationError as e:
        expenses, _ = load_expenses(client)
        return render_expense_screen(expenses, '; '.join(e.errors.values()), form=request.form,
                                     editing=editing, mode='editing', status=400)
    except ApiError as e:
        logger.warning('Saving expense failed: %s', e)
        expenses, _ = load_expenses(client)
        return render_expense_screen(expenses, e.message or 'Operation failed', form=request.form,
                                     editing=editing, mode='editing', status=400)

    return redirect(url_for('expense.expense_list'))


@expense_bp.route('/expenses/<int:expense_id>/delete', methods=['POST'])
@login_required
def delete_expense(expense_id):
    if request.form.get('confirm') != 'yes':
        flash('Please confirm that you want to delete this expense.', 'warning')
        return redirect(url_for('expense.expense_list', delete=expense_id))

    try:
        get_api_client().delete_expense(expense_id)
        flash('Expense deleted successfully!', 'success')
    except ApiError as e:
        logger.warning('Deleting expense %s failed: %s', expense_id, e)
        flash('Failed to delete expense', 'error')

    return redirect(url_for('expense.expense_list'))
