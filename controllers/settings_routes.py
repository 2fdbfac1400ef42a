from flask import Blueprint, render_template, request, redirect, url_for, flash

from utils.auth import login_required, current_session
from utils.config import DEFAULT_SETTINGS, CURRENCY_SYMBOLS
from utils.forms import to_float

settings_bp = Blueprint('settings', __name__)

LANGUAGES = {'en': 'English', 'hi': 'हिन्दी', 'ta': 'தமிழ்'}
DATE_FORMATS = ['DD/MM/YYYY', 'MM/DD/YYYY', 'YYYY-MM-DD']
TIMEZONES = ['Asia/Kolkata', 'UTC', 'America/New_York', 'Europe/London']

TOGGLES = [name for name, default in DEFAULT_SETTINGS.items() if isinstance(default, bool)]
CHOICES = {
    'language': list(LANGUAGES),
    'currency': list(CURRENCY_SYMBOLS),
    'date_format': DATE_FORMATS,
    'timezone': TIMEZONES,
}


def settings_from_form(form):
    """Checkboxes absent from the form are off; unknown choices are dropped"""
    settings = {name: form.get(name) in ('on', 'true', '1') for name in TOGGLES}
    for name, allowed in CHOICES.items():
        value = form.get(name)
        if value in allowed:
            settings[name] = value
    return settings


@settings_bp.route('/settings', methods=['GET', 'POST'])
@login_required
def settings():
    store = current_session()

    if request.method == 'POST':
        store.save_settings(settings_from_form(request.form))
        if 'monthly_budget' in request.form:
            store.set_budget(max(to_float(request.form.get('monthly_budget')), 0.0))
        flash('✅ Settings saved successfully!', 'success')
        return redirect(url_for('settings.settings'))

    return render_template('settings.html',
                           settings=store.get_settings(),
                           budget=store.get_budget(),
                           user=store.get_user_info(),
                           toggles=TOGGLES,
                           languages=LANGUAGES,
                           currencies=CURRENCY_SYMBOLS,
                           date_formats=DATE_FORMATS,
                           timezones=TIMEZONES)


@settings_bp.route('/settings/reset', methods=['POST'])
@login_required
def reset_settings():
    current_session().save_settings(DEFAULT_SETTINGS)
    flash('Settings restored to defaults.', 'info')
    return redirect(url_for('settings.settings'))
