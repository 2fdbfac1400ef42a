from datetime import datetime
from dotenv import load_dotenv

# Load environment variables FIRST before any other imports
load_dotenv()

import logging

from flask import Flask, redirect, url_for, flash, request

from controllers.auth_routes import auth_bp
from controllers.dashboard_routes import dashboard_bp
from controllers.crop_routes import crop_bp
from controllers.activity_routes import activity_bp
from controllers.expense_routes import expense_bp
from controllers.report_routes import report_bp
from controllers.settings_routes import settings_bp
from utils.api_client import ApiError, SessionExpired
from utils.auth import current_session
from utils.config import Config, CURRENCY_SYMBOLS
from utils.logging_setup import configure_logging

logger = logging.getLogger(__name__)


def create_app(config=None):
    app = Flask(__name__)
    app.config.from_object(Config)
    if config:
        app.config.update(config)

    configure_logging(app.config.get('LOG_LEVEL', 'INFO'))

    # Register blueprints
    app.register_blueprint(auth_bp)
    app.register_blueprint(dashboard_bp)
    app.register_blueprint(crop_bp)
    app.register_blueprint(activity_bp)
    app.register_blueprint(expense_bp)
    app.register_blueprint(report_bp)
    app.register_blueprint(settings_bp)

    @app.errorhandler(SessionExpired)
    def handle_session_expired(e):
        current_session().clear()
        flash(f'🔒 {e.message}', 'warning')
        return redirect(url_for('auth.login'))

    @app.errorhandler(ApiError)
    def handle_api_error(e):
        logger.warning('Unhandled API error on %s: %s', request.path, e)
        flash(f'❌ {e.message}', 'error')
        return redirect(url_for('dashboard.dashboard'))

    # Global context processor for date, user info and currency
    @app.context_processor
    def inject_globals():
        store = current_session()
        settings = store.get_settings()
        return {
            'current_date': datetime.now().strftime('%Y-%m-%d'),
            'user_logged_in': store.is_authenticated(),
            'user_info': store.get_user_info(),
            'currency_symbol': CURRENCY_SYMBOLS.get(settings['currency'], settings['currency']),
            'user_settings': settings,
        }

    @app.route('/')
    def index():
        if current_session().is_authenticated():
            return redirect(url_for('dashboard.dashboard'))
        return redirect(url_for('auth.login'))

    logger.info('Farm records frontend ready, backend at %s', app.config['FARM_API_URL'])
    return app


app = create_app()


# Vercel serverless function handler
def handler(request):
    return app(request)


if __name__ == '__main__':
    app.run(debug=True)
