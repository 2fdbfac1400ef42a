import os
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Farm backend REST API
FARM_API_URL = os.getenv('FARM_API_URL', 'http://localhost:8082/api')
API_TIMEOUT = float(os.getenv('API_TIMEOUT', 10))

SECRET_KEY = os.getenv('SECRET_KEY', 'farm_records_dev_secret_key')
LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')

# Dashboard look-ahead window for upcoming activities (days)
UPCOMING_DAYS = int(os.getenv('UPCOMING_DAYS', 7))

ACTIVITY_TYPES = [
    'Planting',
    'Fertilizing',
    'Irrigation',
    'Pest Control',
    'Harvesting',
    'Equipment Maintenance',
    'Soil Testing',
    'Weeding',
    'Pruning',
    'Other',
]

EXPENSE_CATEGORIES = [
    'Seeds & Plants',
    'Fertilizers',
    'Pesticides',
    'Equipment',
    'Labor',
    'Fuel',
    'Utilities',
    'Insurance',
    'Maintenance',
    'Other',
]

DEFAULT_SETTINGS = {
    'notifications': True,
    'auto_save': True,
    'dark_mode': False,
    'language': 'en',
    'currency': 'INR',
    'date_format': 'DD/MM/YYYY',
    'timezone': 'Asia/Kolkata',
    'email_notifications': False,
    'sms_notifications': False,
    'data_backup': True,
    'analytics_enabled': True,
}

CURRENCY_SYMBOLS = {
    'INR': '₹',
    'USD': '$',
    'EUR': '€',
    'GBP': '£',
}


class Config:
    """Flask configuration applied by create_app()"""
    SECRET_KEY = SECRET_KEY
    FARM_API_URL = FARM_API_URL
    API_TIMEOUT = API_TIMEOUT
    LOG_LEVEL = LOG_LEVEL
    UPCOMING_DAYS = UPCOMING_DAYS
    TESTING = False
