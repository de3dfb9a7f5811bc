import os

from dotenv import load_dotenv

load_dotenv()

BASE_DIR = os.path.dirname(os.path.abspath(__file__))

# Database configuration
DATABASE_PATH = os.environ.get('DB_PATH', os.path.join(BASE_DIR, 'data', 'csat.db'))

# Question catalog (hot reloaded when the file changes)
QUESTIONS_PATH = os.environ.get('QUESTIONS_PATH', os.path.join(BASE_DIR, 'data', 'questions.json'))

# Upload configuration
UPLOAD_FOLDER = os.environ.get('UPLOAD_FOLDER', os.path.join(BASE_DIR, 'uploads'))
ALLOWED_EXTENSIONS = {'pdf', 'png', 'jpg', 'jpeg', 'doc', 'docx', 'xls', 'xlsx', 'csv', 'txt'}
CATALOG_EXTENSIONS = {'xlsx', 'xls'}
MAX_FILE_SIZE = 10 * 1024 * 1024  # 10MB
MAX_FILENAME_LENGTH = 140

# HTTP
APP_ORIGIN = os.environ.get('APP_ORIGIN', 'http://localhost:5173')
PORT = int(os.environ.get('PORT', '4000'))
LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO').upper()
LIST_LIMIT = int(os.environ.get('LIST_LIMIT', '500'))

# Secrets
SECRET_KEY = os.environ.get('SECRET_KEY', 'csat_secret_key_change_in_production')
JWT_SECRET = os.environ.get('JWT_SECRET', 'dev-secret-change-me')
JWT_ALGORITHM = 'HS256'
JWT_EXPIRY_DAYS = int(os.environ.get('JWT_EXPIRY_DAYS', '7'))

# Static admin credentials
ADMIN_EMAIL = os.environ.get('ADMIN_EMAIL', 'admin@example.com')
ADMIN_PASSWORD = os.environ.get('ADMIN_PASSWORD', 'change-me')

# Submission gate: "otp" or "header"
VERIFICATION_MODE = os.environ.get('VERIFICATION_MODE', 'otp').lower()
OTP_TTL_MINUTES = int(os.environ.get('OTP_TTL_MINUTES', '10'))
OTP_MAX_PER_HOUR = int(os.environ.get('OTP_MAX_PER_HOUR', '5'))
OTP_MAX_ATTEMPTS = int(os.environ.get('OTP_MAX_ATTEMPTS', '6'))

# Mail
SMTP_HOST = os.environ.get('SMTP_HOST', '')
SMTP_PORT = int(os.environ.get('SMTP_PORT', '587'))
SMTP_USER = os.environ.get('SMTP_USER', '')
SMTP_PASS = os.environ.get('SMTP_PASS', '')
SMTP_SECURE = os.environ.get('SMTP_SECURE', 'false').lower() in ('true', '1', 'yes')
SMTP_TIMEOUT = 60
SMTP_FROM = os.environ.get('SMTP_FROM', 'CSAT Survey <no-reply@example.com>')
APP_NAME = os.environ.get('APP_NAME', 'CSAT Survey')
NOTIFY_EMAIL = os.environ.get('NOTIFY_EMAIL', '')

# Survey sections
SECTIONS = ('ONBOARD', 'ASHORE')

# Required headers for a catalog Excel upload
CATALOG_HEADERS = ['code', 'text', 'section', 'servicearea']

# Dashboard buckets on the overall percent
DISTRIBUTION_BUCKETS = [
    ('Low', 40),
    ('Acceptable', 70),
    ('High', None),
]
