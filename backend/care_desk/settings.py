"""
Django settings for the Care Desk scheduling backend.

Uses PostgreSQL as the database and django-rest-framework for the API layer.
"""
import os
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()

BASE_DIR = Path(__file__).resolve().parent.parent

SECRET_KEY = os.environ.get('DJANGO_SECRET_KEY', 'dev-secret-key-change-in-production')

DEBUG = os.environ.get('DEBUG', 'True').lower() in ('true', '1', 'yes')

ALLOWED_HOSTS = os.environ.get('ALLOWED_HOSTS', 'localhost,127.0.0.1,testserver').split(',')

# Application definition
INSTALLED_APPS = [
    'django.contrib.contenttypes',
    'rest_framework',
    'corsheaders',
    'django_q',
    'app',
]

MIDDLEWARE = [
    'corsheaders.middleware.CorsMiddleware',
    'django.middleware.common.CommonMiddleware',
]

# Don't redirect to add trailing slashes; API clients send exact URLs
APPEND_SLASH = False

ROOT_URLCONF = 'care_desk.urls'

WSGI_APPLICATION = 'care_desk.wsgi.application'

# Database: PostgreSQL in production, SQLite for local dev
DB_ENGINE = os.environ.get('DB_ENGINE', 'django.db.backends.sqlite3')

if DB_ENGINE == 'django.db.backends.sqlite3':
    DATABASES = {
        'default': {
            'ENGINE': 'django.db.backends.sqlite3',
            'NAME': BASE_DIR / 'db.sqlite3',
        }
    }
else:
    DATABASES = {
        'default': {
            'ENGINE': DB_ENGINE,
            'NAME': os.environ.get('DB_NAME', 'care_desk'),
            'USER': os.environ.get('DB_USER', 'postgres'),
            'PASSWORD': os.environ.get('DB_PASSWORD', 'postgres'),
            'HOST': os.environ.get('DB_HOST', 'localhost'),
            'PORT': os.environ.get('DB_PORT', '5432'),
        }
    }

# CORS
CORS_ALLOW_ALL_ORIGINS = DEBUG
CORS_ALLOWED_ORIGINS = [
    'http://localhost:3000',
    'http://127.0.0.1:3000',
]

# DRF: the principal comes from the auth collaborator's headers (app.api.principal)
REST_FRAMEWORK = {
    'DEFAULT_RENDERER_CLASSES': [
        'rest_framework.renderers.JSONRenderer',
    ],
    'DEFAULT_PARSER_CLASSES': [
        'rest_framework.parsers.JSONParser',
    ],
    'DEFAULT_PAGINATION_CLASS': None,
    'UNAUTHENTICATED_USER': None,
    'DEFAULT_AUTHENTICATION_CLASSES': [],
    'DEFAULT_PERMISSION_CLASSES': [],
}

# Care scheduling policy
# "months": N monthly touchpoints after T+0; "fixed_days": one per day offset.
CARE_SCHEDULE_POLICY = os.environ.get('CARE_SCHEDULE_POLICY', 'months')
CARE_PERIODIC_MONTHS = int(os.environ.get('CARE_PERIODIC_MONTHS', '24'))
CARE_PERIODIC_DAY_OFFSETS = [
    int(offset)
    for offset in os.environ.get('CARE_PERIODIC_DAY_OFFSETS', '20,40,60,120,180,240').split(',')
    if offset.strip()
]
CARE_FIRST_LESSON_OFFSET_DAYS = int(os.environ.get('CARE_FIRST_LESSON_OFFSET_DAYS', '7'))

# Calendar used for overdue classification and for plain dates sent by clients
CARE_TIME_ZONE = os.environ.get('CARE_TIME_ZONE', 'UTC')

# Bounded retries for transient store failures on command paths
CARE_STORE_RETRY_ATTEMPTS = int(os.environ.get('CARE_STORE_RETRY_ATTEMPTS', '3'))
CARE_STORE_RETRY_DELAY_SECONDS = float(os.environ.get('CARE_STORE_RETRY_DELAY_SECONDS', '0.2'))

# Redelivery sweep only looks at recently created contracts
CARE_SWEEP_LOOKBACK_DAYS = int(os.environ.get('CARE_SWEEP_LOOKBACK_DAYS', '30'))

# django-q2: lightweight task queue using the ORM broker (no Redis needed)
Q_CLUSTER = {
    'name': 'care-desk',
    'workers': 2,
    'timeout': 120,
    'retry': 180,
    'max_attempts': 5,
    'orm': 'default',
    'bulk': 10,
    'catch_up': True,
}

# All datetimes are timezone-aware UTC (Django best practice)
USE_TZ = True
TIME_ZONE = 'UTC'

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'verbose': {
            'format': '%(asctime)s [%(levelname)s] %(name)s: %(message)s',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'verbose',
        },
    },
    'root': {
        'handlers': ['console'],
        'level': 'INFO',
    },
}
