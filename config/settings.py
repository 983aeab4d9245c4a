"""
Django settings for the Cabin Reservations project.

Deployment-specific values come from the environment; everything the
reservation engine reads lives in the RESERVATIONS dict at the bottom.
"""

import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent

SECRET_KEY = os.getenv('DJANGO_SECRET_KEY', 'dev-only-insecure-secret-key')
DEBUG = os.getenv('DJANGO_DEBUG', 'false').lower() == 'true'
ALLOWED_HOSTS = [h for h in os.getenv('DJANGO_ALLOWED_HOSTS', 'localhost,127.0.0.1').split(',') if h]


# =============================================================================
# APPLICATIONS
# =============================================================================

INSTALLED_APPS = [
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',
    'reservations',
]

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
]

ROOT_URLCONF = 'config.urls'
WSGI_APPLICATION = 'config.wsgi.application'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [],
        'APP_DIRS': True,
        'OPTIONS': {
            'context_processors': [
                'django.template.context_processors.request',
                'django.contrib.auth.context_processors.auth',
                'django.contrib.messages.context_processors.messages',
            ],
        },
    },
]


# =============================================================================
# DATABASE
# =============================================================================
# PostgreSQL when DB_NAME is set (row locks via SELECT ... FOR UPDATE),
# SQLite otherwise (local development and tests).

if os.getenv('DB_NAME'):
    DATABASES = {
        'default': {
            'ENGINE': 'django.db.backends.postgresql',
            'NAME': os.getenv('DB_NAME'),
            'USER': os.getenv('DB_USER', ''),
            'PASSWORD': os.getenv('DB_PASSWORD', ''),
            'HOST': os.getenv('DB_HOST', 'localhost'),
            'PORT': os.getenv('DB_PORT', '5432'),
        }
    }
else:
    DATABASES = {
        'default': {
            'ENGINE': 'django.db.backends.sqlite3',
            'NAME': BASE_DIR / 'db.sqlite3',
        }
    }
    # SQLite ignores nulls_distinct=False; PricingRule.full_clean() still enforces it
    SILENCED_SYSTEM_CHECKS = ['models.W047']

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'


# =============================================================================
# CACHE
# =============================================================================

CACHES = {
    'default': {
        'BACKEND': 'django.core.cache.backends.locmem.LocMemCache',
        'LOCATION': 'default',
    },
    'reservations-config': {
        'BACKEND': 'django.core.cache.backends.locmem.LocMemCache',
        'LOCATION': 'reservations-config',
        'TIMEOUT': None,
    },
}


# =============================================================================
# I18N / TIME
# =============================================================================

LANGUAGE_CODE = 'en-us'
TIME_ZONE = 'America/Los_Angeles'
USE_I18N = True
USE_TZ = True

STATIC_URL = 'static/'


# =============================================================================
# LOGGING
# =============================================================================

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'verbose': {
            'format': '{asctime} {levelname} {name} {message}',
            'style': '{',
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
        'level': 'WARNING',
    },
    'loggers': {
        'reservations': {
            'level': os.getenv('RESERVATIONS_LOG_LEVEL', 'INFO'),
        },
    },
}


# =============================================================================
# RESERVATION ENGINE
# =============================================================================
# Keys not set here fall back to reservations.conf.DEFAULTS.

RESERVATIONS = {
    'CURRENCY': 'USD',
    'PROPERTY_TIMEZONES': {
        'tahoe': 'America/Los_Angeles',
        'clear_lake': 'America/Los_Angeles',
    },
    'DEFAULT_MAX_NIGHTS': {
        'tahoe': 4,
        'clear_lake': 30,
    },
    'MODE_GUEST_LIMITS': {
        'tahoe': {
            'room': {'min': 1, 'max': None},
            'buyout': {'min': 1, 'max': 20},
        },
        'clear_lake': {
            'day': {'min': 1, 'max': 12},
            'buyout': {'min': 1, 'max': 40},
        },
    },
    'ALLOWED_BOOKING_MODES': {
        'tahoe': ['room', 'buyout'],
        'clear_lake': ['day', 'buyout'],
    },
    'DAY_USE_CAPACITY': {
        'clear_lake': 12,
    },
    'REQUIRE_FULL_WEEKEND': {
        'tahoe': True,
    },
    'ONE_ACTIVE_BOOKING_PER_USER': {
        'tahoe': True,
    },
    'LOCK_RETRIES': 3,
    'CACHE_ALIAS': 'reservations-config',
    'CACHE_MAX_AGE': 300,
}
