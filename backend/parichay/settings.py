"""
Django settings for the Parichay billing backend.

Values are read from the environment (optionally via a local ``.env`` file).
"""
import os
from pathlib import Path

from dotenv import load_dotenv

# Build paths inside the project like this: BASE_DIR / 'subdir'.
BASE_DIR = Path(__file__).resolve().parent.parent

load_dotenv(BASE_DIR / '.env')


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


SECRET_KEY = os.getenv('DJANGO_SECRET_KEY', 'django-insecure-parichay-dev-key')

DEBUG = _env_bool('DJANGO_DEBUG', False)

ALLOWED_HOSTS = [host for host in os.getenv('DJANGO_ALLOWED_HOSTS', 'localhost,127.0.0.1,testserver').split(',') if host]


# Application definition

INSTALLED_APPS = [
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',
    'rest_framework',
    'rest_framework.authtoken',
    'django_filters',
    'accounts',
    'billing',
    'brands',
]

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
    'billing.middleware.idempotency.BillingIdempotencyMiddleware',
]

ROOT_URLCONF = 'parichay.urls'

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

WSGI_APPLICATION = 'parichay.wsgi.application'


# Database
# PostgreSQL in every deployed environment; DB_ENGINE=sqlite is used by the test suite.

if os.getenv('DB_ENGINE', 'postgresql').lower() == 'sqlite':
    DATABASES = {
        'default': {
            'ENGINE': 'django.db.backends.sqlite3',
            'NAME': os.getenv('SQLITE_PATH', str(BASE_DIR / 'db.sqlite3')),
        }
    }
else:
    DATABASES = {
        'default': {
            'ENGINE': 'django.db.backends.postgresql',
            'NAME': os.getenv('POSTGRES_DB', 'parichay'),
            'USER': os.getenv('POSTGRES_USER', 'parichay'),
            'PASSWORD': os.getenv('POSTGRES_PASSWORD', ''),
            'HOST': os.getenv('POSTGRES_HOST', 'localhost'),
            'PORT': os.getenv('POSTGRES_PORT', '5432'),
            'CONN_MAX_AGE': int(os.getenv('POSTGRES_CONN_MAX_AGE', '60')),
        }
    }

AUTH_USER_MODEL = 'accounts.User'

AUTH_PASSWORD_VALIDATORS = [
    {'NAME': 'django.contrib.auth.password_validation.UserAttributeSimilarityValidator'},
    {'NAME': 'django.contrib.auth.password_validation.MinimumLengthValidator'},
    {'NAME': 'django.contrib.auth.password_validation.CommonPasswordValidator'},
    {'NAME': 'django.contrib.auth.password_validation.NumericPasswordValidator'},
]


# Internationalization

LANGUAGE_CODE = 'en-us'
TIME_ZONE = os.getenv('DJANGO_TIME_ZONE', 'Asia/Kolkata')
USE_I18N = True
USE_TZ = True

STATIC_URL = 'static/'
STATIC_ROOT = BASE_DIR / 'staticfiles'

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'


# Django REST framework

REST_FRAMEWORK = {
    'DEFAULT_AUTHENTICATION_CLASSES': [
        'accounts.authentication.BearerTokenAuthentication',
        'rest_framework.authentication.SessionAuthentication',
    ],
    'DEFAULT_PERMISSION_CLASSES': [
        'rest_framework.permissions.IsAuthenticated',
    ],
    'DEFAULT_FILTER_BACKENDS': [
        'django_filters.rest_framework.DjangoFilterBackend',
        'rest_framework.filters.OrderingFilter',
    ],
    'DEFAULT_PAGINATION_CLASS': 'billing.pagination.BoundedPageNumberPagination',
    'PAGE_SIZE': 20,
}


# Payment gateways

STRIPE_WEBHOOK_SECRET = os.getenv('STRIPE_WEBHOOK_SECRET', '')
STRIPE_WEBHOOK_TOLERANCE = int(os.getenv('STRIPE_WEBHOOK_TOLERANCE', '300'))

RAZORPAY_KEY_ID = os.getenv('RAZORPAY_KEY_ID', '')
RAZORPAY_KEY_SECRET = os.getenv('RAZORPAY_KEY_SECRET', '')
RAZORPAY_WEBHOOK_SECRET = os.getenv('RAZORPAY_WEBHOOK_SECRET', '')
RAZORPAY_API_BASE_URL = os.getenv('RAZORPAY_API_BASE_URL', 'https://api.razorpay.com/v1')
RAZORPAY_API_TIMEOUT_SECONDS = float(os.getenv('RAZORPAY_API_TIMEOUT_SECONDS', '10'))

MERCHANT_UPI_ID = os.getenv('MERCHANT_UPI_ID', 'parichay@upi')
MERCHANT_NAME = os.getenv('MERCHANT_NAME', 'Parichay')


# Billing behaviour

BILLING_CURRENCY = os.getenv('BILLING_CURRENCY', 'INR')
# When false, user-submitted UPI references are recorded but wait for an operator.
BILLING_UPI_AUTO_COMPLETE = _env_bool('BILLING_UPI_AUTO_COMPLETE', True)
BILLING_WEBHOOK_STATEMENT_TIMEOUT_MS = int(os.getenv('BILLING_WEBHOOK_STATEMENT_TIMEOUT_MS', '5000'))
BILLING_WEBHOOK_LOG_RETENTION_DAYS = int(os.getenv('BILLING_WEBHOOK_LOG_RETENTION_DAYS', '90'))

PLAN_CONFIG = {
    'basic': {
        'name': 'Basic',
        'price': '999.00',
        'billing_period': 'MONTHLY',
        'feature_flags': {
            'maxBranches': 3,
            'customDomain': False,
            'analytics': True,
            'qrCodes': True,
            'leadCapture': True,
            'templates': 5,
        },
    },
    'professional': {
        'name': 'Professional',
        'price': '1999.00',
        'billing_period': 'MONTHLY',
        'feature_flags': {
            'maxBranches': 10,
            'customDomain': True,
            'analytics': True,
            'qrCodes': True,
            'leadCapture': True,
            'templates': 15,
            'prioritySupport': True,
        },
    },
    'enterprise': {
        'name': 'Enterprise',
        'price': '4999.00',
        'billing_period': 'MONTHLY',
        'feature_flags': {
            'maxBranches': -1,
            'customDomain': True,
            'analytics': True,
            'qrCodes': True,
            'leadCapture': True,
            'templates': -1,
            'prioritySupport': True,
            'whiteLabel': True,
            'apiAccess': True,
        },
    },
}


# Celery

CELERY_BROKER_URL = os.getenv('CELERY_BROKER_URL', 'redis://localhost:6379/0')
CELERY_RESULT_BACKEND = os.getenv('CELERY_RESULT_BACKEND', 'redis://localhost:6379/1')
CELERY_TASK_ALWAYS_EAGER = _env_bool('CELERY_TASK_ALWAYS_EAGER', False)


# Logging

LOG_LEVEL = os.getenv('DJANGO_LOG_LEVEL', 'INFO')

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'verbose': {
            'format': '%(asctime)s %(levelname)s %(name)s %(process)d %(message)s',
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
        'level': LOG_LEVEL,
    },
    'loggers': {
        'django': {
            'handlers': ['console'],
            'level': os.getenv('DJANGO_FRAMEWORK_LOG_LEVEL', 'WARNING'),
            'propagate': False,
        },
        'billing': {
            'handlers': ['console'],
            'level': LOG_LEVEL,
            'propagate': False,
        },
    },
}
