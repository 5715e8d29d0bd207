from pathlib import Path

from environs import Env

env = Env()
env.read_env(recurse=False)

BASE_DIR = Path(__file__).resolve().parent.parent.parent

SECRET_KEY = env.str('SECRET_KEY', 'django-insecure-7w!q3c#x0r^k2m9z@b4e1u8s6v$y5t_n+h(j)p=d&g%a-l*f')

ALLOWED_HOSTS = env.list('ALLOWED_HOSTS', [])

INSTALLED_APPS = [
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',
    'inventory',
]

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
]

ROOT_URLCONF = 'core.urls'

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

WSGI_APPLICATION = 'core.wsgi.application'

AUTH_PASSWORD_VALIDATORS = [
    {'NAME': 'django.contrib.auth.password_validation.UserAttributeSimilarityValidator'},
    {'NAME': 'django.contrib.auth.password_validation.MinimumLengthValidator'},
    {'NAME': 'django.contrib.auth.password_validation.CommonPasswordValidator'},
    {'NAME': 'django.contrib.auth.password_validation.NumericPasswordValidator'},
]

LANGUAGE_CODE = 'en-us'
TIME_ZONE = 'UTC'
USE_I18N = True
USE_TZ = True

STATIC_URL = 'static/'

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

LOG_LEVEL = env.str('LOG_LEVEL', 'INFO')

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'verbose': {
            'format': '%(asctime)s %(levelname)s %(name)s: %(message)s',
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
        'inventory': {
            'handlers': ['console'],
            'level': LOG_LEVEL,
            'propagate': False,
        },
    },
}

# Celery
CELERY_BROKER_URL = env.str('CELERY_BROKER_URL', 'redis://localhost:6379/0')
CELERY_RESULT_BACKEND = CELERY_BROKER_URL
SYNC_SCHEDULE_SECONDS = env.int('SYNC_SCHEDULE_SECONDS', 900)
CELERY_BEAT_SCHEDULE = {
    'sync-inventory': {
        'task': 'inventory.tasks.sync_inventory',
        'schedule': SYNC_SCHEDULE_SECONDS,
    },
}

# Shared secret for the scheduled trigger endpoint
CRON_SECRET = env.str('CRON_SECRET', '')

# Reconciliation: 'overwrite' pushes warehouse stock as-is,
# 'sales_delta' subtracts marketplace sales since the last run first.
SYNC_POLICY = env.str('SYNC_POLICY', 'overwrite')
SYNC_LOCK_TIMEOUT = env.int('SYNC_LOCK_TIMEOUT', 900)

MARKETPLACE_HTTP_TIMEOUT = env.float('MARKETPLACE_HTTP_TIMEOUT', 30.0)

# Amazon Selling Partner API
AMAZON_TOKEN_URL = env.str('AMAZON_TOKEN_URL', 'https://api.amazon.com/auth/o2/token')
AMAZON_API_BASE_URL = env.str('AMAZON_API_BASE_URL', 'https://sellingpartnerapi-na.amazon.com')
AMAZON_CLIENT_ID = env.str('AMAZON_CLIENT_ID', '')
AMAZON_CLIENT_SECRET = env.str('AMAZON_CLIENT_SECRET', '')
AMAZON_REFRESH_TOKEN = env.str('AMAZON_REFRESH_TOKEN', '')
AMAZON_MARKETPLACE_ID = env.str('AMAZON_MARKETPLACE_ID', 'A1AM78C64UM0Y8')
AMAZON_GRANULARITY_ID = env.str('AMAZON_GRANULARITY_ID', 'ATVPDKIKX0DER')
AMAZON_LOCATION_ID = env.str('AMAZON_LOCATION_ID', 'DEFAULT')

# Mercado Libre
ML_API_BASE_URL = env.str('ML_API_BASE_URL', 'https://api.mercadolibre.com')
ML_AUTH_BASE_URL = env.str('ML_AUTH_BASE_URL', 'https://auth.mercadolibre.com.mx')
ML_CLIENT_ID = env.str('ML_CLIENT_ID', '')
ML_CLIENT_SECRET = env.str('ML_CLIENT_SECRET', '')
ML_REFRESH_TOKEN = env.str('ML_REFRESH_TOKEN', '')
ML_REDIRECT_URI = env.str('ML_REDIRECT_URI', 'http://localhost:8000/api/ml-callback/')

# Sync providers, swappable via env or dev.py/prod.py
SYNC_SOURCE_CLASS = env.str('SYNC_SOURCE_CLASS', 'inventory.sources.db_source.DatabaseProductSource')
SYNC_AMAZON_CLIENT_CLASS = env.str('SYNC_AMAZON_CLIENT_CLASS', 'inventory.clients.amazon_client.AmazonClient')
SYNC_ML_CLIENT_CLASS = env.str('SYNC_ML_CLIENT_CLASS', 'inventory.clients.mercadolibre_client.MercadoLibreClient')
