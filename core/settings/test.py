from .base import *  # noqa: F401,F403

DEBUG = False

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': ':memory:',
    }
}

PASSWORD_HASHERS = ['django.contrib.auth.hashers.MD5PasswordHasher']

CELERY_TASK_ALWAYS_EAGER = True

CRON_SECRET = 'test-cron-secret'
SYNC_POLICY = 'overwrite'

AMAZON_CLIENT_ID = 'amzn-client'
AMAZON_CLIENT_SECRET = 'amzn-secret'
AMAZON_REFRESH_TOKEN = 'amzn-refresh'

ML_CLIENT_ID = 'ml-client'
ML_CLIENT_SECRET = 'ml-secret'
ML_REFRESH_TOKEN = 'ml-refresh'
ML_REDIRECT_URI = 'https://example.test/api/ml-callback/'
