from pathlib import Path
import os
import sys

import environ
import datetime
from django.core.exceptions import ImproperlyConfigured

BASE_DIR = Path(__file__).resolve().parent.parent

env = environ.Env(
    DEBUG=(bool, False),
)

# Optional local env file support (docker-compose already sets env vars).
environ.Env.read_env(os.path.join(BASE_DIR, ".env"))

DEBUG = env.bool("DEBUG", default=False)

# Management commands (migrate, send_queued_mail, ...) and the test suite run
# without the web runtime secrets.
_RUNNING_MANAGEMENT_COMMAND = (
    len(sys.argv) > 1 and Path(sys.argv[0]).name == "manage.py" and sys.argv[1] != "runserver"
)
_RUNNING_TESTS = "pytest" in sys.modules or (len(sys.argv) > 1 and sys.argv[1] == "test")
ENFORCE_RUNTIME_REQUIREMENTS = not DEBUG and not _RUNNING_MANAGEMENT_COMMAND and not _RUNNING_TESTS

SECRET_KEY = env(
    "SECRET_KEY",
    default="django-insecure-dev-only-change-me",
)
if ENFORCE_RUNTIME_REQUIREMENTS and SECRET_KEY.startswith("django-insecure-dev-only"):
    raise ImproperlyConfigured("SECRET_KEY must be set in production.")

_dev_allowed_hosts = ["localhost", "127.0.0.1", "[::1]", "testserver"]
ALLOWED_HOSTS = env.list(
    "ALLOWED_HOSTS",
    default=_dev_allowed_hosts if not ENFORCE_RUNTIME_REQUIREMENTS else [],
)
if ENFORCE_RUNTIME_REQUIREMENTS and not ALLOWED_HOSTS:
    raise ImproperlyConfigured("ALLOWED_HOSTS must be set in production.")

INSTALLED_APPS = [
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',
    'post_office',
    'django_ses',
    'marketplace',
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

ROOT_URLCONF = 'config.urls'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [],
        'APP_DIRS': True,
        'OPTIONS': {
            'context_processors': [
                'django.template.context_processors.debug',
                'django.template.context_processors.request',
                'django.contrib.auth.context_processors.auth',
                'django.contrib.messages.context_processors.messages',
            ],
        },
    },
]

WSGI_APPLICATION = 'config.wsgi.application'

# Database
# https://docs.djangoproject.com/en/5.0/ref/settings/#databases
DATABASES = {
    'default': {
        **env.db(
            'DATABASE_URL',
            default='sqlite:///' + str(BASE_DIR / 'db.sqlite3'),
        ),
    }
}

AUTH_USER_MODEL = 'marketplace.User'

# Role predicates are evaluated per object through the permission table; the
# model backend keeps password login and superuser handling.
AUTHENTICATION_BACKENDS = [
    'django.contrib.auth.backends.ModelBackend',
    'marketplace.backends.PermissionTableBackend',
]

SITE_NAME = env('SITE_NAME', default='Volunteer Marketplace')

# Email
# In DEBUG, docker-compose provides EMAIL_URL pointing to Mailhog.
EMAIL_CONFIG = env.email_url('EMAIL_URL', default=None)
if EMAIL_CONFIG:
    globals().update(EMAIL_CONFIG)

DEFAULT_FROM_EMAIL = env('DEFAULT_FROM_EMAIL', default='webmaster@localhost')

# Queue all Django mail through django-post_office.
EMAIL_BACKEND = 'post_office.EmailBackend'

# Configure post_office delivery backends.
# - DEBUG: deliver immediately via SMTP to Mailhog.
# - non-DEBUG: default delivery backend is AWS SES (django-ses); delivery still
#   requires running `python manage.py send_queued_mail`.
POST_OFFICE = {
    'DEFAULT_PRIORITY': 'now' if DEBUG else 'medium',
    'MESSAGE_ID_ENABLED': True,
    'MAX_RETRIES': 4,
    'RETRY_INTERVAL': datetime.timedelta(minutes=5),
    'BACKENDS': {
        'default': 'django.core.mail.backends.smtp.EmailBackend' if DEBUG else 'django_ses.SESBackend',
        'smtp': 'django.core.mail.backends.smtp.EmailBackend',
        'ses': 'django_ses.SESBackend',
    },
}

# django-ses (AWS SES)
# Used as the production delivery backend (see POST_OFFICE['BACKENDS']).
AWS_SES_REGION_NAME = env('AWS_SES_REGION_NAME', default='us-east-1')
AWS_SES_CONFIGURATION_SET = env('AWS_SES_CONFIGURATION_SET', default='') or None

NOTIFICATION_EMAIL_TEMPLATE_NAME = "marketplace-notification"
PENDING_REVIEWS_EMAIL_TEMPLATE_NAME = "marketplace-pending-reviews"

PUBLIC_BASE_URL = env('PUBLIC_BASE_URL', default='')

# Volunteer onboarding
# When enabled, new volunteer profiles skip the staff review queue.
AUTOMATICALLY_ACCEPT_VOLUNTEERS = env.bool('AUTOMATICALLY_ACCEPT_VOLUNTEERS', default=False)

# Volunteer profiles created before these counts get the early-user badge
# at the matching tier.
EARLY_USER_BADGE_THRESHOLDS = {
    'master': 100,
    'advanced': 500,
    'basic': 1000,
}

# Password validation
# https://docs.djangoproject.com/en/5.0/ref/settings/#auth-password-validators
AUTH_PASSWORD_VALIDATORS = [
    {
        'NAME': 'django.contrib.auth.password_validation.UserAttributeSimilarityValidator',
    },
    {
        'NAME': 'django.contrib.auth.password_validation.MinimumLengthValidator',
    },
    {
        'NAME': 'django.contrib.auth.password_validation.CommonPasswordValidator',
    },
    {
        'NAME': 'django.contrib.auth.password_validation.NumericPasswordValidator',
    },
]

# Internationalization
# https://docs.djangoproject.com/en/5.0/topics/i18n/
LANGUAGE_CODE = 'en-us'
TIME_ZONE = 'UTC'
USE_I18N = True
USE_TZ = True

# Security
# Keep these production-oriented but configurable; many deployments sit behind
# a TLS-terminating proxy/load balancer.
if not DEBUG:
    # If you're behind a reverse proxy that sets X-Forwarded-Proto.
    if env.bool("SECURE_PROXY_SSL", default=True):
        SECURE_PROXY_SSL_HEADER = ("HTTP_X_FORWARDED_PROTO", "https")

    SECURE_SSL_REDIRECT = env.bool("SECURE_SSL_REDIRECT", default=False)
    SESSION_COOKIE_SECURE = env.bool("SESSION_COOKIE_SECURE", default=True)
    CSRF_COOKIE_SECURE = env.bool("CSRF_COOKIE_SECURE", default=True)
    SECURE_CONTENT_TYPE_NOSNIFF = True
    SECURE_REFERRER_POLICY = env("SECURE_REFERRER_POLICY", default="same-origin")

    CSRF_TRUSTED_ORIGINS = env.list("CSRF_TRUSTED_ORIGINS", default=[])

# Static files (CSS, JavaScript, Images)
STATIC_URL = '/static/'

# Production collectstatic target.
STATIC_ROOT = BASE_DIR / "staticfiles"

# Default primary key field type
# https://docs.djangoproject.com/en/5.0/ref/settings/#default-auto-field
DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

# Caching
CACHES = {
    'default': {
        'BACKEND': 'django.core.cache.backends.locmem.LocMemCache',
        'LOCATION': 'unique-snowflake',
        'TIMEOUT': 300,
    }
}

# Logging
# Ensure app logs are visible in container stdout.
LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'filters': {
        'skip_healthz': {
            '()': 'marketplace.logging_filters.SkipHealthzFilter',
        },
    },
    'formatters': {
        'console': {
            'format': '[{asctime}] {levelname} {name}: {message}',
            'style': '{',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'console',
            'filters': ['skip_healthz'],
        },
    },
    'loggers': {
        # Our app
        'marketplace': {
            'handlers': ['console'],
            'level': 'DEBUG' if DEBUG else 'INFO',
            'propagate': False,
        },
        'post_office': {
            'handlers': ['console'],
            'level': 'INFO',
            'propagate': False,
        },
        # Django request errors still visible
        'django.request': {
            'handlers': ['console'],
            'level': 'WARNING',
            'propagate': False,
        },
        # Access logs from `runserver`.
        'django.server': {
            'handlers': ['console'],
            'level': 'INFO',
            'propagate': False,
        },
    },
}
