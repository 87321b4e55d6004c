"""
Development Settings (SQLite).

Verwendung:
    export DJANGO_SETTINGS_MODULE=renal_backend.settings_dev
    python manage.py migrate
    python manage.py seed
    python manage.py runserver

manage.py verwendet diese Settings als Default.
"""

from .settings import *

# ---------------------------------------------------------
# DEVELOPMENT SETTINGS (SQLITE)
# ---------------------------------------------------------

DEBUG = True

# Lokale Entwicklung: alle Hosts erlauben
ALLOWED_HOSTS = ['localhost', '127.0.0.1', '[::1]', 'testserver', '*']

# ---------------------------------------------------------
# DATABASES: SQLite für lokale Entwicklung
# ---------------------------------------------------------

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': BASE_DIR / 'dev.sqlite3',
        'OPTIONS': {
            'timeout': 20,
        },
    },
}

# ---------------------------------------------------------
# INSTALLED_APPS / MIDDLEWARE: CORS für lokale Entwicklung
# ---------------------------------------------------------

INSTALLED_APPS = INSTALLED_APPS + ['corsheaders']

MIDDLEWARE = [
    'corsheaders.middleware.CorsMiddleware',  # Muss vor CommonMiddleware stehen
] + MIDDLEWARE

# ---------------------------------------------------------
# REST FRAMEWORK: Browsable API
# ---------------------------------------------------------

REST_FRAMEWORK = {
    **REST_FRAMEWORK,
    'DEFAULT_AUTHENTICATION_CLASSES': (
        'rest_framework_simplejwt.authentication.JWTAuthentication',
        'rest_framework.authentication.SessionAuthentication',  # Für Browsable API
    ),
    'DEFAULT_RENDERER_CLASSES': (
        'rest_framework.renderers.JSONRenderer',
        'rest_framework.renderers.BrowsableAPIRenderer',
    ),
}

# ---------------------------------------------------------
# SIMPLE JWT: Token-Konfiguration
# ---------------------------------------------------------

SIMPLE_JWT = {
    **SIMPLE_JWT,
    'ACCESS_TOKEN_LIFETIME': timedelta(hours=2),  # Länger für DEV
}

# ---------------------------------------------------------
# CORS: Alle Origins für lokale Entwicklung erlauben
# ---------------------------------------------------------

CORS_ALLOW_ALL_ORIGINS = True  # Nur für DEV!
CORS_ALLOW_CREDENTIALS = True

CSRF_TRUSTED_ORIGINS = [
    'http://localhost:3000',
    'http://127.0.0.1:3000',
    'http://localhost:8000',
    'http://127.0.0.1:8000',
]

# ---------------------------------------------------------
# LOGGING: Ausführliches Logging für Entwicklung
# ---------------------------------------------------------

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'simple': {
            'format': '{levelname} {asctime} {module}: {message}',
            'style': '{',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'simple',
        },
    },
    'root': {
        'handlers': ['console'],
        'level': 'INFO',
    },
    'loggers': {
        'django': {
            'handlers': ['console'],
            'level': 'INFO',
            'propagate': False,
        },
        'django.db.backends': {
            'handlers': ['console'],
            'level': 'WARNING',  # Auf DEBUG setzen für SQL-Queries
            'propagate': False,
        },
        'renal_backend': {
            'handlers': ['console'],
            'level': 'DEBUG',
            'propagate': False,
        },
    },
}

# ---------------------------------------------------------
# SECURITY: Relaxed für lokale Entwicklung
# ---------------------------------------------------------

SECURE_SSL_REDIRECT = False
SESSION_COOKIE_SECURE = False
CSRF_COOKIE_SECURE = False
SECURE_HSTS_SECONDS = 0

EMAIL_BACKEND = 'django.core.mail.backends.console.EmailBackend'

CACHES = {
    'default': {
        'BACKEND': 'django.core.cache.backends.locmem.LocMemCache',
        'LOCATION': 'renal-dev',
    }
}
