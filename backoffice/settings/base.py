"""
Base settings for the back-office materials project.
Shared between local (branch) and cloud deployments.
"""

from pathlib import Path
import os

from django.urls import reverse_lazy

# Build paths inside the project like this: BASE_DIR / 'subdir'.
BASE_DIR = Path(__file__).resolve().parent.parent.parent


# SECURITY WARNING: keep the secret key used in production secret!
SECRET_KEY = os.getenv('SECRET_KEY', 'django-insecure-5v#q2m!k8w0z@r1x$backoffice-local-only')

# SECURITY WARNING: don't run with debug turned on in production!
DEBUG = os.getenv('DEBUG', 'True').lower() == 'true'

ALLOWED_HOSTS = os.getenv('ALLOWED_HOSTS', '*').split(',')


# Application definition
INSTALLED_APPS = [
    "unfold",
    "unfold.contrib.filters",
    "unfold.contrib.forms",
    "unfold.contrib.inlines",
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',
    'inventory',
    'corsheaders',
    'rest_framework',
    'rest_framework.authtoken',
    'drf_spectacular',
]

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'corsheaders.middleware.CorsMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
]

ROOT_URLCONF = 'backoffice.urls'

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

WSGI_APPLICATION = 'backoffice.wsgi.application'


# Password validation
AUTH_PASSWORD_VALIDATORS = [
    {'NAME': 'django.contrib.auth.password_validation.UserAttributeSimilarityValidator'},
    {'NAME': 'django.contrib.auth.password_validation.MinimumLengthValidator'},
    {'NAME': 'django.contrib.auth.password_validation.CommonPasswordValidator'},
    {'NAME': 'django.contrib.auth.password_validation.NumericPasswordValidator'},
]


# Internationalization
LANGUAGE_CODE = 'en-us'
TIME_ZONE = os.getenv('TIME_ZONE', 'Asia/Tashkent')
USE_I18N = True
USE_TZ = True


# Static files
STATIC_URL = 'static/'
STATIC_ROOT = BASE_DIR / 'staticfiles'


# CORS
CORS_ALLOW_ALL_ORIGINS = True


# Default primary key field type
DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'


# =============================================================================
# INVENTORY
# =============================================================================
RECEIVING_NOTE_PREFIX = os.getenv('RECEIVING_NOTE_PREFIX', 'RN')
INVENTORY_PAGE_SIZE = int(os.getenv('INVENTORY_PAGE_SIZE', '20'))


# Unfold Admin Configuration
UNFOLD = {
    "SITE_TITLE": "Back Office Admin",
    "SITE_HEADER": "Back Office",
    "SITE_URL": "/",
    "SITE_SYMBOL": "inventory_2",

    "SIDEBAR": {
        "show_search": True,
        "show_all_applications": True,
        "navigation": [
            {
                "title": "Catalog",
                "separator": True,
                "items": [
                    {
                        "title": "Units",
                        "icon": "straighten",
                        "link": reverse_lazy("admin:inventory_unit_changelist"),
                    },
                    {
                        "title": "Materials",
                        "icon": "egg",
                        "link": reverse_lazy("admin:inventory_material_changelist"),
                    },
                    {
                        "title": "Recipes",
                        "icon": "menu_book",
                        "link": reverse_lazy("admin:inventory_recipe_changelist"),
                    },
                ],
            },
            {
                "title": "Stock",
                "separator": True,
                "items": [
                    {
                        "title": "Receiving Notes",
                        "icon": "local_shipping",
                        "link": reverse_lazy("admin:inventory_receivingnote_changelist"),
                    },
                    {
                        "title": "Inventory",
                        "icon": "warehouse",
                        "link": reverse_lazy("admin:inventory_inventory_changelist"),
                    },
                    {
                        "title": "Warehouses",
                        "icon": "store",
                        "link": reverse_lazy("admin:inventory_warehouse_changelist"),
                    },
                ],
            },
        ],
    },
}


REST_FRAMEWORK = {
    'DEFAULT_SCHEMA_CLASS': 'drf_spectacular.openapi.AutoSchema',

    'DEFAULT_AUTHENTICATION_CLASSES': [
        'rest_framework.authentication.TokenAuthentication',
    ],

    'DEFAULT_RENDERER_CLASSES': [
        'rest_framework.renderers.JSONRenderer',
        'rest_framework.renderers.BrowsableAPIRenderer',
    ],
}


SPECTACULAR_SETTINGS = {
    'TITLE': 'Back Office Materials API',
    'DESCRIPTION': 'Units, materials, recipe costing, receiving and inventory',
    'VERSION': '1.0.0',

    'SECURITY': [{'tokenAuth': []}],

    'COMPONENTS': {
        'securitySchemes': {
            'tokenAuth': {
                'type': 'apiKey',
                'in': 'header',
                'name': 'Authorization',
            }
        }
    },
}
