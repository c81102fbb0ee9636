import os
import tempfile

from djbundles.settings import build_bundles_settings


DEBUG = False

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': ':memory:',
    }
}

# Local time zone for this installation. Choices can be found here:
# http://en.wikipedia.org/wiki/List_of_tz_zones_by_name
TIME_ZONE = 'UTC'

LANGUAGE_CODE = 'en-us'

USE_I18N = True

USE_TZ = True

# Absolute path to the directory that holds static media.
STATIC_ROOT = os.path.abspath(os.path.join(__file__, '..', 'static'))

# URL that handles the media served from STATIC_ROOT. Make sure to use a
# trailing slash if there is a path component (optional in other cases).
STATIC_URL = '/static/'

# Make this unique, and don't share it with anybody.
SECRET_KEY = 'af=y9ydd51a0g#bevy0+p#(7ime@m#k)$4$9imoz*!rl97w0j0'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [],
        'APP_DIRS': True,
        'OPTIONS': {
            'debug': True,
        },
    },
]

INSTALLED_APPS = [
    'django.contrib.staticfiles',
    'djbundles',
]

DJBUNDLES = build_bundles_settings(
    cache_dir=os.path.join(tempfile.gettempdir(), 'djbundles-test-cache'),
    version='test')
