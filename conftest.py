"""Configures pytest and Django environment setup for Djbundles.

.. important::

   Do not define plugins in this file! Plugins must be in a different
   package (such as in tests/). pytest overrides importers for plugins and
   all modules descending from that module level.
"""

import os
import sys

import django


sys.path.insert(0, os.path.join(os.path.dirname(__file__)))


def pytest_report_header(config):
    """Return information for the report header.

    This will log the version of Django.

    Args:
        config (object):
            The pytest configuration object.

    Returns:
        list of str:
        The report header entries to log.
    """
    return [
        'django version: %s' % django.get_version(),
    ]
