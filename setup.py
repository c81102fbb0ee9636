#!/usr/bin/env python3

import os
import sys

from setuptools import find_packages, setup

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from djbundles import get_package_version, VERSION
from djbundles.dependencies import (PYTHON_3_MIN_VERSION,
                                    PYTHON_3_MIN_VERSION_STR,
                                    build_dependency_list,
                                    package_dependencies,
                                    test_dependencies)


# Make sure this is a version of Python we are compatible with. This should
# prevent people on older versions from unintentionally trying to install
# the source tarball, and failing.
if sys.version_info < PYTHON_3_MIN_VERSION:
    sys.stderr.write(
        'This version of Djbundles is incompatible with your version of '
        'Python.\n'
        '\n'
        'Djbundles requires Python %s or newer.\n'
        % PYTHON_3_MIN_VERSION_STR)
    sys.exit(1)


PACKAGE_NAME = 'Djbundles'

with open(os.path.join(os.path.dirname(os.path.abspath(__file__)),
                       'README.rst'),
          'r', encoding='utf-8') as fp:
    long_description = fp.read()

setup(
    name=PACKAGE_NAME,
    version=get_package_version(),
    license='MIT',
    description=(
        'Bundling, minification and cache-busted delivery of JavaScript and '
        'CSS for Django-based web applications.'
    ),
    long_description=long_description,
    long_description_content_type='text/x-rst',
    url='https://github.com/djbundles/djbundles',
    packages=find_packages(exclude=['tests']),
    python_requires='>=%s' % PYTHON_3_MIN_VERSION_STR,
    install_requires=build_dependency_list(package_dependencies),
    extras_require={
        'test': build_dependency_list(test_dependencies),
    },
    include_package_data=True,
    zip_safe=False,
    classifiers=[
        'Development Status :: %s' % (
            '5 - Production/Stable' if VERSION[3] == 'final' else '4 - Beta'),
        'Environment :: Web Environment',
        'Framework :: Django',
        'Intended Audience :: Developers',
        'License :: OSI Approved :: MIT License',
        'Operating System :: OS Independent',
        'Programming Language :: Python',
        'Programming Language :: Python :: 3',
        'Programming Language :: Python :: 3 :: Only',
        'Topic :: Internet :: WWW/HTTP :: Dynamic Content',
        'Topic :: Software Development',
        'Topic :: Software Development :: Libraries :: Python Modules',
    ],
)
