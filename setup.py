#!/usr/bin/env python
# Copyright 2016-2020, Damian Johnson and The Tor Project
# See LICENSE for licensing information
#
# Release Checklist
# =================
#
# * Test with python3.
#   |- Run our unit tests...
#   |
#   |    % python3 run_tests.py
#   |
#   +- Some version of python 3.x should be available in your platform's
#      repositories. Older interpreters are not supported.
#
# * Tag the release
#   |- Bump the version in torutils/__init__.py.
#   |- git commit -a -m "torutils release 1.0.0"
#   +- git tag -m "torutils release 1.0.0" 1.0.0
#
# * Final release
#   |- rm dist/*
#   |- python setup.py sdist
#   +- twine upload dist/*

import setuptools
import os
import re

SUMMARY = 'Client library for tor\'s control port, its directory authorities, and its exit list DNS service.'

DESCRIPTION = """
Torutils is a small library for applications that need to talk with Tor
(https://www.torproject.org/). It provides...

* a control port client that authenticates, issues commands, and listens for events
* parsers for server descriptors, microdescriptors, and router status entries
* a client that downloads server descriptors from the directory authorities
* exit checks against the Tor Project's DNS exit list

It has no dependencies beyond python 3.6 or later.
""".strip()

MANIFEST = """
include LICENSE
include MANIFEST.in
include run_tests.py
graft test
global-exclude __pycache__
global-exclude *.orig
global-exclude *.pyc
global-exclude *.swp
global-exclude *.swo
global-exclude *~
""".strip()

# installation requires us to be in our setup.py's directory

os.chdir(os.path.dirname(os.path.abspath(__file__)))

with open('MANIFEST.in', 'w') as manifest_file:
  manifest_file.write(MANIFEST)


def get_module_info():
  # reads the basic __stat__ strings from our module's init

  STAT_REGEX = re.compile(r"^__(.+)__ = '(.+)'$")
  result = {}
  cwd = os.path.sep.join(__file__.split(os.path.sep)[:-1])

  with open(os.path.join(cwd, 'torutils', '__init__.py')) as init_file:
    for line in init_file.readlines():
      line_match = STAT_REGEX.match(line)

      if line_match:
        keyword, value = line_match.groups()
        result[keyword] = value

  return result


module_info = get_module_info()

try:
  setuptools.setup(
    name = 'torutils',
    version = module_info['version'],
    description = SUMMARY,
    long_description = DESCRIPTION,
    license = module_info['license'],
    author = module_info['author'],
    author_email = module_info['contact'],
    url = module_info['url'],
    packages = setuptools.find_packages(exclude=['test*']),
    python_requires = '>=3.6',
    keywords = 'tor onion controller descriptor',
    classifiers = [
      'Development Status :: 4 - Beta',
      'Intended Audience :: Developers',
      'License :: OSI Approved :: GNU Lesser General Public License v3 (LGPLv3)',
      'Topic :: Security',
      'Topic :: Software Development :: Libraries :: Python Modules',
    ],
  )
finally:
  for filename in ['MANIFEST.in', 'MANIFEST']:
    if os.path.exists(filename):
      os.remove(filename)
