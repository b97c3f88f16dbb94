#!/usr/bin/env python
# Copyright 2016-2020, Damian Johnson and The Tor Project
# See LICENSE for licensing information

"""
Runs our unit tests. For usage information run this with '--help'.
"""

import getopt
import logging
import os
import sys
import unittest

import torutils.util.log

BASE_DIR = os.path.dirname(os.path.abspath(__file__))

OPT = 't:l:vh'
OPT_EXPANDED = ['test=', 'log=', 'log-file=', 'verbose', 'help']

HELP_MSG = """\
Usage run_tests.py [OPTION]
Runs our unit tests.

  -t, --test TEST       only run tests whose module starts with this, such as
                          'response.events' or 'util'
  -l, --log RUNLEVEL    include log output with test results, runlevels are...
                          TRACE, DEBUG, INFO, NOTICE, WARN, ERROR
      --log-file PATH   logs to this path rather than stderr
  -v, --verbose         provides the name of each test as it runs
  -h, --help            presents this help
"""

LOG_TYPE_ERROR = """\
'%s' isn't a logging runlevel, use one of the following instead:
  TRACE, DEBUG, INFO, NOTICE, WARN, ERROR
"""


def parse_args(argv):
  """
  Parses our commandline arguments.

  :param list argv: input arguments to be parsed

  :returns: **dict** of our settings

  :raises: **ValueError** if we got an invalid argument
  """

  args = {
    'specific_test': [],
    'logging_runlevel': None,
    'logging_path': None,
    'verbose': False,
    'print_help': False,
  }

  try:
    recognized_args, unrecognized_args = getopt.getopt(argv, OPT, OPT_EXPANDED)

    if unrecognized_args:
      error_msg = "aren't recognized arguments" if len(unrecognized_args) > 1 else "isn't a recognized argument"
      raise getopt.GetoptError("'%s' %s" % ("', '".join(unrecognized_args), error_msg))
  except getopt.GetoptError as exc:
    raise ValueError('%s (for usage provide --help)' % exc)

  for opt, arg in recognized_args:
    if opt in ('-t', '--test'):
      args['specific_test'].append(arg)
    elif opt in ('-l', '--log'):
      if arg.upper() not in torutils.util.log.Runlevel:
        raise ValueError(LOG_TYPE_ERROR % arg)

      args['logging_runlevel'] = arg.upper()
    elif opt == '--log-file':
      args['logging_path'] = arg
    elif opt in ('-v', '--verbose'):
      args['verbose'] = True
    elif opt in ('-h', '--help'):
      args['print_help'] = True

  return args


def get_unit_tests(module_prefixes = None):
  """
  Provides our unit tests.

  :param list module_prefixes: only provide tests if their module starts with
    any of these substrings

  :returns: :class:`unittest.TestSuite` with our tests
  """

  suite = unittest.defaultTestLoader.discover(os.path.join(BASE_DIR, 'test', 'unit'), pattern = '*.py', top_level_dir = BASE_DIR)

  if not module_prefixes:
    return suite

  filtered = unittest.TestSuite()

  for test_case in _flatten(suite):
    module_name = type(test_case).__module__[len('test.unit.'):]

    if any(module_name.startswith(prefix) for prefix in module_prefixes):
      filtered.addTest(test_case)

  return filtered


def _flatten(suite):
  for entry in suite:
    if isinstance(entry, unittest.TestSuite):
      for test_case in _flatten(entry):
        yield test_case
    else:
      yield entry


def main():
  try:
    args = parse_args(sys.argv[1:])
  except ValueError as exc:
    print(exc)
    sys.exit(1)

  if args['print_help']:
    print(HELP_MSG)
    sys.exit()

  if args['logging_runlevel']:
    if args['logging_path']:
      handler = logging.FileHandler(args['logging_path'], mode = 'w')
    else:
      handler = logging.StreamHandler()

    handler.setLevel(torutils.util.log.logging_level(args['logging_runlevel']))
    handler.setFormatter(torutils.util.log.FORMATTER)
    torutils.util.log.get_logger().addHandler(handler)

  suite = get_unit_tests(args['specific_test'])
  result = unittest.TextTestRunner(verbosity = 2 if args['verbose'] else 1).run(suite)

  sys.exit(0 if result.wasSuccessful() else 1)


if __name__ == '__main__':
  main()
