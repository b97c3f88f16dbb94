# Copyright 2016-2020, Damian Johnson and The Tor Project
# See LICENSE for licensing information

"""
Miscellaneous utility functions for working with tor.

**Module Overview:**

::

  is_valid_fingerprint - checks if a string is a valid relay fingerprint
  is_valid_nickname - checks if a string is a valid relay nickname
  is_hex_digits - checks if a string is only made up of hex digits
"""

import re

# The control-spec defines the following as...
#   Fingerprint = "$" 40*HEXDIG
#   NicknameChar = "a"-"z" / "A"-"Z" / "0" - "9"
#   Nickname = 1*19 NicknameChar
#
# Tor is case insensitive about the hex digits, and so are we.

FINGERPRINT_PATTERN = re.compile('^\\$?[0-9a-fA-F]{40}$')
NICKNAME_PATTERN = re.compile('^[a-zA-Z0-9]{1,19}$')
HEX_DIGIT = '[0-9a-fA-F]'


def is_valid_fingerprint(entry, check_prefix = False):
  """
  Checks if a string is a properly formatted relay fingerprint. The '$'
  prefix is optional unless **check_prefix** is set, in which case it's
  required.

  :param str entry: string to be checked
  :param bool check_prefix: checks for a '$' prefix

  :returns: **True** if the string could be a relay fingerprint, **False** otherwise
  """

  if not isinstance(entry, str):
    return False
  elif check_prefix and not entry.startswith('$'):
    return False

  return bool(FINGERPRINT_PATTERN.match(entry))


def is_valid_nickname(entry):
  """
  Checks if a string is a valid format for being a nickname.

  :param str entry: string to be checked

  :returns: **True** if the string could be a nickname, **False** otherwise
  """

  if not isinstance(entry, str):
    return False

  return bool(NICKNAME_PATTERN.match(entry))


def is_hex_digits(entry, count):
  """
  Checks if a string is the given number of hex digits. Digits represented by
  letters are case insensitive.

  :param str entry: string to be checked
  :param int count: number of hex digits to be checked for

  :returns: **True** if the given number of hex digits, **False** otherwise
  """

  return bool(re.match('^%s{%i}$' % (HEX_DIGIT, count), entry))
