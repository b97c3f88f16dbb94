# Copyright 2016-2020, Damian Johnson and The Tor Project
# See LICENSE for licensing information

"""
Address and cryptographic helpers shared by our clients.

::

  is_valid_ipv4_address - checks if a string is a valid IPv4 address
  is_valid_ipv6_address - checks if a string is a valid IPv6 address
  is_valid_port - checks if something is a valid representation for a port
  expand_ipv6_address - provides an IPv6 address with its collapsed portions expanded

  hmac_sha256 - provides a sha256 digest
  cryptovariables_equal - string comparison for cryptographic operations
"""

import hashlib
import hmac
import os
import re

CRYPTOVARIABLE_EQUALITY_COMPARISON_NONCE = os.urandom(32)

IPV6_GROUP = re.compile('^[0-9a-fA-F]{0,4}$')


def is_valid_ipv4_address(address):
  """
  Checks if a string is a valid IPv4 address.

  :param str address: string to be checked

  :returns: **True** if input is a valid IPv4 address, **False** otherwise
  """

  if not isinstance(address, str) or address.count('.') != 3:
    return False

  for entry in address.split('.'):
    if not entry.isdigit() or int(entry) > 255:
      return False
    elif entry[0] == '0' and len(entry) > 1:
      return False  # leading zeros, for instance in "1.2.3.001"

  return True


def is_valid_ipv6_address(address, allow_brackets = False):
  """
  Checks if a string is a valid IPv6 address.

  :param str address: string to be checked
  :param bool allow_brackets: ignore brackets which form '[address]'

  :returns: **True** if input is a valid IPv6 address, **False** otherwise
  """

  if not isinstance(address, str):
    return False

  if allow_brackets and address.startswith('[') and address.endswith(']'):
    address = address[1:-1]

  colon_count = address.count(':')

  if colon_count < 2 or colon_count > 7:
    return False
  elif colon_count != 7 and '::' not in address:
    return False  # not enough groups and none are collapsed
  elif address.count('::') > 1 or ':::' in address:
    return False  # only one grouping of zeros can be collapsed

  return all(IPV6_GROUP.match(entry) for entry in address.split(':'))


def is_valid_port(entry, allow_zero = False):
  """
  Checks if a string or int is a valid port number.

  :param str,int entry: string or integer to be checked
  :param bool allow_zero: accept port number of zero (reserved by definition)

  :returns: **True** if input is an integer and within the valid port range, **False** otherwise
  """

  if isinstance(entry, str):
    if not entry.isdigit():
      return False
    elif entry[0] == '0' and len(entry) > 1:
      return False  # leading zeros, ex "001"

    entry = int(entry)

  if allow_zero and entry == 0:
    return True

  return 0 < entry < 65536


def expand_ipv6_address(address):
  """
  Expands abbreviated IPv6 addresses to their full colon separated hex format.
  Surrounding brackets are dropped. For instance...

  ::

    >>> expand_ipv6_address('2001:db8::ff00:42:8329')
    '2001:0db8:0000:0000:0000:ff00:0042:8329'

    >>> expand_ipv6_address('[::1]')
    '0000:0000:0000:0000:0000:0000:0000:0001'

  :param str address: IPv6 address to be expanded

  :returns: **str** with the lowercase, fully expanded address

  :raises: **ValueError** if the address can't be expanded due to being malformed
  """

  if not is_valid_ipv6_address(address, allow_brackets = True):
    raise ValueError("'%s' isn't a valid IPv6 address" % address)

  address = address.strip('[]').lower()
  prefix, _, suffix = address.partition('::')

  head = [group for group in prefix.split(':') if group]
  tail = [group for group in suffix.split(':') if group]

  if '::' in address:
    groups = head + ['0'] * (8 - len(head) - len(tail)) + tail
  else:
    groups = head

  if len(groups) != 8:
    raise ValueError("'%s' isn't a valid IPv6 address" % address)

  return ':'.join([group.zfill(4) for group in groups])


def hmac_sha256(key, msg):
  """
  Generates a sha256 digest using the given key and message.

  :param bytes key: starting key for the hash
  :param bytes msg: message to be hashed

  :returns: sha256 digest of msg as **bytes**, hashed using the given key
  """

  return hmac.new(key, msg, hashlib.sha256).digest()


def cryptovariables_equal(x, y):
  """
  Compares two strings for equality securely.

  :param bytes x: string to be compared.
  :param bytes y: the other string to be compared.

  :returns: **True** if both strings are equal, **False** otherwise.
  """

  return (
    hmac_sha256(CRYPTOVARIABLE_EQUALITY_COMPARISON_NONCE, x) ==
    hmac_sha256(CRYPTOVARIABLE_EQUALITY_COMPARISON_NONCE, y))
