# Copyright 2016-2020, Damian Johnson and The Tor Project
# See LICENSE for licensing information

"""
Toolkit for the string conversions our parsers share.

**Module Overview:**

::

  b64_to_hex - converts an unpadded base64 digest into uppercase hex
  time_units - splits a number of seconds into days, hours, minutes, seconds
"""

import base64
import binascii
import codecs
import datetime
import re

from typing import Dict, Union

TIME_UNITS = (
  ('days', 86400),
  ('hours', 3600),
  ('minutes', 60),
  ('seconds', 1),
)

_timestamp_re = re.compile(r'^(\d{4})-(\d{2})-(\d{2}) (\d{2}):(\d{2}):(\d{2})$')


def _to_bytes(msg: Union[str, bytes]) -> bytes:
  """
  Provides the ASCII bytes for the given string.

  :param msg: string to be converted

  :returns: ASCII bytes for string
  """

  if isinstance(msg, str):
    return codecs.latin_1_encode(msg, 'replace')[0]  # type: ignore
  else:
    return msg


def _to_unicode(msg: Union[str, bytes]) -> str:
  """
  Provides the unicode string for the given ASCII bytes.

  :param msg: string to be converted

  :returns: unicode conversion
  """

  if msg is not None and not isinstance(msg, str):
    return msg.decode('utf-8', 'replace')
  else:
    return msg


def _decode_b64(msg: Union[str, bytes]) -> bytes:
  """
  Base64 decode, without padding concerns. Directory documents strip the
  trailing '=' characters so we add them back before decoding.

  :raises: **binascii.Error** if the content isn't base64
  """

  msg = _to_bytes(msg)
  missing_padding = -len(msg) % 4

  return base64.b64decode(msg + b'=' * missing_padding, validate = True)


def b64_to_hex(msg: str) -> str:
  """
  Converts base64 content, with or without padding, into uppercase hex. This
  is how fingerprints and digests are encoded in router status entries...

  ::

    >>> b64_to_hex('vJJNUAeGZqAgj5118pynNkX7YE0')
    'BC924D50078666A0208F9D75F29CA73645FB604D'

  :param msg: base64 encoded content

  :returns: **str** with the uppercase hex of the decoded bytes

  :raises: **ValueError** if the content isn't base64
  """

  try:
    return binascii.hexlify(_decode_b64(msg)).decode('ascii').upper()
  except binascii.Error as exc:
    raise ValueError("'%s' isn't base64 encoded: %s" % (msg, exc))


def time_units(seconds: int) -> Dict[str, int]:
  """
  Splits a duration into whole days, hours, minutes, and seconds...

  ::

    >>> time_units(93784)
    {'days': 1, 'hours': 2, 'minutes': 3, 'seconds': 4}

  :param seconds: duration to be split

  :returns: **dict** of unit names to their count
  """

  result = {}
  seconds = max(0, int(seconds))

  for label, unit_seconds in TIME_UNITS:
    result[label], seconds = divmod(seconds, unit_seconds)

  return result


def _parse_timestamp(entry: str) -> datetime.datetime:
  """
  Parses the date and time that in format like like...

  ::

    2012-11-08 16:48:41

  :param entry: timestamp to be parsed

  :returns: naive **datetime** in UTC for the time represented by the timestamp

  :raises: **ValueError** if the timestamp is malformed
  """

  if not isinstance(entry, str):
    raise ValueError('parse_timestamp() input must be a str, got a %s' % type(entry))

  match = _timestamp_re.match(entry)

  if not match:
    raise ValueError('Expected timestamp in format YYYY-MM-DD HH:MM:ss but got ' + entry)

  return datetime.datetime(*[int(x) for x in match.groups()])


def _parse_iso_timestamp(entry: str) -> datetime.datetime:
  """
  Parses the ISO 8601 standard that provides for timestamps like...

  ::

    2012-11-08T16:48:41.420251

  :param entry: timestamp to be parsed

  :returns: **datetime** for the time represented by the timestamp

  :raises: **ValueError** if the timestamp is malformed
  """

  if not isinstance(entry, str):
    raise ValueError('parse_iso_timestamp() input must be a str, got a %s' % type(entry))

  if '.' in entry:
    timestamp_str, microseconds = entry.split('.', 1)
  else:
    timestamp_str, microseconds = entry, '000000'

  if len(microseconds) != 6 or not microseconds.isdigit():
    raise ValueError("timestamp's microseconds should be six digits")

  if len(timestamp_str) > 10 and timestamp_str[10] == 'T':
    timestamp_str = timestamp_str[:10] + ' ' + timestamp_str[11:]
  else:
    raise ValueError("timestamp didn't contain delimeter 'T' between date and time")

  return _parse_timestamp(timestamp_str) + datetime.timedelta(microseconds = int(microseconds))
