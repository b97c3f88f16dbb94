# Copyright 2016-2020, Damian Johnson and The Tor Project
# See LICENSE for licensing information

"""
Utility functions used by the torutils library.
"""

import datetime

__all__ = [
  'connection',
  'enum',
  'log',
  'str_tools',
  'tor_tools',

  'datetime_to_unix',
]


def datetime_to_unix(timestamp: 'datetime.datetime') -> float:
  """
  Converts a utc datetime object to a unix timestamp.

  :param timestamp: timestamp to convert

  :returns: **float** for the unix timestamp of the given datetime object
  """

  return (timestamp - datetime.datetime(1970, 1, 1)).total_seconds()
