# Copyright 2016-2020, Damian Johnson and The Tor Project
# See LICENSE for licensing information

"""
Unit tests for the torutils library.
"""

__all__ = [
  'mocking',
  'unit',
]
