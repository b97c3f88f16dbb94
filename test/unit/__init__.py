"""
Unit tests for the torutils library.
"""

__all__ = [
  'control',
  'descriptor',
  'response',
  'util',
  'dnsel',
  'socket',
]
