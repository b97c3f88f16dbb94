# Copyright 2016-2020, Damian Johnson and The Tor Project
# See LICENSE for licensing information

"""
Ordered enumerations for the fixed vocabularies of the control protocol, such
as circuit statuses and authentication methods...

::

  >>> from torutils.util import enum
  >>> methods = enum.UppercaseEnum('NONE', 'HASHEDPASSWORD', 'SAFECOOKIE')
  >>> methods.SAFECOOKIE
  'SAFECOOKIE'
  >>> 'COOKIE' in methods
  False

**Module Overview:**

::

  UppercaseEnum - Provides an enum instance with capitalized values

  Enum - Provides a basic, ordered enumeration
    |- keys - string representation of our enum keys
    |- index_of - index of an enum value
    |- __getitem__ - provides the value for an enum key
    +- __iter__ - iterator over our enum values
"""

from typing import Any, Iterator, List, Sequence, Tuple, Union


def UppercaseEnum(*args: str) -> 'Enum':
  """
  Provides an :class:`~torutils.util.enum.Enum` where each value matches its
  key. Tor's vocabularies are uppercase so this is what we use throughout.

  :param args: enum keys to initialize with

  :returns: :class:`~torutils.util.enum.Enum` instance with the given keys
  """

  return Enum(*[(v, v) for v in args])


class Enum(object):
  """
  Basic enumeration. Entries are either a key, in which case the value is its
  title cased counterpart, or a **(key, value)** tuple.
  """

  def __init__(self, *args: Union[str, Tuple[str, Any]]) -> None:
    keys = []  # type: List[str]
    values = []  # type: List[Any]

    for entry in args:
      if isinstance(entry, str):
        key, val = entry, ' '.join([word.capitalize() for word in entry.split('_')])
      elif isinstance(entry, tuple) and len(entry) == 2:
        key, val = entry
      else:
        raise ValueError('Unrecognized input: %s' % (args,))

      keys.append(key)
      values.append(val)
      setattr(self, key, val)

    self._keys = tuple(keys)
    self._values = tuple(values)

  def keys(self) -> Sequence[str]:
    """
    Provides an ordered listing of the enumeration keys in this set.

    :returns: **list** with our enum keys
    """

    return list(self._keys)

  def index_of(self, value: Any) -> int:
    """
    Provides the index of the given value in the collection.

    :param value: entry to be looked up

    :returns: **int** index of the given entry

    :raises: **ValueError** if no such element exists
    """

    return self._values.index(value)

  def __getitem__(self, item: str) -> Any:
    if item in self._keys:
      return getattr(self, item)

    raise ValueError("'%s' isn't among our enumeration keys, which includes: %s" % (item, ', '.join(self._keys)))

  def __iter__(self) -> Iterator[Any]:
    for entry in self._values:
      yield entry

  def __len__(self) -> int:
    return len(self._values)
