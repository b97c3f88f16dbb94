# Copyright 2016-2020, Damian Johnson and The Tor Project
# See LICENSE for licensing information

"""
Parsing for router status entries, the information for each relay within a
network status document. These are what tor provides through its 'ns/*'
GETINFO options and NS events...

::

  r moria1 lpXfw1/+uGEym58asExGOXAgzjE IpcU7dolas8+Q+oAzwgvZIWx7PA 2018-05-23 02:41:25 128.31.0.34 9101 9131
  a [2001:db8::1]:9101
  s Authority Fast Running Stable V2Dir Valid
  v Tor 0.3.3.5-rc-dev
  w Bandwidth=20 Unmeasured=1
  p reject 1-65535

Each 'r' line starts a new relay's entry.

**Module Overview:**

::

  parse_router_status - parses router status entries into descriptors
"""

import collections
import re

import torutils
import torutils.util.str_tools

from torutils.descriptor import RouterDescriptor, parse_delimited
from torutils.util import connection

from typing import Any, Callable, Dict, Iterable, List, Union

IPV6_ADDRESS = re.compile('\\[([^]]+)\\]:(\\d+)')


def _int(value: str, line: str) -> int:
  if not value.isdigit():
    raise torutils.ProtocolError("'%s' should be numeric: %s" % (value, line))

  return int(value)


def _parse_r_line(line: str) -> Dict[str, Any]:
  # "r" nickname identity digest publication IP ORPort DirPort

  values = line.split(' ')

  if len(values) < 9:
    raise torutils.ProtocolError("Router status entry's 'r' line should have eight values: %s" % line)

  try:
    fingerprint = torutils.util.str_tools.b64_to_hex(values[2])[:40]
    digest = torutils.util.str_tools.b64_to_hex(values[3])[:40]
  except ValueError as exc:
    raise torutils.ProtocolError("Router status entry's 'r' line has a malformed digest (%s): %s" % (exc, line))

  try:
    published = torutils.util.str_tools._parse_timestamp('%s %s' % (values[4], values[5]))
  except ValueError:
    raise torutils.ProtocolError("Publication time wasn't parsable: %s" % line)

  return {
    'nickname': values[1],
    'fingerprint': fingerprint,
    'digest': digest,
    'published': published,
    'ip_address': values[6],
    'or_port': _int(values[7], line),
    'dir_port': _int(values[8], line),
  }


def _parse_a_line(line: str) -> Dict[str, Any]:
  # "a" SP address ":" port

  address = line.split(' ', 1)[1] if ' ' in line else line
  ipv6_match = IPV6_ADDRESS.search(address)

  if ipv6_match:
    ip, port = ipv6_match.groups()
  elif ':' in address:
    ip, port = address.rsplit(':', 1)
  else:
    raise torutils.ProtocolError("Router status entry's 'a' line should be an address and port: %s" % line)

  if not connection.is_valid_port(port):
    raise torutils.ProtocolError("Router status entry's 'a' line has an invalid port: %s" % line)

  if ipv6_match:
    return {'ipv6_address': ip, 'or_address': '[%s]:%s' % (ip, port)}
  else:
    return {'or_address': '%s:%s' % (ip, port)}


def _parse_s_line(line: str) -> Dict[str, Any]:
  return {'flags': line.split(' ')[1:]}


def _parse_v_line(line: str) -> Dict[str, Any]:
  return {'platform': line[2:]}


def _parse_w_line(line: str) -> Dict[str, Any]:
  # "w" SP "Bandwidth=" INT [SP "Measured=" INT] [SP "Unmeasured=1"]

  bandwidth = parse_delimited(line, 'w')

  if 'bandwidth' not in bandwidth:
    raise torutils.ProtocolError("Bandwidth value not present in 'w' line")

  measured = bandwidth.get('measured')

  return {
    'bandwidth': _int(bandwidth['bandwidth'], line),
    'bandwidth_measured': _int(measured, line) if measured is not None else None,
    'bandwidth_unmeasured': bandwidth.get('unmeasured') == '1',
  }


def _parse_p_line(line: str) -> Dict[str, Any]:
  # "p" SP ("accept" / "reject") SP PortList

  values = line.split(' ')

  if len(values) < 3 or values[1] not in ('accept', 'reject'):
    raise torutils.ProtocolError("Router status entry's 'p' line should be an exit policy summary: %s" % line)

  return {'exit_policy4': {values[1]: values[2].split(',')}}


LINE_PARSERS = {
  'r': _parse_r_line,
  'a': _parse_a_line,
  's': _parse_s_line,
  'v': _parse_v_line,
  'w': _parse_w_line,
  'p': _parse_p_line,
}  # type: Dict[str, Callable[[str], Dict[str, Any]]]


def parse_router_status(lines: Iterable[str], by_fingerprint: bool = False) -> Union[List[RouterDescriptor], Dict[str, RouterDescriptor]]:
  """
  Parses router status entries, such as the content of a 'ns/all' GETINFO
  reply or an NS event. Lines that aren't part of a router status entry, such
  as the reply's closing 'OK', are skipped.

  :param lines: content to be parsed
  :param by_fingerprint: provides a dict keyed by fingerprint rather than a
    list

  :returns: **list** of :class:`~torutils.descriptor.RouterDescriptor` in the
    order they appeared, or a **dict** of fingerprints to descriptors if
    **by_fingerprint** is set

  :raises: :class:`~torutils.ProtocolError` if the content is malformed
  """

  descriptors = []  # type: List[RouterDescriptor]
  descriptor = None

  for line in lines:
    keyword = line.split(' ', 1)[0]

    if keyword not in LINE_PARSERS:
      continue
    elif keyword == 'r':
      descriptor = RouterDescriptor()
      descriptors.append(descriptor)
    elif descriptor is None:
      raise torutils.ProtocolError("Router status entries must start with a 'r' line, got: %s" % line)

    descriptor.set_array(LINE_PARSERS[keyword](line))

  if by_fingerprint:
    return collections.OrderedDict((desc.fingerprint, desc) for desc in descriptors)
  else:
    return descriptors
