# Copyright 2016-2020, Damian Johnson and The Tor Project
# See LICENSE for licensing information

"""
Package for parsing and processing descriptor data.

**Module Overview:**

::

  parse_delimited - parses a line of key/value mappings
  read_block - pops a pseudo-Open-PGP-style block off of a line queue

  RouterDescriptor - Information tor has about a relay.
    |- set_array - sets attributes from a mapping of parsed fields
    |- get_array - provides our attributes as a dict
    |- combine - fills our empty attributes from another descriptor
    |- get_current_uptime - estimate of how long the relay has been up
    |- get_uptime_units - current uptime split into days, hours, minutes, seconds
    +- __str__ - human readable summary of the relay
"""

import collections
import copy
import time

import torutils
import torutils.util
import torutils.util.str_tools

from torutils.util import log

from typing import Any, Dict, Mapping, Optional

__all__ = [
  'remote',
  'router_status_entry',
  'server_descriptor',
  'parse_delimited',
  'read_block',
  'RouterDescriptor',
]

PGP_BLOCK_START = '-----BEGIN %s-----'
PGP_BLOCK_END = '-----END %s-----'

RSA_PUBLIC_KEY = 'RSA PUBLIC KEY'
SIGNATURE = 'SIGNATURE'
ED25519_CERT = 'ED25519 CERT'
CROSSCERT = 'CROSSCERT'

EXIT_POLICY_ATTR = ('exit_policy4', 'exit_policy6')


def parse_delimited(data: str, prefix: Optional[str] = None, delimiter: str = '=', boundary: str = ' ') -> Dict[str, str]:
  """
  Parses content made up of key/value mappings, such as...

  ::

    >>> parse_delimited('METHODS=COOKIE,SAFECOOKIE COOKIEFILE="/var/run/tor/control.authcookie"')
    {'methods': 'COOKIE,SAFECOOKIE', 'cookiefile': '/var/run/tor/control.authcookie'}

  Keys are lowercased and values have a layer of surrounding quotes removed.
  Items without a delimiter are skipped with a warning.

  :param data: content to be parsed
  :param prefix: leading keyword to drop, such as the 'w' of a router status
    entry's bandwidth line
  :param delimiter: divider between keys and values
  :param boundary: divider between mappings

  :returns: **dict** of lowercase keys to their values
  """

  if prefix and data.startswith(prefix + ' '):
    data = data[len(prefix) + 1:]

  result = {}

  for item in data.split(boundary):
    if delimiter not in item:
      log.log_once('descriptor.delimiter_missing.%s' % item, log.WARN, "Delimiter not found in data '%s'" % item)
      continue

    key, value = item.split(delimiter, 1)
    result[key.lower()] = _strip_quotes(value)

  return result


def _strip_quotes(value: str) -> str:
  if value.startswith('"'):
    value = value[1:]

  if value.endswith('"'):
    value = value[:-1]

  return value


def read_block(lines: 'collections.deque', block_type: str) -> str:
  """
  Pops a pseudo-Open-PGP-style block, such as a public key, off of a queue of
  descriptor lines. The first line must be the start of the block, and we
  read through its ending line.

  :param lines: lines of the document that remain to be parsed
  :param block_type: type of the block, such as 'RSA PUBLIC KEY'

  :returns: **str** with the block's lines, each followed by a newline

  :raises: :class:`~torutils.ProtocolError` if the next line doesn't start the
    block or the content ends before the block does
  """

  start_line = PGP_BLOCK_START % block_type
  end_line = PGP_BLOCK_END % block_type

  if not lines or lines[0] != start_line:
    raise torutils.ProtocolError('Expected line beginning with "%s"' % start_line)

  block = []

  while lines:
    line = lines.popleft()
    block.append(line + '\n')

    if line == end_line:
      return ''.join(block)

  raise torutils.ProtocolError("Unterminated %s block (looking for '%s')" % (block_type, end_line))


def _is_empty(value: Any) -> bool:
  """
  Checks if an attribute lacks a value. Mappings are empty when all of their
  values are, so an exit policy without rules counts as unset.
  """

  if isinstance(value, dict):
    return all(_is_empty(entry) for entry in value.values())

  return value is None or value is False or value in ('', [], (), set())


class RouterDescriptor(object):
  """
  Information about a tor relay. This can be populated from server
  descriptors, microdescriptors, or router status entries. Each provides a
  different subset of attributes, which can then be merged together with
  :func:`~torutils.descriptor.RouterDescriptor.combine`.

  :var str nickname: relay's nickname
  :var str fingerprint: forty character uppercase hex identity fingerprint
  :var str digest: uppercase hex digest of the relay's server descriptor
  :var datetime published: time in UTC when the descriptor was made
  :var str ip_address: IPv4 address of the relay
  :var str ipv6_address: IPv6 address of the relay
  :var int or_port: port for relay connections
  :var int dir_port: directory port, **0** if the relay isn't a mirror
  :var list or_address: additional addresses the relay listens on
  :var str platform: tor version and operating system of the relay
  :var str contact: operator's contact information
  :var list family: nicknames or fingerprints of relays run by the same operator
  :var int uptime: seconds the relay had been running when it published
  :var bool hibernating: **True** if the relay is hibernating
  :var bool allow_single_hop_exits: **True** if the relay allows single hop exits
  :var bool caches_extra_info: **True** if the relay caches extra-info documents
  :var bool tunnelled_dir_server: **True** if the relay accepts tunnelled
    directory requests
  :var str hidden_service_dir: hidden service descriptor version the relay
    serves, **None** if it isn't a hidden service directory
  :var str extra_info_digest: digest of the relay's extra-info document
  :var str protocols: legacy link and circuit protocol versions
  :var dict proto: protocol names mapped to the list of versions supported
  :var list flags: flags the directory authorities assigned the relay
  :var int bandwidth: consensus weight of the relay
  :var int bandwidth_measured: bandwidth measured by bandwidth authorities
  :var bool bandwidth_unmeasured: **True** if the weight isn't based on measurements
  :var int bandwidth_average: average bytes per second the relay will sustain
  :var int bandwidth_burst: bytes per second the relay will sustain in short bursts
  :var int bandwidth_observed: bytes per second the relay has been seen to sustain
  :var dict exit_policy4: IPv4 'accept' and 'reject' rules
  :var dict exit_policy6: IPv6 'accept' and 'reject' rules
  :var str onion_key: relay's RSA onion key
  :var str ntor_onion_key: base64 curve25519 key for the ntor handshake
  :var str signing_key: relay's RSA identity key
  :var str router_signature: signature of the descriptor
  :var str ed25519_key: relay's ed25519 master key
  :var str ed25519_sig: ed25519 signature of the descriptor
  :var str ed25519_identity: ed25519 identity certificate
  :var str onion_key_crosscert: cross certificate for the onion key
  :var str ntor_onion_key_crosscert: cross certificate for the ntor onion key
  :var str ntor_onion_key_crosscert_signbit: sign bit of the ntor cross certificate
  :var str country: two letter country code of the relay's address
  """

  ATTRIBUTES = {
    'nickname': None,
    'fingerprint': None,
    'digest': None,
    'published': None,
    'ip_address': None,
    'ipv6_address': None,
    'or_port': None,
    'dir_port': None,
    'or_address': [],
    'platform': None,
    'contact': None,
    'family': [],
    'uptime': None,
    'hibernating': False,
    'allow_single_hop_exits': False,
    'caches_extra_info': False,
    'tunnelled_dir_server': False,
    'hidden_service_dir': None,
    'extra_info_digest': None,
    'protocols': None,
    'proto': {},
    'flags': [],
    'bandwidth': None,
    'bandwidth_measured': None,
    'bandwidth_unmeasured': False,
    'bandwidth_average': None,
    'bandwidth_burst': None,
    'bandwidth_observed': None,
    'exit_policy4': {'accept': [], 'reject': []},
    'exit_policy6': {'accept': [], 'reject': []},
    'onion_key': None,
    'ntor_onion_key': None,
    'signing_key': None,
    'router_signature': None,
    'ed25519_key': None,
    'ed25519_sig': None,
    'ed25519_identity': None,
    'onion_key_crosscert': None,
    'ntor_onion_key_crosscert': None,
    'ntor_onion_key_crosscert_signbit': None,
    'country': None,
  }

  def __init__(self, **kwargs: Any) -> None:
    for attr, default in self.ATTRIBUTES.items():
      setattr(self, attr, copy.deepcopy(default))

    self.set_array(kwargs)

  def set_array(self, values: Mapping[str, Any]) -> 'torutils.descriptor.RouterDescriptor':
    """
    Sets attributes from a mapping of parsed fields. Exit policy rules are
    added to the rules we already have, and 'or_address' entries are
    appended. Keys that aren't descriptor attributes are ignored.

    :param values: attribute names mapped to their values

    :returns: this descriptor
    """

    for key, value in values.items():
      if key in EXIT_POLICY_ATTR:
        policy = getattr(self, key)

        for action in ('accept', 'reject'):
          rules = value.get(action)

          if rules is None:
            continue
          elif isinstance(rules, (list, tuple)):
            policy[action].extend(rules)
          else:
            policy[action].append(rules)
      elif key == 'or_address':
        if isinstance(value, (list, tuple)):
          self.or_address.extend(value)
        else:
          self.or_address.append(value)
      elif key in self.ATTRIBUTES:
        setattr(self, key, value)

    return self

  def get_array(self) -> Dict[str, Any]:
    """
    Provides our attributes.

    :returns: **dict** of attribute names to their values
    """

    return dict((attr, getattr(self, attr)) for attr in self.ATTRIBUTES)

  def combine(self, descriptor: 'torutils.descriptor.RouterDescriptor') -> 'torutils.descriptor.RouterDescriptor':
    """
    Fills in attributes we lack with those of another descriptor. Attributes
    we already have are never replaced. This is handy for merging a relay's
    router status entry with its microdescriptor.

    :param descriptor: descriptor to take attributes from

    :returns: this descriptor
    """

    for attr in self.ATTRIBUTES:
      donor_value = getattr(descriptor, attr)

      if _is_empty(getattr(self, attr)) and not _is_empty(donor_value):
        setattr(self, attr, copy.deepcopy(donor_value))

    return self

  def get_current_uptime(self) -> Optional[int]:
    """
    Estimates how long the relay has been running, from the uptime it
    reported plus the time since it published its descriptor.

    :returns: **int** seconds the relay has been up, **None** if we lack its
      uptime or publication time
    """

    if self.uptime is None or self.published is None:
      return None

    return int(self.uptime + time.time() - torutils.util.datetime_to_unix(self.published))

  def get_uptime_units(self) -> Optional[Dict[str, int]]:
    """
    Provides our current uptime split into days, hours, minutes and seconds.

    :returns: **dict** of units to their count, **None** if our uptime is unknown
    """

    uptime = self.get_current_uptime()
    return torutils.util.str_tools.time_units(uptime) if uptime is not None else None

  def __str__(self) -> str:
    lines = ['Nickname: %s  Fingerprint: %s' % (self.nickname, self.fingerprint)]

    if self.uptime:
      units = self.get_uptime_units()
      labels = ('%i%s' % (units[unit], unit[0]) for unit in ('days', 'hours', 'minutes', 'seconds') if units[unit])
      lines.append('Uptime:   %s' % ' '.join(labels))

    if self.flags:
      lines.append('Flags:    %s' % ' '.join(self.flags))

    if self.bandwidth:
      lines.append('Weight:   %i' % self.bandwidth)

    if self.bandwidth_observed:
      lines.append('Bandwidth: %0.2f MB/s' % (self.bandwidth_observed / 1000000.0))

    lines.append('Platform: %s' % self.platform)
    lines.append('Contact:  %s' % self.contact)
    lines.append('IP Addr:  %s' % self.ip_address)

    if self.country:
      lines.append('Country:  %s' % self.country.upper())

    lines.append('OR Port:  %s  Dir Port: %s' % (self.or_port, self.dir_port))
    lines.append('Exit Policy:')
    lines.append('    accept %s' % ' '.join(self.exit_policy4['accept']))
    lines.append('    reject %s' % ' '.join(self.exit_policy4['reject']))

    return '\n'.join(lines) + '\n'

  def __repr__(self) -> str:
    return '<RouterDescriptor %s (%s)>' % (self.nickname, self.fingerprint)

  def __eq__(self, other: Any) -> bool:
    return isinstance(other, RouterDescriptor) and self.get_array() == other.get_array()

  def __ne__(self, other: Any) -> bool:
    return not self == other

  def __hash__(self) -> int:
    return hash((self.nickname, self.fingerprint, self.published))

