# Copyright 2016-2020, Damian Johnson and The Tor Project
# See LICENSE for licensing information

"""
Parsing for server descriptors and microdescriptors, which contain the
infrequently changing information about a relay (contact information, exit
policy, public keys, etc). These are provided by...

* the control port via 'GETINFO desc/\\*' and 'GETINFO md/\\*' queries
* directory authorities and mirrors via their DirPort

Each line starts with a keyword that's handled by a function in our
KEYWORD_PARSERS table. Handlers take the line's value along with the queue of
lines that follow it (so they can consume multi-line blocks such as keys),
and provide a dict of the attributes they parsed.

**Module Overview:**

::

  parse_server_descriptors - parses server descriptors or microdescriptors
"""

import binascii
import collections
import re

import torutils
import torutils.descriptor
import torutils.util.str_tools
import torutils.util.tor_tools

from torutils.descriptor import RouterDescriptor, read_block
from torutils.util import log

from typing import Any, Callable, Deque, Dict, Iterable, List, Optional, Union

# keyword lines within a descriptor can be prefixed with 'opt', indicating
# that we can ignore them if we don't understand the keyword

OPTIONAL_PREFIX = 'opt '

UPTIME_PATTERN = re.compile('^\\d+$')

ParserType = Callable[[str, Deque[str]], Dict[str, Any]]


def _values(keyword: str, value: str, minimum: int) -> List[str]:
  values = value.split(' ') if value else []

  if len(values) < minimum:
    raise torutils.ProtocolError('Error parsing %s line. Expected %i values, got %i' % (keyword, minimum, len(values)))

  return values


def _int(keyword: str, value: str) -> int:
  if not value.isdigit():
    raise torutils.ProtocolError("%s line should have numeric values, got '%s'" % (keyword, value))

  return int(value)


def _parse_router_line(value: str, lines: Deque[str]) -> Dict[str, Any]:
  # "router" nickname address ORPort SOCKSPort DirPort

  values = _values('router', value, 5)

  return {
    'nickname': values[0],
    'ip_address': values[1],
    'or_port': _int('router', values[2]),
    'dir_port': _int('router', values[4]),
  }


def _parse_published_line(value: str, lines: Deque[str]) -> Dict[str, Any]:
  # "published" YYYY-MM-DD HH:MM:SS

  values = value.split(' ') if value else []

  if len(values) != 2:
    raise torutils.ProtocolError('Error parsing published line. Expected 2 values, got %i' % len(values))

  try:
    return {'published': torutils.util.str_tools._parse_timestamp(value)}
  except ValueError:
    raise torutils.ProtocolError("Published line's time wasn't parsable: %s" % value)


def _parse_fingerprint_line(value: str, lines: Deque[str]) -> Dict[str, Any]:
  # digests are grouped in blocks of four, like...
  # "fingerprint" 9695 DFC3 5FFE B861 329B 9F1A B04C 4639 7020 CE31

  fingerprint = value.replace(' ', '')

  if not torutils.util.tor_tools.is_hex_digits(fingerprint, 40):
    raise torutils.ProtocolError('Fingerprint line should have forty hex digits: %s' % value)

  return {'fingerprint': fingerprint.upper()}


def _parse_hibernating_line(value: str, lines: Deque[str]) -> Dict[str, Any]:
  return {'hibernating': value == '1'}


def _parse_uptime_line(value: str, lines: Deque[str]) -> Dict[str, Any]:
  if not UPTIME_PATTERN.match(value or ''):
    raise torutils.ProtocolError('Invalid uptime, expected numeric value')

  return {'uptime': int(value)}


def _parse_ntor_onion_key_line(value: str, lines: Deque[str]) -> Dict[str, Any]:
  try:
    torutils.util.str_tools._decode_b64(value or '')
  except binascii.Error:
    raise torutils.ProtocolError('ntor-onion-key did not contain valid base64 encoded data')

  return {'ntor_onion_key': value}


def _parse_accept_line(value: str, lines: Deque[str]) -> Dict[str, Any]:
  return {'exit_policy4': {'accept': value}}


def _parse_reject_line(value: str, lines: Deque[str]) -> Dict[str, Any]:
  return {'exit_policy4': {'reject': value}}


def _parse_policy_summary_line(value: str, lines: Deque[str]) -> Dict[str, Any]:
  # "p" ("accept" / "reject") SP PortList

  values = _values('p', value, 2)

  if values[0] not in ('accept', 'reject'):
    raise torutils.ProtocolError("p line should start with 'accept' or 'reject': %s" % value)

  return {'exit_policy4': {values[0]: values[1].split(',')}}


def _parse_ipv6_policy_line(value: str, lines: Deque[str]) -> Dict[str, Any]:
  # "ipv6-policy" ("accept" / "reject") SP PortList
  #
  # This is a summary, so anything not covered by the port list has the
  # opposite policy.

  values = _values('ipv6-policy', value, 2)
  action, ports = values[0], values[1].split(',')

  if action == 'accept':
    return {'exit_policy6': {'accept': ports, 'reject': ['*:*']}}
  elif action == 'reject':
    return {'exit_policy6': {'reject': ports, 'accept': ['*:*']}}
  else:
    raise torutils.ProtocolError("ipv6-policy line should start with 'accept' or 'reject': %s" % value)


def _parse_family_line(value: str, lines: Deque[str]) -> Dict[str, Any]:
  return {'family': value.split(' ') if value else []}


def _parse_hidden_service_dir_line(value: str, lines: Deque[str]) -> Dict[str, Any]:
  # versions default to '2' if unspecified
  return {'hidden_service_dir': value.strip() if value and value.strip() else '2'}


def _parse_bandwidth_line(value: str, lines: Deque[str]) -> Dict[str, Any]:
  # "bandwidth" bandwidth-avg bandwidth-burst bandwidth-observed

  values = _values('bandwidth', value, 3)

  return {
    'bandwidth_average': _int('bandwidth', values[0]),
    'bandwidth_burst': _int('bandwidth', values[1]),
    'bandwidth_observed': _int('bandwidth', values[2]),
  }


def _parse_proto_line(value: str, lines: Deque[str]) -> Dict[str, Any]:
  # "proto" such as...
  # Cons=1-2 Desc=1-2 DirCache=1 HSDir=1 HSIntro=3 HSRend=1-2 Link=1-4 Relay=1-2
  #
  # ... where entries can also be comma separated, like 'Something=3,5-6'

  protocols = collections.OrderedDict()

  for entry in (value or '').split(' '):
    if '=' not in entry:
      raise torutils.ProtocolError("Protocol entries should be a key/value mapping: %s" % entry)

    name, versions = entry.split('=', 1)
    protocols[name] = []

    for version in versions.split(','):
      if not version:
        continue
      elif '-' in version:
        low, high = version.split('-', 1)

        if not low.isdigit() or not high.isdigit():
          raise torutils.ProtocolError('Protocol ranges should be numeric: %s' % entry)
        elif int(low) <= int(high):
          protocols[name].extend(range(int(low), int(high) + 1))
      elif version.isdigit():
        protocols[name].append(int(version))
      else:
        raise torutils.ProtocolError('Protocol versions should be numeric: %s' % entry)

  return {'proto': protocols}


def _parse_id_line(value: str, lines: Deque[str]) -> Dict[str, Any]:
  # "id" keytype key, rsa1024 ids are ignored since they duplicate our fingerprint

  key_type, _, key = (value or '').partition(' ')
  return {'ed25519_key': key} if key_type == 'ed25519' else {}


def _parse_ntor_onion_key_crosscert_line(value: str, lines: Deque[str]) -> Dict[str, Any]:
  return {
    'ntor_onion_key_crosscert_signbit': value,
    'ntor_onion_key_crosscert': read_block(lines, torutils.descriptor.ED25519_CERT),
  }


def _simple(attribute: str) -> ParserType:
  return lambda value, lines: {attribute: value}


def _present(attribute: str) -> ParserType:
  return lambda value, lines: {attribute: True}


def _block(attribute: str, block_type: str) -> ParserType:
  return lambda value, lines: {attribute: read_block(lines, block_type)}


KEYWORD_PARSERS = {
  'router': _parse_router_line,
  'platform': _simple('platform'),
  'published': _parse_published_line,
  'fingerprint': _parse_fingerprint_line,
  'hibernating': _parse_hibernating_line,
  'uptime': _parse_uptime_line,
  'onion-key': _block('onion_key', torutils.descriptor.RSA_PUBLIC_KEY),
  'ntor-onion-key': _parse_ntor_onion_key_line,
  'signing-key': _block('signing_key', torutils.descriptor.RSA_PUBLIC_KEY),
  'accept': _parse_accept_line,
  'reject': _parse_reject_line,
  'ipv6-policy': _parse_ipv6_policy_line,
  'router-signature': _block('router_signature', torutils.descriptor.SIGNATURE),
  'contact': _simple('contact'),
  'family': _parse_family_line,
  'caches-extra-info': _present('caches_extra_info'),
  'extra-info-digest': _simple('extra_info_digest'),
  'hidden-service-dir': _parse_hidden_service_dir_line,
  'bandwidth': _parse_bandwidth_line,
  'protocols': _simple('protocols'),
  'proto': _parse_proto_line,
  'allow-single-hop-exits': _present('allow_single_hop_exits'),
  'or-address': _simple('or_address'),
  'master-key-ed25519': _simple('ed25519_key'),
  'router-sig-ed25519': _simple('ed25519_sig'),
  'identity-ed25519': _block('ed25519_identity', torutils.descriptor.ED25519_CERT),
  'onion-key-crosscert': _block('onion_key_crosscert', torutils.descriptor.CROSSCERT),
  'ntor-onion-key-crosscert': _parse_ntor_onion_key_crosscert_line,
  'tunnelled-dir-server': _present('tunnelled_dir_server'),

  # microdescriptor keywords

  'a': _simple('or_address'),
  'p': _parse_policy_summary_line,
  'p6': _parse_ipv6_policy_line,
  'id': _parse_id_line,
}  # type: Dict[str, ParserType]


def parse_server_descriptors(lines: Iterable[str], by_fingerprint: bool = False) -> Union[List[RouterDescriptor], Dict[Optional[str], RouterDescriptor]]:
  """
  Parses server descriptors or microdescriptors, such as the content of a
  'desc/all' GETINFO reply or a directory authority's '/tor/server/all'
  document. Each 'router' line starts a new descriptor, as does the 'onion-key'
  of each microdescriptor. Blank lines and the 'OK' that ends control port
  replies are skipped.

  Keywords we don't recognize are logged and skipped, unless they're prefixed
  with 'opt' in which case they're silently skipped.

  :param lines: content to be parsed
  :param by_fingerprint: provides a dict keyed by fingerprint rather than a
    list

  :returns: **list** of :class:`~torutils.descriptor.RouterDescriptor` in the
    order they appeared, or a **dict** of fingerprints to descriptors if
    **by_fingerprint** is set

  :raises: :class:`~torutils.ProtocolError` if the content is malformed
  """

  remaining = collections.deque(lines)
  descriptors = []  # type: List[RouterDescriptor]
  descriptor = None

  while remaining:
    line = remaining.popleft()

    if line == 'OK' or not line.strip():
      continue

    is_optional = line.startswith(OPTIONAL_PREFIX)

    if is_optional:
      line = line[len(OPTIONAL_PREFIX):]

    keyword, _, value = line.partition(' ')

    # microdescriptors lack a router line, and instead each begin with their
    # onion key

    if keyword == 'router' or (keyword in KEYWORD_PARSERS and (descriptor is None or (keyword == 'onion-key' and descriptor.nickname is None))):
      descriptor = RouterDescriptor()
      descriptors.append(descriptor)

    if keyword in KEYWORD_PARSERS:
      descriptor.set_array(KEYWORD_PARSERS[keyword](value, remaining))
    elif not is_optional:
      log.log_once('descriptor.unrecognized_keyword.%s' % keyword, log.INFO, 'No parser found for descriptor keyword %s' % keyword)

  if by_fingerprint:
    return collections.OrderedDict((desc.fingerprint, desc) for desc in descriptors)
  else:
    return descriptors
