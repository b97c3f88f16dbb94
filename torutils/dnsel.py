# Copyright 2016-2020, Damian Johnson and The Tor Project
# See LICENSE for licensing information

"""
Checks if an address belongs to a tor exit by querying the Tor Project's
exit list DNS service. An address such as 1.2.3.4 is looked up as...

::

  4.3.2.1.dnsel.torproject.org

... which resolves to 127.0.0.2 if it's an exit, and provides the exit's
fingerprints as TXT records.

::

  import torutils.dnsel

  if torutils.dnsel.is_tor('185.220.101.1'):
    print('That is a tor exit: %s' % ', '.join(torutils.dnsel.get_fingerprints('185.220.101.1')))

**Module Overview:**

::

  is_tor - checks if an address is a tor exit
  get_fingerprints - provides the fingerprints of exits with an address
  dnsel_name - hostname we query for an address
  query - issues an exit list DNS query

  DnsAnswer - resource record from a DNS response
"""

import collections
import random
import socket
import struct

import torutils
import torutils.util.connection

from torutils.util import log

from typing import List, Optional, Tuple

DNSEL_SERVERS = ('check-01.torproject.org',)
DNSEL_DOMAIN = 'dnsel.torproject.org'
DNS_PORT = 53
DEFAULT_TIMEOUT = 5

EXIT_ADDRESS = '127.0.0.2'

TYPE_A = 1
TYPE_TXT = 16
CLASS_IN = 1

HEADER_FORMAT = '!6H'
HEADER_SIZE = 12
RECORD_FORMAT = '!2HIH'
RECORD_SIZE = 10
POINTER_MASK = 0xC0

RCODE_NXDOMAIN = 3

RCODE_ERRORS = {
  1: 'The name server was unable to interpret the query',
  2: 'Server failure, the name server was unable to process this query',
  4: 'The name server does not support the requested kind of query',
  5: 'The name server refuses to perform the specified operation for policy reasons',
}

DnsAnswer = collections.namedtuple('DnsAnswer', ['name', 'type', 'cls', 'ttl', 'data'])


def is_tor(address: str, server: Optional[str] = None, timeout: float = DEFAULT_TIMEOUT) -> bool:
  """
  Checks if an address belongs to a tor exit.

  :param address: IPv4 or IPv6 address to check
  :param server: DNS server to query, a random one of **DNSEL_SERVERS** if
    not provided
  :param timeout: seconds to wait for a response

  :returns: **True** if the address is a tor exit, **False** otherwise

  :raises:
    * **ValueError** if the address is malformed
    * :class:`torutils.ResolutionFailed` if the query fails
  """

  for answer in query(address, TYPE_A, server, timeout):
    if answer.type == TYPE_A:
      return answer.data == EXIT_ADDRESS

  return False


def get_fingerprints(address: str, server: Optional[str] = None, timeout: float = DEFAULT_TIMEOUT) -> List[str]:
  """
  Provides the fingerprints of tor exits with the given address.

  :param address: IPv4 or IPv6 address to check
  :param server: DNS server to query, a random one of **DNSEL_SERVERS** if
    not provided
  :param timeout: seconds to wait for a response

  :returns: **list** of relay fingerprints, which is empty if the address
    isn't an exit

  :raises:
    * **ValueError** if the address is malformed
    * :class:`torutils.ResolutionFailed` if the query fails
  """

  return [answer.data for answer in query(address, TYPE_TXT, server, timeout) if answer.type == TYPE_TXT]


def dnsel_name(address: str) -> str:
  """
  Provides the hostname we query for an address. IPv4 addresses have their
  octets reversed, and IPv6 addresses have the nibbles of their expanded
  form reversed...

  ::

    >>> dnsel_name('1.2.3.4')
    '4.3.2.1.dnsel.torproject.org'

    >>> dnsel_name('2001:db8::1')
    '1.0.0.0.0.0.0.0.0.0.0.0.0.0.0.0.0.0.0.0.0.0.0.0.8.b.d.0.1.0.0.2.dnsel.torproject.org'

  :param address: IPv4 or IPv6 address

  :returns: **str** hostname to query

  :raises: **ValueError** if the address is malformed
  """

  if torutils.util.connection.is_valid_ipv4_address(address):
    reversed_address = '.'.join(reversed(address.split('.')))
  elif torutils.util.connection.is_valid_ipv6_address(address, allow_brackets = True):
    nibbles = torutils.util.connection.expand_ipv6_address(address).replace(':', '')
    reversed_address = '.'.join(reversed(nibbles))
  else:
    raise ValueError("'%s' isn't a valid IPv4 or IPv6 address" % address)

  return '%s.%s' % (reversed_address, DNSEL_DOMAIN)


def query(address: str, query_type: int, server: Optional[str] = None, timeout: float = DEFAULT_TIMEOUT) -> List[DnsAnswer]:
  """
  Issues an exit list query for an address.

  :param address: IPv4 or IPv6 address to look up
  :param query_type: DNS record type to request
  :param server: DNS server to query, a random one of **DNSEL_SERVERS** if
    not provided
  :param timeout: seconds to wait for a response

  :returns: **list** of :class:`~torutils.dnsel.DnsAnswer` from the response,
    which is empty if the name doesn't exist

  :raises:
    * **ValueError** if the address is malformed
    * :class:`torutils.ResolutionFailed` if the query fails
  """

  if server is None:
    server = random.choice(DNSEL_SERVERS)

  hostname = dnsel_name(address)
  transaction_id = random.randint(1, 0x7fff)
  request = _build_query(transaction_id, hostname, query_type)

  log.debug('Querying %s for the %s record of %s' % (server, query_type, hostname))

  try:
    with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as dns_socket:
      dns_socket.settimeout(timeout)
      dns_socket.sendto(request, (server, DNS_PORT))
      response = dns_socket.recv(8192)
  except socket.timeout:
    raise torutils.ResolutionFailed('DNS request to %s timed out' % server)
  except OSError as exc:
    raise torutils.ResolutionFailed('Failed to send DNS request to %s: %s' % (server, exc))

  return _parse_response(transaction_id, response)


def _build_query(transaction_id: int, hostname: str, query_type: int) -> bytes:
  # header of a standard query with recursion desired and a single question

  request = struct.pack(HEADER_FORMAT, transaction_id, 0x100, 1, 0, 0, 0)

  for label in hostname.split('.'):
    label_bytes = label.encode('ascii')
    request += struct.pack('!B', len(label_bytes)) + label_bytes

  return request + b'\x00' + struct.pack('!2H', query_type, CLASS_IN)


def _parse_response(transaction_id: int, response: bytes) -> List[DnsAnswer]:
  """
  Provides the answers from a DNS response.

  :param transaction_id: transaction id of our query
  :param response: response from the DNS server

  :returns: **list** of :class:`~torutils.dnsel.DnsAnswer`

  :raises: :class:`torutils.ResolutionFailed` if the response is malformed or
    an error
  """

  if len(response) < HEADER_SIZE:
    raise torutils.ResolutionFailed('DNS lookup failed, response is less than %i octets' % HEADER_SIZE)

  response_id, flags, question_count, answer_count, _, _ = struct.unpack(HEADER_FORMAT, response[:HEADER_SIZE])

  if not flags >> 15:
    raise torutils.ResolutionFailed('DNS response QR flag is not set to response (1)')
  elif response_id != transaction_id:
    raise torutils.ResolutionFailed('DNS answer packet transaction ID mismatch (expected %i but got %i)' % (transaction_id, response_id))

  rcode = flags & 0x0f

  if rcode == RCODE_NXDOMAIN:
    return []
  elif rcode in RCODE_ERRORS:
    raise torutils.ResolutionFailed(RCODE_ERRORS[rcode])
  elif rcode != 0:
    raise torutils.ResolutionFailed('Bad RCODE in DNS response: %i' % rcode)

  offset = HEADER_SIZE
  answers = []

  try:
    for _ in range(question_count):
      _, offset = _read_name(response, offset)
      offset += 4  # question type and class

    for _ in range(answer_count):
      name, offset = _read_name(response, offset)
      record_type, record_class, ttl, data_length = struct.unpack(RECORD_FORMAT, response[offset:offset + RECORD_SIZE])
      offset += RECORD_SIZE

      record_data = response[offset:offset + data_length]
      offset += data_length

      if len(record_data) != data_length:
        raise torutils.ResolutionFailed('DNS response was truncated')

      answers.append(DnsAnswer(name, record_type, record_class, ttl, _record_value(record_type, record_data)))
  except (struct.error, IndexError) as exc:
    raise torutils.ResolutionFailed('Malformed DNS response: %s' % exc)

  return answers


def _read_name(response: bytes, offset: int) -> Tuple[str, int]:
  """
  Reads a name from the response, following compression pointers.

  :returns: **tuple** of the form (name, offset after the name)
  """

  labels = []
  end_offset = None
  jumps = 0

  while True:
    length = response[offset]

    if length == 0:
      offset += 1
      break
    elif length & POINTER_MASK == POINTER_MASK:
      if end_offset is None:
        end_offset = offset + 2

      jumps += 1

      if jumps > 64:
        raise torutils.ResolutionFailed('DNS response has a compression loop')

      offset = struct.unpack('!H', response[offset:offset + 2])[0] & 0x3fff
    else:
      labels.append(response[offset + 1:offset + 1 + length].decode('ascii', 'replace'))
      offset += 1 + length

  return '.'.join(labels), end_offset if end_offset is not None else offset


def _record_value(record_type: int, record_data: bytes) -> Optional[str]:
  if record_type == TYPE_A and len(record_data) == 4:
    return socket.inet_ntoa(record_data)
  elif record_type == TYPE_TXT and record_data:
    return record_data[1:1 + record_data[0]].decode('utf-8', 'replace')
  else:
    return None
