# Copyright 2016-2020, Damian Johnson and The Tor Project
# See LICENSE for licensing information

"""
Module for downloading server descriptors from the directory authorities.
Requests are plain HTTP to an authority's DirPort, so they don't go through
tor...

::

  from torutils.descriptor.remote import DirectoryClient

  client = DirectoryClient()

  for desc in client.get_server_descriptors():
    if desc.exit_policy4:
      print('  %s (%s)' % (desc.nickname, desc.fingerprint))

Authorities are tried in a random order. If one can't be reached we move on
to the next, until we either get a response or run out of authorities.

**Module Overview:**

::

  Authority - Directory authority we can download from.

  DirectoryClient - Downloads descriptors from the directory authorities.
    |- get_server_descriptors - provides all present server descriptors
    +- get_server_descriptor - provides the server descriptor of given relays

.. data:: DIRECTORY_AUTHORITIES

  Mapping of fingerprints to the :class:`~torutils.descriptor.remote.Authority`
  we download from by default.
"""

import collections
import random
import re
import socket
import zlib

import torutils
import torutils.response

from torutils.descriptor.server_descriptor import parse_server_descriptors
from torutils.util import log, str_tools

from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

DEFAULT_TIMEOUT = 5
USER_AGENT = 'torutils/%s' % torutils.__version__

HTTP_STATUS_LINE = re.compile('^HTTP/\\d\\.\\d (\\d{3}) (.*)$', re.IGNORECASE)

Authority = collections.namedtuple('Authority', ['nickname', 'address', 'dir_port', 'fingerprint'])

DIRECTORY_AUTHORITIES = collections.OrderedDict((auth.fingerprint, auth) for auth in (
  Authority('dannenberg', '193.23.244.244', 80, '7BE683E65D48141321C5ED92F075C55364AC7123'),
  Authority('dizum', '194.109.206.212', 80, '7EA6EAD6FD83083C538F44038BBFA077587DD755'),
  Authority('Faravahar', '154.35.175.225', 80, 'CF6D0AAFB385BE71B8E111FC5CFF4B47923733BC'),
  Authority('gabelmoo', '131.188.40.189', 80, 'F2044413DAC2E02E3D6BCF4735A19BCA1DE97281'),
  Authority('longclaw', '199.254.238.52', 80, '74A910646BCEEFBCD2E874FC1DC997430F968145'),
  Authority('maatuska', '171.25.193.9', 443, 'BD6A829255CB08E66FBE7D3748363586E46B3810'),
  Authority('moria1', '128.31.0.39', 9131, '9695DFC35FFEB861329B9F1AB04C46397020CE31'),
  Authority('Bifroest', '37.218.247.217', 80, '1D8F3A91C37C5D1C4C19B1AD1D0CFBE8BF72D8E1'),
  Authority('tor26', '86.59.21.38', 80, '847B1F850344D7876491A54892F904934E4EB85D'),
))


class DirectoryClient(object):
  """
  Downloads descriptors from the directory authorities. Our authorities are
  shuffled once when we're constructed, and each request walks through them
  in that order.

  :var list authorities: :class:`~torutils.descriptor.remote.Authority`
    instances we download from
  :var float timeout: seconds to wait when connecting to an authority
  :var str user_agent: user agent we provide with our requests
  """

  def __init__(self, authorities: Optional[Sequence[Authority]] = None, timeout: float = DEFAULT_TIMEOUT, user_agent: str = USER_AGENT) -> None:
    self.authorities = list(authorities if authorities is not None else DIRECTORY_AUTHORITIES.values())
    self.timeout = timeout
    self.user_agent = user_agent

    random.shuffle(self.authorities)
    self._cursor = 0

  def get_server_descriptors(self) -> List['torutils.descriptor.RouterDescriptor']:
    """
    Provides the present server descriptors of all relays.

    :returns: **list** of :class:`~torutils.descriptor.RouterDescriptor`

    :raises: :class:`torutils.DownloadFailed` if the download fails
    """

    return parse_server_descriptors(self._request('/tor/server/all.z').lines())  # type: ignore

  def get_server_descriptor(self, fingerprints: Union[str, Sequence[str]]) -> Any:
    """
    Provides the present server descriptor of the given relays.

    :param fingerprints: fingerprint or list of fingerprints to download

    :returns: :class:`~torutils.descriptor.RouterDescriptor` if we got
      a single descriptor, and a **list** of them otherwise

    :raises: :class:`torutils.DownloadFailed` if the download fails
    """

    if isinstance(fingerprints, str):
      fingerprints = [fingerprints]

    resource = '/tor/server/fp/%s.z' % '+'.join([fp.lstrip('$') for fp in fingerprints])
    descriptors = parse_server_descriptors(self._request(resource).lines())

    return descriptors[0] if len(descriptors) == 1 else descriptors

  def _next_authority(self) -> Optional[Authority]:
    if self._cursor >= len(self.authorities):
      return None

    authority = self.authorities[self._cursor]
    self._cursor += 1
    return authority

  def _request(self, resource: str) -> 'torutils.response.Reply':
    """
    Downloads a resource from the first authority that accepts our
    connection.

    :param resource: path of the resource to download

    :returns: :class:`~torutils.response.Reply` with a status line followed
      by the lines of the document

    :raises: :class:`torutils.DownloadFailed` if we run out of authorities or
      the response is unusable
    """

    self._cursor = 0

    while True:
      authority = self._next_authority()

      if authority is None:
        raise torutils.DownloadFailed(resource, message = 'No more directory servers available')

      url = 'http://%s:%i%s' % (authority.address, authority.dir_port, resource)

      try:
        conn = socket.create_connection((authority.address, authority.dir_port), self.timeout)
      except OSError as exc:
        log.debug("Unable to connect to %s (%s) for '%s': %s" % (authority.nickname, authority.address, resource, exc))
        continue

      try:
        conn.sendall(str_tools._to_bytes(_http_request(authority.address, resource, self.user_agent)))

        with conn.makefile('rb') as conn_file:
          response = conn_file.read()
      except OSError as exc:
        raise torutils.DownloadFailed(url, exc)
      finally:
        conn.close()

      status_code, message, body = _parse_http_response(url, response)

      reply = torutils.response.Reply()
      reply.append_line('%s %s\r\n' % (status_code, message))
      reply.append_lines(str_tools._to_unicode(body).split('\n'))

      log.trace('Downloaded %s from %s' % (resource, authority.nickname))
      return reply


def _http_request(host: str, resource: str, user_agent: str) -> str:
  return '\r\n'.join((
    'GET %s HTTP/1.0' % resource,
    'Host: %s' % host,
    'Connection: close',
    'User-Agent: %s' % user_agent,
  )) + '\r\n\r\n'


def _parse_http_response(url: str, response: bytes) -> Tuple[str, str, bytes]:
  """
  Parses a HTTP response, such as...

  ::

    HTTP/1.0 200 OK
    Date: Mon, 23 Apr 2018 18:43:47 GMT
    Content-Type: text/plain
    Content-Encoding: deflate
    Expires: Wed, 25 Apr 2018 18:43:47 GMT

    ... deflated descriptor content...

  :param url: location the response came from
  :param response: HTTP response

  :returns: **tuple** of the form (status_code, message, body), with the
    body decompressed

  :raises: :class:`torutils.DownloadFailed` if the response was unsuccessful,
    malformed, or in an encoding we don't support
  """

  header_data, divider, body = response.partition(b'\r\n\r\n')

  if not divider:
    raise torutils.DownloadFailed(url, message = 'Directory server sent a HTTP response without a body')

  header_lines = str_tools._to_unicode(header_data).split('\r\n')
  status_match = HTTP_STATUS_LINE.match(header_lines[0])

  if not status_match:
    raise torutils.DownloadFailed(url, message = 'Directory server sent a malformed HTTP response: %s' % header_lines[0])

  status_code, message = status_match.groups()

  if status_code != '200':
    raise torutils.DownloadFailed(url, message = 'Directory returned a negative response code to request: %s %s' % (status_code, message))

  headers = {}  # type: Dict[str, str]

  for line in header_lines[1:]:
    if ':' not in line:
      raise torutils.DownloadFailed(url, message = "Directory server sent a HTTP header without a ':' separator: %s" % line)

    name, value = line.split(':', 1)
    headers[name.strip().lower()] = value.strip()

  encoding = headers.get('content-encoding', 'identity')

  if encoding == 'deflate':
    try:
      body = zlib.decompress(body)
    except zlib.error as exc:
      raise torutils.DownloadFailed(url, exc, 'Failed to inflate response data: %s' % exc)
  elif encoding != 'identity':
    raise torutils.DownloadFailed(url, message = 'Directory sent response in an unknown encoding: %s' % encoding)

  return status_code, message, body
