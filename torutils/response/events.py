# Copyright 2016-2020, Damian Johnson and The Tor Project
# See LICENSE for licensing information

"""
Asynchronous events tor sends once we've subscribed to them with SETEVENTS.
These share the reply grammar of other control port messages, but always
have a 650 status code...

::

  650 CIRC 212 EXTENDED $844AE9CAD04325E955E2BE1521563B79FE7094B7~Smeerboel BUILD_FLAGS=NEED_CAPACITY PURPOSE=GENERAL TIME_CREATED=2016-12-22T06:11:06.611813

Most events are made up of some positional arguments followed by KEY=value
mappings. The first token is the event type, which determines the
:class:`~torutils.response.events.Event` subclass we're converted to.

**Module Overview:**

::

  parse_circuit_status - parses a 'GETINFO circuit-status' line
  parse_circuit_path - parses the hops of a circuit path

  Event - Base for events we receive asynchronously.
    |- AddrMapEvent - ADDRMAP, a new address mapping
    |- BandwidthEvent - BW, bytes sent and received each second
    |- CircuitEvent - CIRC, a circuit changed
    |  +- hop_roles - guard, middle, and exit labels for our path
    |- GuardEvent - GUARD, our guard relays changed
    |- LogEvent - DEBUG, INFO, NOTICE, WARN, or ERR log messages
    |- NetworkStatusEvent - NS, router status entries changed
    |- NewConsensusEvent - NEWCONSENSUS, a new consensus arrived
    |- SignalEvent - SIGNAL, tor received a signal
    +- StreamEvent - STREAM, a stream changed
"""

import re
import time

import torutils
import torutils.descriptor.router_status_entry
import torutils.response
import torutils.util.str_tools

from torutils.descriptor import parse_delimited
from torutils.util import connection, log

from typing import Any, Dict, List, Optional, Tuple

# matches tokens that start a KEY=value tail, the fingerprint of a
# '$fingerprint=nickname' path entry doesn't qualify

KW_ARG = re.compile('^[A-Za-z0-9_]+=')

ADDRMAP_LINE = re.compile('^ADDRMAP (\\S+) (\\S+) "([^"]+)"')
ADDRMAP_ERROR = re.compile('error="?([^"\\s]+)"?')
ADDRMAP_EXPIRES = re.compile('EXPIRES="([^"]+)"')
ADDRMAP_CACHED = re.compile('CACHED="([^"]+)"')

HOP_ROLES = ('Guard', 'Middle', 'Exit')

# base message for when we get attributes not covered by our enums

UNRECOGNIZED_ATTR_MSG = "%s event had an unrecognized %s (%s). Maybe a new addition to the control protocol? Full Event: '%s'"


class Event(torutils.response.Reply):
  """
  Base for events we receive asynchronously. Events we don't have a subclass
  for are left as this, with their parsed content available through
  **positional_args** and **keyword_args**.

  :var str type: event type
  :var float arrived_at: unix timestamp for when the message arrived
  :var list positional_args: positional arguments of the event
  :var dict keyword_args: lowercase keys mapped to their values
  """

  _POSITIONAL_ARGS = ()  # type: Tuple[str, ...]
  _KEYWORD_ARGS = {}  # type: Dict[str, str]
  _SKIP_PARSING = False

  def _parse_message(self, arrived_at: Optional[float] = None, expected_type: Optional[str] = None) -> None:
    content = self.line(0) or ''

    if not content.strip():
      raise torutils.ProtocolError('Received a blank tor event. Events must at the very least have a type.', self.status_code())

    self.type = content.split()[0]
    self.arrived_at = arrived_at if arrived_at is not None else time.time()

    if expected_type and self.type != expected_type:
      raise torutils.ProtocolError("Expected a %s event but got '%s'" % (expected_type, content), self.status_code())

    # if we're a recognized event type then translate ourselves into that subclass

    if self.type in EVENT_TYPE_TO_CLASS:
      self.__class__ = EVENT_TYPE_TO_CLASS[self.type]

    self.positional_args = []  # type: List[str]
    self.keyword_args = {}  # type: Dict[str, str]

    if not self._SKIP_PARSING:
      self._parse_standard_attr(content)

    self._parse()

  def _parse_standard_attr(self, content: str) -> None:
    """
    Most events are of the form...

    ::

      650 TYPE *( positional_args ) *( key "=" value )

    Positional arguments run until the first KEY=value token, and the rest is
    decoded as a list of mappings. Attributes are then set for the entries
    our subclass names in **_POSITIONAL_ARGS** and **_KEYWORD_ARGS**.
    """

    fields = content.split()[1:]

    for index, field in enumerate(fields):
      if KW_ARG.match(field):
        self.positional_args = fields[:index]
        self.keyword_args = parse_delimited(' '.join(fields[index:]))
        break
    else:
      self.positional_args = fields

    for index, attr_name in enumerate(self._POSITIONAL_ARGS):
      setattr(self, attr_name, self.positional_args[index] if index < len(self.positional_args) else None)

    for keyword, attr_name in self._KEYWORD_ARGS.items():
      setattr(self, attr_name, self.keyword_args.get(keyword))

  # method overwritten by our subclasses for special handling that they do
  def _parse(self) -> None:
    pass

  def _log_if_unrecognized(self, attr: str, attr_enum: Any) -> None:
    """
    Logs if an attribute isn't among the values of its enum. Tor adds new
    values from time to time so this isn't an error.
    """

    values = getattr(self, attr)

    if not values:
      return

    if not isinstance(values, (list, tuple)):
      values = [values]

    for value in values:
      if value not in attr_enum:
        log_id = 'event.%s.unknown_%s.%s' % (self.type.lower(), attr, value)
        log.log_once(log_id, log.INFO, UNRECOGNIZED_ATTR_MSG % (self.type, attr.replace('_', ' '), value, self))


class AddrMapEvent(Event):
  """
  Event that indicates a new address mapping, for instance from a RESOLVE
  request.

  :var str hostname: address being resolved
  :var str destination: destination of the resolution, this is usually an ip,
    but could be a hostname if TrackHostExits is enabled or **None** if the
    resolution failed
  :var str expiry: expiration time of the resolution in local time
  :var str error: error code if the resolution failed
  :var datetime utc_expiry: expiration time of the resolution in UTC
  :var bool cached: **True** if the resolution will be kept until it expires,
    **None** if unknown
  """

  _SKIP_PARSING = True

  def _parse(self) -> None:
    content = self.line(0)
    match = ADDRMAP_LINE.match(content)

    if not match:
      raise torutils.ProtocolError("Failed to parse ADDRMAP line '%s'" % content, self.status_code())

    self.hostname, self.destination, self.expiry = match.groups()
    self.error = None
    self.utc_expiry = None
    self.cached = None

    if self.destination == '<error>':
      self.destination = None

    error_match = ADDRMAP_ERROR.search(content)
    expires_match = ADDRMAP_EXPIRES.search(content)
    cached_match = ADDRMAP_CACHED.search(content)

    if error_match:
      self.error = error_match.group(1)

    if expires_match:
      try:
        self.utc_expiry = torutils.util.str_tools._parse_timestamp(expires_match.group(1))
      except ValueError as exc:
        raise torutils.ProtocolError('Unable to parse ADDRMAP expiration (%s): %s' % (exc, content), self.status_code())

    if cached_match:
      self.cached = cached_match.group(1) == 'YES'


class BandwidthEvent(Event):
  """
  Event emitted every second with the bytes sent and received by tor.

  :var int read: bytes received by tor that second
  :var int written: bytes sent by tor that second
  """

  _POSITIONAL_ARGS = ('read', 'written')

  def _parse(self) -> None:
    if not self.read:
      raise torutils.ProtocolError('BW event is missing its read value', self.status_code())
    elif not self.written:
      raise torutils.ProtocolError('BW event is missing its written value', self.status_code())
    elif not self.read.isdigit() or not self.written.isdigit():
      raise torutils.ProtocolError("A BW event's bytes sent and received should be a positive numeric value, received: %s" % self, self.status_code())

    self.read = int(self.read)
    self.written = int(self.written)


class CircuitEvent(Event):
  """
  Event that indicates that a circuit has changed.

  :var str id: circuit identifier
  :var torutils.CircStatus status: reported status for the circuit
  :var list path: relays involved in the circuit, these are
    **(fingerprint, nickname)** tuples where the fingerprint keeps its '$'
  :var list build_flags: :data:`~torutils.CircBuildFlag` attributes
    governing how the circuit is built
  :var torutils.CircPurpose purpose: purpose that the circuit is intended for
  :var torutils.HiddenServiceState hs_state: status if this is a hidden service circuit
  :var str rend_query: circuit's rendezvous-point if this is hidden service related
  :var datetime created: time when the circuit was created or cannibalized
  :var torutils.CircClosureReason reason: reason for the circuit to be closed
  :var torutils.CircClosureReason remote_reason: remote side's reason for the circuit to be closed
  :var str socks_username: username for stream isolation
  :var str socks_password: password for stream isolation
  """

  _POSITIONAL_ARGS = ('id', 'status', 'path')
  _KEYWORD_ARGS = {
    'build_flags': 'build_flags',
    'purpose': 'purpose',
    'hs_state': 'hs_state',
    'rend_query': 'rend_query',
    'time_created': 'created',
    'reason': 'reason',
    'remote_reason': 'remote_reason',
    'socks_username': 'socks_username',
    'socks_password': 'socks_password',
  }

  def _parse(self) -> None:
    if not self.id or not self.status:
      raise torutils.ProtocolError('Error parsing circuit status, expected an id and status: %s' % self, self.status_code())
    elif self.status not in torutils.CircStatus:
      raise torutils.ProtocolError("Unknown circuit status '%s'" % self.status, self.status_code())

    # paths are only present once we've picked relays

    if self.path and self.path.startswith('$'):
      self.path = parse_circuit_path(self.path)
    else:
      self.path = []

    self.build_flags = self.build_flags.split(',') if self.build_flags else []

    if self.created is not None:
      try:
        self.created = torutils.util.str_tools._parse_iso_timestamp(self.created)
      except ValueError as exc:
        raise torutils.ProtocolError('Unable to parse create date (%s): %s' % (exc, self), self.status_code())

    self._log_if_unrecognized('build_flags', torutils.CircBuildFlag)
    self._log_if_unrecognized('purpose', torutils.CircPurpose)
    self._log_if_unrecognized('hs_state', torutils.HiddenServiceState)
    self._log_if_unrecognized('reason', torutils.CircClosureReason)
    self._log_if_unrecognized('remote_reason', torutils.CircClosureReason)

  def hop_roles(self) -> Optional[List[Tuple[str, Tuple[str, Optional[str]]]]]:
    """
    Labels the hops of a standard three hop circuit with their role.
    One hop tunnels and circuits of other lengths don't have well defined
    roles.

    :returns: **list** of **(role, (fingerprint, nickname))** tuples, or
      **None** if this isn't a three hop circuit
    """

    if len(self.path) != 3 or torutils.CircBuildFlag.ONEHOP_TUNNEL in self.build_flags:
      return None

    return list(zip(HOP_ROLES, self.path))


class GuardEvent(Event):
  """
  Event that indicates that our guard relays have changed.

  :var torutils.GuardType guard_type: purpose the guard relay is for
  :var str name: nickname or fingerprint of the guard relay
  :var str fingerprint: fingerprint of the guard relay, **None** if unavailable
  :var str nickname: nickname of the guard relay, **None** if unavailable
  :var torutils.GuardStatus status: status of the guard relay
  """

  _POSITIONAL_ARGS = ('guard_type', 'name', 'status')

  def _parse(self) -> None:
    if self.status is None:
      raise torutils.ProtocolError('GUARD reply incomplete; expect at least 4 parts: %s' % self, self.status_code())

    if self.name.startswith('$'):
      self.fingerprint, self.nickname = _parse_hop(self.name)
    else:
      self.fingerprint, self.nickname = None, self.name

    self._log_if_unrecognized('guard_type', torutils.GuardType)
    self._log_if_unrecognized('status', torutils.GuardStatus)


class LogEvent(Event):
  """
  Tor logging event. Single line messages are on the event's first line,
  whereas multi-line messages are a data block following it.

  :var str runlevel: runlevel of the logged message
  :var str message: logged message
  """

  _SKIP_PARSING = True

  def _parse(self) -> None:
    self.runlevel = self.type
    first_line = self.line(0)

    if ' ' in first_line:
      self.message = first_line.split(' ', 1)[1]
    else:
      lines = self.lines()[1:]

      if lines and lines[-1] == 'OK':
        lines = lines[:-1]

      self.message = '\n'.join(lines)


class NetworkStatusEvent(Event):
  """
  Event for when our copy of the consensus has changed for a relay.

  :var torutils.descriptor.RouterDescriptor descriptor: router status entry of
    the first relay that changed
  :var list descriptors: router status entries for all the relays that changed
  """

  _SKIP_PARSING = True

  def _parse(self) -> None:
    self.descriptors = torutils.descriptor.router_status_entry.parse_router_status(self.lines()[1:])
    self.descriptor = self.descriptors[0] if self.descriptors else None


class NewConsensusEvent(Event):
  """
  Event for when we have a new consensus.

  :var list descriptors: router status entries of the new consensus
  """

  _SKIP_PARSING = True

  def _parse(self) -> None:
    self.descriptors = torutils.descriptor.router_status_entry.parse_router_status(self.lines()[1:])


class SignalEvent(Event):
  """
  Event that indicates that tor has received and acted upon a signal.

  :var torutils.Signal signal: signal that tor received
  """

  _POSITIONAL_ARGS = ('signal',)

  def _parse(self) -> None:
    if not self.signal:
      raise torutils.ProtocolError('SIGNAL event is missing its signal: %s' % self, self.status_code())

    self._log_if_unrecognized('signal', torutils.Signal)


class StreamEvent(Event):
  """
  Event that indicates that a stream has changed.

  :var str id: stream identifier
  :var torutils.StreamStatus status: reported status for the stream
  :var str circ_id: circuit that the stream is attached to, **None** if
    it's unattached
  :var str target: destination of the stream
  :var str target_address: destination address (ip or hostname)
  :var int target_port: destination port
  :var str reason: reason for the stream to be closed
  :var str remote_reason: remote side's reason for the stream to be closed
  :var str source: origin of the REMAP request
  :var str source_addr: requester of the connection
  :var str purpose: purpose for the stream
  :var str socks_username: username for stream isolation
  :var str socks_password: password for stream isolation
  """

  _POSITIONAL_ARGS = ('id', 'status', 'circ_id', 'target')
  _KEYWORD_ARGS = {
    'reason': 'reason',
    'remote_reason': 'remote_reason',
    'source': 'source',
    'source_addr': 'source_addr',
    'purpose': 'purpose',
    'socks_username': 'socks_username',
    'socks_password': 'socks_password',
  }

  def _parse(self) -> None:
    if self.target is None:
      raise torutils.ProtocolError('STREAM event should have an id, status, circuit, and target: %s' % self, self.status_code())
    elif ':' not in self.target:
      raise torutils.ProtocolError("Target location must be of the form 'address:port': %s" % self, self.status_code())

    address, port = self.target.rsplit(':', 1)

    if not connection.is_valid_port(port, allow_zero = True):
      raise torutils.ProtocolError("Target location's port is invalid: %s" % self, self.status_code())

    self.target_address = address
    self.target_port = int(port)

    # circuit id of zero indicates that the stream is unattached

    if self.circ_id == '0':
      self.circ_id = None

    self._log_if_unrecognized('status', torutils.StreamStatus)


def _parse_hop(entry: str) -> Tuple[str, Optional[str]]:
  # hops are '$fingerprint~nickname', or '$fingerprint=nickname' from older
  # tor versions, with the nickname being optional

  for divider in ('~', '='):
    if divider in entry:
      fingerprint, nickname = entry.split(divider, 1)
      return (fingerprint, nickname)

  return (entry, None)


def parse_circuit_path(path: str) -> List[Tuple[str, Optional[str]]]:
  """
  Parses a comma separated circuit path, such as...

  ::

    >>> parse_circuit_path('$E57A476CD4DFBD99B4EE52A100A58610AD6E80B9~ran,$844AE9CAD04325E955E2BE1521563B79FE7094B7~Smeerboel')
    [('$E57A476CD4DFBD99B4EE52A100A58610AD6E80B9', 'ran'), ('$844AE9CAD04325E955E2BE1521563B79FE7094B7', 'Smeerboel')]

  :param path: circuit path to be parsed

  :returns: **list** of **(fingerprint, nickname)** tuples
  """

  return [_parse_hop(entry) for entry in path.split(',') if entry]


def parse_circuit_status(line: str, arrived_at: Optional[float] = None) -> CircuitEvent:
  """
  Parses a line of a 'GETINFO circuit-status' reply, which is formatted like a
  CIRC event without its type.

  :param line: circuit status line, with or without a leading 'CIRC'
  :param arrived_at: unix timestamp for when the line arrived

  :returns: :class:`~torutils.response.events.CircuitEvent` for the line

  :raises: :class:`~torutils.ProtocolError` if the line is malformed
  """

  line = line.strip()

  if not line.startswith('CIRC '):
    line = 'CIRC ' + line

  reply = torutils.response.Reply()
  reply.append_lines([line])
  torutils.response.convert('EVENT', reply, arrived_at = arrived_at, expected_type = 'CIRC')

  return reply  # type: ignore


EVENT_TYPE_TO_CLASS = {
  'ADDRMAP': AddrMapEvent,
  'BW': BandwidthEvent,
  'CIRC': CircuitEvent,
  'GUARD': GuardEvent,
  'NEWCONSENSUS': NewConsensusEvent,
  'NS': NetworkStatusEvent,
  'SIGNAL': SignalEvent,
  'STREAM': StreamEvent,
  'DEBUG': LogEvent,
  'INFO': LogEvent,
  'NOTICE': LogEvent,
  'WARN': LogEvent,
  'ERR': LogEvent,
}  # type: Dict[str, type]
