# Copyright 2016-2020, Damian Johnson and The Tor Project
# See LICENSE for licensing information

"""
Module for interacting with the Tor control socket. The
:class:`~torutils.control.Controller` issues commands and provides their
replies, while dispatching any asynchronous events that arrive along the way
to a handler you provide.

::

  import torutils.control

  def print_bw(event_type, event):
    print('%s: sent %i, received %i' % (event_type, event.written, event.read))

  with torutils.control.Controller() as controller:
    controller.connect()
    controller.authenticate()

    controller.set_event_handler(print_bw)
    controller.set_events(['BW'])

    print('tor is running version %s' % controller.get_version())

**Module Overview:**

::

  ReadState - states the reply reader can be in
  ReplyReader - splits control socket lines into replies and events

  Controller - controller for a single tor control connection
    |- connect - connects to tor's control port
    |- authenticate - authenticates with whichever method tor accepts
    |- get_protocolinfo - provides tor's PROTOCOLINFO response
    |- set_event_handler - sets the callback for asynchronous events
    |- msg - sends a command and provides its reply
    |- send - sends a raw command
    |- recv_reply - reads the reply to the last command
    |
    |- get_info - issues a GETINFO query
    |- get_info_descriptor - server descriptor for a relay
    |- get_info_microdescriptor - microdescriptor for a relay
    |- get_info_directory_status - router status entries for a relay
    |- get_info_address - our best guess of our external address
    |- get_info_ip_to_country - locale of an address
    |- get_info_fingerprint - our relay fingerprint
    |- get_info_circuit_status - circuits tor presently has
    |- get_version - tor version
    |- get_info_status_version_current - status of our tor version
    |- get_info_status_version_recommended - versions the authorities recommend
    |- get_listeners - addresses we're listening on
    |- get_info_traffic_read - bytes we've read
    |- get_info_traffic_written - bytes we've written
    |- get_info_config_text - torrc contents that SAVECONF would write
    |
    |- get_conf - provides configuration values
    |- set_conf - changes configuration values
    |- signal - sends a signal to tor
    |- set_events - subscribes to asynchronous events
    |- resolve - resolves addresses through tor
    |- add_hidden_service - creates an ephemeral onion service
    |- del_hidden_service - removes an ephemeral onion service
    |
    |- quit - ends the control session
    +- close - closes the control socket
"""

import binascii
import inspect
import os
import re
import time

import torutils
import torutils.response
import torutils.socket
import torutils.util.connection
import torutils.util.enum
import torutils.util.tor_tools

from torutils.descriptor.router_status_entry import parse_router_status
from torutils.descriptor.server_descriptor import parse_server_descriptors
from torutils.response.events import parse_circuit_status
from torutils.util import log

from types import TracebackType
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Type, Union

ReadState = torutils.util.enum.UppercaseEnum(
  'AWAITING_LINE',
  'IN_EVENT',
  'IN_SYNC_REPLY',
  'DONE',
  'ERROR',
)

DEFAULT_ADDRESS = '127.0.0.1'
DEFAULT_PORT = 9051
DEFAULT_TIMEOUT = 30

CLIENT_HASH_CONSTANT = b'Tor safe cookie authentication controller-to-server hash'
SERVER_HASH_CONSTANT = b'Tor safe cookie authentication server-to-controller hash'

COOKIE_LENGTH = 32
NONCE_LENGTH = 32

LISTENER_TYPES = ('or', 'dir', 'socks', 'trans', 'natd', 'dns')
QUOTED_VALUE = re.compile('"([^"]+)"')

# GETINFO keywords for our relay lookups, in the order of (all, by
# fingerprint, by nickname)

DESCRIPTOR_KEYS = ('desc/all', 'desc/id/%s', 'desc/name/%s')
MICRODESCRIPTOR_KEYS = ('md/all', 'md/id/%s', 'md/name/%s')
NETWORK_STATUS_KEYS = ('ns/all', 'ns/id/%s', 'ns/name/%s')

EventHandler = Callable[[str, 'torutils.response.events.Event'], Any]


class ReplyReader(object):
  """
  Reassembles the lines of a control connection into the reply for our
  command, and the asynchronous events that are interleaved with it.

  Lines are fed in one at a time via :func:`~torutils.control.ReplyReader.feed`,
  each moving us between the following states...

  ================== ===========
  ReadState          Description
  ================== ===========
  **AWAITING_LINE**  nothing of our reply has arrived yet
  **IN_EVENT**       midway through an asynchronous event
  **IN_SYNC_REPLY**  midway through the reply to our command
  **DONE**           our reply is complete
  **ERROR**          tor sent content we couldn't make sense of
  ================== ===========

  Events are handed to **dispatch** as soon as their last line arrives, so
  they're seen in the order tor sent them and never leak into our reply.

  :var torutils.response.Reply reply: reply to our command
  :var torutils.util.enum.Enum state: **ReadState** we're presently in
  """

  def __init__(self, command: Optional[str] = None, dispatch: Optional[Callable[['torutils.response.Reply'], None]] = None) -> None:
    self.reply = torutils.response.Reply(command)
    self.state = ReadState.AWAITING_LINE

    self._dispatch = dispatch
    self._event = None  # type: Optional[torutils.response.Reply]
    self._expect_end = False  # last line was a data block terminator
    self._first = True  # nothing has been added to our reply yet

  def is_done(self) -> bool:
    return self.state == ReadState.DONE

  def feed(self, line: str) -> 'torutils.util.enum.Enum':
    """
    Processes a line from the control socket.

    :param line: line that we read, including its CRLF

    :returns: **ReadState** we're in after processing the line

    :raises: :class:`torutils.ProtocolError` if a data block terminator isn't
      followed by the last line of a reply
    """

    if self.state in (ReadState.DONE, ReadState.ERROR):
      raise ValueError('Reply reader is finished, it no longer accepts content (%s)' % self.state)

    if self._expect_end:
      self._expect_end = False

      if not torutils.response.is_end_reply_line(line):
        self.state = ReadState.ERROR
        raise torutils.ProtocolError('Last read "." line - expected end reply line but got "%s"' % line.rstrip('\r\n'))

      return self._end_line(line)

    # lines within a data block are taken as-is, even if they look like
    # status or event lines

    target = self._event if self._event is not None else self.reply

    if target.is_in_data_block():
      if torutils.response.is_data_terminator(line):
        target.close_data_block()
        self._expect_end = True
      else:
        target.append_line(line)

      return self.state

    if self._event is None and torutils.response.is_event_line(line):
      self._event = torutils.response.Reply()
      self.state = ReadState.IN_EVENT
    elif torutils.response.is_data_terminator(line):
      self._expect_end = True
      return self.state

    if torutils.response.is_end_reply_line(line):
      return self._end_line(line)

    if self._event is not None:
      self._event.append_line(line)
    else:
      self.reply.append_line(line)
      self._first = False
      self.state = ReadState.IN_SYNC_REPLY

    return self.state

  def _end_line(self, line: str) -> 'torutils.util.enum.Enum':
    if self._event is not None:
      event, self._event = self._event, None
      event.append_line(line)
      self.state = ReadState.AWAITING_LINE if self._first else ReadState.IN_SYNC_REPLY

      if self._dispatch:
        self._dispatch(event)
    else:
      # the trailing '250 OK' of a multi-line reply carries nothing

      if self._first or line.rstrip('\r\n') != '250 OK':
        self.reply.append_line(line)

      self._first = False
      self.state = ReadState.DONE

    return self.state


class Controller(object):
  """
  Connection with tor's control port.

  Only one command is in flight at a time. Asynchronous events are processed
  while we wait for our replies, and handed to the callback set via
  :func:`~torutils.control.Controller.set_event_handler`.

  :var str address: address of tor's control port
  :var int port: port of tor's control port
  :var float timeout: seconds to wait on socket operations
  """

  def __init__(self, address: str = DEFAULT_ADDRESS, port: int = DEFAULT_PORT, timeout: Optional[float] = DEFAULT_TIMEOUT, control_socket: Optional['torutils.socket.ControlSocket'] = None) -> None:
    self.address = address
    self.port = port
    self.timeout = timeout

    self._socket = control_socket
    self._event_handler = None  # type: Optional[EventHandler]
    self._protocolinfo = None  # type: Optional[torutils.response.protocolinfo.ProtocolInfoResponse]

  @staticmethod
  def from_port(address: str = DEFAULT_ADDRESS, port: int = DEFAULT_PORT, timeout: Optional[float] = DEFAULT_TIMEOUT) -> 'torutils.control.Controller':
    """
    Provides a controller that's connected to the given control port.

    :param address: ip address of the controller
    :param port: port number of the controller
    :param timeout: seconds to wait on socket operations

    :returns: connected :class:`~torutils.control.Controller`

    :raises: :class:`torutils.SocketError` if we're unable to connect
    """

    controller = Controller(address, port, timeout)
    controller.connect()
    return controller

  def connect(self) -> None:
    """
    Connects to tor's control port, closing any prior connection.

    :raises: :class:`torutils.SocketError` if we're unable to connect
    """

    self.close()

    self._socket = torutils.socket.ControlSocket(self.address, self.port, self.timeout)
    self._socket.connect()

  def is_alive(self) -> bool:
    return self._socket is not None and self._socket.is_alive()

  def close(self) -> None:
    """
    Closes our control socket. This is a no-op if we aren't connected.
    """

    if self._socket is not None:
      self._socket.close()

    self._protocolinfo = None

  def quit(self) -> bool:
    """
    Ends our control session, closing the socket whether or not tor
    acknowledges it.

    :returns: **True** if tor acknowledged the QUIT, **False** otherwise
    """

    try:
      return self.msg('QUIT').is_positive()
    except torutils.SocketError as exc:
      log.debug('Unable to send QUIT: %s' % exc)
      return False
    finally:
      self.close()

  def set_event_handler(self, handler: Optional[EventHandler]) -> None:
    """
    Sets the callback for asynchronous events, replacing any we had before.
    It's called with the event type and the
    :class:`~torutils.response.events.Event` we parsed from it...

    ::

      def handler(event_type, event):
        ...

    :param handler: function to be called with our events, **None** to stop
      notifying anyone

    :raises: **ValueError** if the handler can't be called with two positional
      arguments
    """

    if handler is not None:
      if not callable(handler):
        raise ValueError('Event handler must be callable: %s' % handler)

      try:
        inspect.signature(handler).bind(None, None)
      except TypeError:
        raise ValueError('Event handler must accept two positional arguments (event type and event)')
      except ValueError:
        pass  # builtins may not provide a signature

    self._event_handler = handler

  def send(self, command: str) -> None:
    """
    Sends a command to tor. Its reply should then be read with
    :func:`~torutils.control.Controller.recv_reply`.

    :param command: command to be sent

    :raises:
      * :class:`torutils.SocketError` if the send fails
      * :class:`torutils.SocketClosed` if we aren't connected
    """

    if self._socket is None:
      raise torutils.SocketClosed('Not connected')

    self._socket.send(command)

  def recv_reply(self, command: Optional[str] = None) -> 'torutils.response.Reply':
    """
    Reads the reply to the command we last sent. Any events that arrive
    before it completes are dispatched to our event handler. This blocks until
    the reply is complete, or our socket's timeout is reached.

    :param command: command the reply is for, replies of the form
      '250-command=value' are reduced to their value

    :returns: :class:`~torutils.response.Reply` from tor

    :raises:
      * :class:`torutils.ProtocolError` if the content from tor is malformed
      * :class:`torutils.SocketClosed` if the socket closes or times out
        before our reply is complete
    """

    if self._socket is None:
      raise torutils.SocketClosed('Not connected')

    reader = ReplyReader(command, self._handle_event)
    received = []

    while not reader.is_done():
      line = self._socket.recv_line()
      received.append(line)

      try:
        reader.feed(line)
      except torutils.ProtocolError:
        torutils.socket._log_trace(received)
        raise

    torutils.socket._log_trace(received)
    return reader.reply

  def msg(self, command: str, reply_command: Optional[str] = None) -> 'torutils.response.Reply':
    """
    Sends a command to tor and provides its reply.

    :param command: command to be sent
    :param reply_command: command name that the reply's lines are keyed by

    :returns: :class:`~torutils.response.Reply` from tor

    :raises:
      * :class:`torutils.ProtocolError` if the content from tor is malformed
      * :class:`torutils.SocketError` if a problem arises with the socket
    """

    self.send(command)
    return self.recv_reply(reply_command)

  def _handle_event(self, event: 'torutils.response.Reply') -> None:
    try:
      torutils.response.convert('EVENT', event, arrived_at = time.time())
    except Exception as exc:
      log.warn('Unable to parse event (%s): %s' % (exc, str(event)))
      return

    if self._event_handler is None:
      return

    try:
      self._event_handler(event.type, event)  # type: ignore
    except Exception as exc:
      log.warn('Event handler raised an uncaught exception (%s): %s' % (exc, str(event)))

  def get_protocolinfo(self) -> 'torutils.response.protocolinfo.ProtocolInfoResponse':
    """
    Issues a PROTOCOLINFO query, which tells us how we can authenticate. This
    is only queried once per connection.

    :returns: :class:`~torutils.response.protocolinfo.ProtocolInfoResponse`

    :raises:
      * :class:`torutils.ProtocolError` if the response is malformed
      * :class:`torutils.OperationFailed` if tor rejects the query
      * :class:`torutils.SocketError` if a problem arises with the socket
    """

    if self._protocolinfo is None:
      response = self.msg('PROTOCOLINFO 1')
      torutils.response.convert('PROTOCOLINFO', response)
      self._protocolinfo = response  # type: ignore

    return self._protocolinfo  # type: ignore

  def authenticate(self, password: Optional[str] = None) -> None:
    """
    Authenticates with whichever method tor accepts, trying...

      1. no authentication
      2. password, if one is provided
      3. safe cookie authentication

    A failed authentication attempt causes tor to close our connection.

    :param password: controller password, if we have one

    :raises:
      * :class:`torutils.AuthenticationFailure` if none of the methods tor
        accepts are available to us, or tor rejects our credentials
      * :class:`torutils.ProtocolError` if tor's responses are malformed or
        it fails to prove it knows our cookie
      * :class:`torutils.SocketError` if a problem arises with the socket
    """

    protocolinfo = self.get_protocolinfo()
    methods = protocolinfo.auth_methods

    if torutils.AuthMethod.NONE in methods:
      self._authenticate('AUTHENTICATE')
    elif torutils.AuthMethod.HASHEDPASSWORD in methods and password is not None:
      self._authenticate('AUTHENTICATE "%s"' % password.replace('"', '\\"'))
    elif torutils.AuthMethod.SAFECOOKIE in methods and protocolinfo.cookie_path:
      self._authenticate_safecookie(protocolinfo.cookie_path)
    else:
      raise torutils.AuthenticationFailure(None, 'No suitable authentication methods available')

  def _authenticate(self, command: str) -> None:
    reply = self.msg(command)

    if not reply.is_positive():
      # tor closes the connection after a failed authentication attempt

      self.close()
      raise torutils.AuthenticationFailure(reply.status_code(), reply.line(0))

  def _authenticate_safecookie(self, cookie_path: str) -> None:
    try:
      with open(cookie_path, 'rb') as cookie_file:
        cookie = cookie_file.read()
    except IOError as exc:
      raise torutils.AuthenticationFailure(None, "Authentication cookie '%s' is unreadable: %s" % (cookie_path, exc))

    if len(cookie) != COOKIE_LENGTH:
      raise torutils.AuthenticationFailure(None, "Authentication cookie '%s' is the wrong size (%i bytes instead of %i)" % (cookie_path, len(cookie), COOKIE_LENGTH))

    client_nonce = os.urandom(NONCE_LENGTH)

    challenge = self.msg('AUTHCHALLENGE SAFECOOKIE %s' % binascii.b2a_hex(client_nonce).decode('utf-8'))
    torutils.response.convert('AUTHCHALLENGE', challenge)

    expected_server_hash = torutils.util.connection.hmac_sha256(
      SERVER_HASH_CONSTANT,
      cookie + client_nonce + challenge.server_nonce,  # type: ignore
    )

    if not torutils.util.connection.cryptovariables_equal(challenge.server_hash, expected_server_hash):  # type: ignore
      raise torutils.ProtocolError('Tor provided the wrong server nonce')

    client_hash = torutils.util.connection.hmac_sha256(
      CLIENT_HASH_CONSTANT,
      cookie + client_nonce + challenge.server_nonce,  # type: ignore
    )

    self._authenticate('AUTHENTICATE %s' % binascii.b2a_hex(client_hash).decode('utf-8'))

  def get_info(self, keyword: str, *params: Any) -> 'torutils.response.Reply':
    """
    Issues a GETINFO query for a single keyword. The keyword can include
    '%s' style placeholders that are filled by our **params**...

    ::

      >>> controller.get_info('ip-to-country/%s', '1.2.3.4')[0]
      'us'

    :param keyword: GETINFO keyword to query
    :param params: values to format the keyword with

    :returns: :class:`~torutils.response.Reply` with the keyword's value

    :raises:
      * **ValueError** if the params don't match the keyword's placeholders
      * :class:`torutils.OperationFailed` if tor rejects the query
      * :class:`torutils.ProtocolError` if the response is malformed
      * :class:`torutils.SocketError` if a problem arises with the socket
    """

    if params:
      try:
        keyword = keyword % params
      except TypeError as exc:
        raise ValueError("Unable to format GETINFO keyword '%s' with %s: %s" % (keyword, params, exc))

    reply = self.msg('GETINFO %s' % keyword, keyword)
    torutils.response.raise_for_status(reply)

    return reply

  def _relay_query(self, keys: Tuple[str, str, str], relay: Optional[str]) -> 'torutils.response.Reply':
    all_key, id_key, name_key = keys

    if relay is None:
      return self.get_info(all_key)
    elif torutils.util.tor_tools.is_valid_fingerprint(relay):
      return self.get_info(id_key, relay if relay.startswith('$') else '$' + relay)
    elif torutils.util.tor_tools.is_valid_nickname(relay):
      return self.get_info(name_key, relay)
    else:
      raise ValueError('"%s" is not a valid router fingerprint or nickname' % relay)

  def get_info_descriptor(self, relay: Optional[str] = None) -> Any:
    """
    Provides the server descriptor of a relay. Modern tor clients don't
    download these by default, in which case tor rejects the query and you
    should use microdescriptors instead.

    :param relay: fingerprint or nickname of the relay, **None** for all of
      them

    :returns: :class:`~torutils.descriptor.RouterDescriptor` for the relay, or
      **list** of them if no relay was given

    :raises:
      * **ValueError** if the relay isn't a fingerprint or nickname
      * :class:`torutils.OperationFailed` if tor rejects the query
    """

    descriptors = parse_server_descriptors(self._relay_query(DESCRIPTOR_KEYS, relay).lines())
    return descriptors if relay is None else _first(descriptors)

  def get_info_microdescriptor(self, relay: Optional[str] = None) -> Any:
    """
    Provides the microdescriptor of a relay.

    :param relay: fingerprint or nickname of the relay, **None** for all of
      them

    :returns: :class:`~torutils.descriptor.RouterDescriptor` for the relay, or
      **list** of them if no relay was given

    :raises:
      * **ValueError** if the relay isn't a fingerprint or nickname
      * :class:`torutils.OperationFailed` if tor rejects the query
    """

    descriptors = parse_server_descriptors(self._relay_query(MICRODESCRIPTOR_KEYS, relay).lines())
    return descriptors if relay is None else _first(descriptors)

  def get_info_directory_status(self, relay: Optional[str] = None) -> Any:
    """
    Provides the router status entry that tor presently has for a relay.

    :param relay: fingerprint or nickname of the relay, **None** for all of
      them

    :returns: :class:`~torutils.descriptor.RouterDescriptor` for the relay, or
      **list** of them if no relay was given

    :raises:
      * **ValueError** if the relay isn't a fingerprint or nickname
      * :class:`torutils.OperationFailed` if tor rejects the query
    """

    descriptors = parse_router_status(self._relay_query(NETWORK_STATUS_KEYS, relay).lines())
    return descriptors if relay is None else _first(descriptors)

  def get_info_address(self) -> str:
    """
    Provides tor's best guess at our external address.
    """

    return self.get_info('address')[0]

  def get_info_ip_to_country(self, address: str) -> str:
    """
    Provides the two letter country code of an address, from tor's geoip
    database.

    :param address: address to look up
    """

    return self.get_info('ip-to-country/%s', address)[0]

  def get_info_fingerprint(self) -> str:
    """
    Provides our relay fingerprint. Tor rejects this if we aren't a relay.
    """

    return self.get_info('fingerprint')[0]

  def get_info_circuit_status(self) -> List['torutils.response.events.CircuitEvent']:
    """
    Provides the circuits tor presently has.

    :returns: **list** of :class:`~torutils.response.events.CircuitEvent` for
      our circuits
    """

    arrived_at = time.time()
    circuits = []

    for line in self.get_info('circuit-status').lines():
      if line.strip() and line != 'OK':
        circuits.append(parse_circuit_status(line, arrived_at))

    return circuits

  def get_version(self) -> str:
    """
    Provides the version of tor we're connected to, such as
    '0.4.2.7 (git-bfed2a5f1b76b8e6)'.
    """

    return self.get_info('version')[0]

  def get_info_status_version_current(self) -> str:
    """
    Provides the status of our tor version, such as 'recommended' or
    'obsolete'.
    """

    return self.get_info('status/version/current')[0]

  def get_info_status_version_recommended(self) -> List[str]:
    return self.get_info('status/version/recommended')[0].split(',')

  def get_listeners(self) -> Dict[str, Optional[List[str]]]:
    """
    Provides the addresses we're listening on for each kind of connection.
    Kinds we aren't able to query are **None**.

    :returns: **dict** mapping 'or', 'dir', 'socks', 'trans', 'natd' and 'dns'
      to the list of addresses we listen on
    """

    listeners = {}  # type: Dict[str, Optional[List[str]]]

    for listener_type in LISTENER_TYPES:
      try:
        reply = self.get_info('net/listeners/%s', listener_type)
        listeners[listener_type] = QUOTED_VALUE.findall(reply.line(0) or '')
      except torutils.ControllerError as exc:
        log.debug("Unable to query the '%s' listeners: %s" % (listener_type, exc))
        listeners[listener_type] = None

    return listeners

  def get_info_traffic_read(self) -> int:
    return _int_value(self.get_info('traffic/read'))

  def get_info_traffic_written(self) -> int:
    return _int_value(self.get_info('traffic/written'))

  def get_info_config_text(self) -> str:
    """
    Provides the torrc contents that tor would write if sent a SAVECONF.
    """

    return '\n'.join(self.get_info('config-text').lines())

  def get_conf(self, keywords: Union[str, Sequence[str]]) -> Dict[str, Optional[str]]:
    """
    Provides the values of configuration options.

    :param keywords: option or list of options to query

    :returns: **dict** mapping options to their values, which are **None** if
      the option is unset

    :raises:
      * :class:`torutils.InvalidArguments` if an option is unrecognized
      * :class:`torutils.OperationFailed` if tor rejects the query
    """

    if not isinstance(keywords, str):
      keywords = ' '.join(keywords)

    reply = self.msg('GETCONF %s' % keywords)
    torutils.response.convert('GETCONF', reply)

    return reply.entries  # type: ignore

  def set_conf(self, options: Dict[str, Any]) -> None:
    """
    Changes configuration options. Values with spaces are quoted for us.

    :param options: mapping of options to their new values

    :raises: :class:`torutils.OperationFailed` if tor rejects the options
    """

    params = []

    for keyword, value in options.items():
      value = str(value)

      if ' ' in value:
        value = '"%s"' % value.strip('"\'')

      params.append('%s=%s' % (keyword, value))

    self._checked_msg('SETCONF %s' % ' '.join(params))

  def signal(self, signal: str) -> None:
    """
    Sends a signal to tor, such as NEWNYM.

    :param signal: **Signal** to be sent

    :raises: :class:`torutils.InvalidArguments` if tor doesn't recognize the
      signal
    """

    if signal not in torutils.Signal:
      log.debug("Sending a signal we don't recognize to tor: %s" % signal)

    self._checked_msg('SIGNAL %s' % signal)

  def set_events(self, events: Union[str, Sequence[str]]) -> None:
    """
    Subscribes to asynchronous events, replacing our prior subscriptions.
    Events are delivered to the handler set via
    :func:`~torutils.control.Controller.set_event_handler`.

    :param events: event type or list of event types

    :raises: :class:`torutils.InvalidArguments` if an event type is
      unrecognized, in which case none of our events are set
    """

    if not isinstance(events, str):
      events = ' '.join(events)

    self._checked_msg('SETEVENTS %s' % events)

  def resolve(self, addresses: Union[str, Sequence[str]]) -> None:
    """
    Asks tor to resolve addresses. Results arrive as ADDRMAP events.

    :param addresses: hostname or list of hostnames to resolve
    """

    if not isinstance(addresses, str):
      addresses = ' '.join(addresses)

    self._checked_msg('RESOLVE %s' % addresses)

  def add_hidden_service(self, port: int, key_type: str = 'NEW', key_blob: str = 'BEST', flags: Optional[Sequence[str]] = None, target: Optional[str] = None) -> Tuple[str, Optional[str]]:
    """
    Creates an ephemeral onion service.

    :param port: virtual port of the service
    :param key_type: 'NEW' for a new key, otherwise the type of **key_blob**
    :param key_blob: type of key to make if **key_type** is 'NEW', otherwise
      our private key
    :param flags: flags such as 'Detach' or 'DiscardPK'
    :param target: address or port that connections are forwarded to,
      defaulting to the virtual port on localhost

    :returns: **tuple** of the form **(service_id, private_key)**, the key
      being **None** if tor doesn't provide one

    :raises: :class:`torutils.OperationFailed` if tor rejects the request
    """

    command = 'ADD_ONION %s:%s' % (key_type, key_blob)

    if flags:
      command += ' Flags=%s' % ','.join(flags)

    command += ' Port=%s' % port

    if target:
      command += ',%s' % target

    reply = self._checked_msg(command)

    if 'ServiceID' not in reply:
      raise torutils.ProtocolError('ADD_ONION response is missing its ServiceID: %s' % reply, reply.status_code())

    return reply['ServiceID'], reply.get('PrivateKey')

  def del_hidden_service(self, service_id: str) -> None:
    """
    Removes an ephemeral onion service.

    :param service_id: onion address of the service, without '.onion'
    """

    self._checked_msg('DEL_ONION %s' % service_id)

  def _checked_msg(self, command: str) -> 'torutils.response.Reply':
    reply = self.msg(command)
    torutils.response.raise_for_status(reply)
    return reply

  def __enter__(self) -> 'torutils.control.Controller':
    return self

  def __exit__(self, exit_type: Optional[Type[BaseException]], value: Optional[BaseException], traceback: Optional[TracebackType]) -> None:
    self.close()


def _first(entries: List[Any]) -> Any:
  return entries[0] if entries else None


def _int_value(reply: 'torutils.response.Reply') -> int:
  value = reply.line(0)

  if value is None or not value.isdigit():
    raise torutils.ProtocolError("Expected a numeric value but got '%s'" % value, reply.status_code())

  return int(value)
