# Copyright 2016-2020, Damian Johnson and The Tor Project
# See LICENSE for licensing information

"""
Supports communication with tor's control port. This is a thin, blocking,
line oriented wrapper around a socket. Messages are sent as basic strings and
read back a line at a time, which the :class:`~torutils.control.Controller`
assembles into replies and events.

**This module only consists of low level components, and is not intended for
users.** See the :class:`~torutils.control.Controller` if you're looking to
get started.

**Module Overview:**

::

  ControlSocket - Socket wrapper that speaks the tor control protocol.
    |- connect - connects a new socket
    |- send - sends a message to the socket
    |- recv_line - reads a line from the socket
    |- is_alive - reports if the socket is known to be closed
    |- connection_time - timestamp when socket last connected or disconnected
    +- close - shuts down the socket

  send_formatting - Performs the formatting expected from sent messages.
"""

import socket
import time

import torutils
import torutils.util.str_tools

from torutils.util import log

from types import TracebackType
from typing import List, Optional, Type, Union

ERROR_MSG = 'Error while receiving a control message (%s): %s'

# lines to limit our trace logging to, you can disable this by setting it to None

TRUNCATE_LOGS = 10


class ControlSocket(object):
  """
  Blocking socket to tor's control port. Reads block until a line arrives, so
  callers that want a bounded wait should provide a **timeout**. Timeouts and
  other read failures surface as :class:`~torutils.SocketClosed`.

  :var str address: address of tor's control port
  :var int port: port of tor's control port
  :var float timeout: seconds to wait on socket operations
  """

  def __init__(self, address: str = '127.0.0.1', port: int = 9051, timeout: Optional[float] = 30) -> None:
    self.address = address
    self.port = port
    self.timeout = timeout

    self._socket = None  # type: Optional[socket.socket]
    self._reader = None
    self._writer = None
    self._is_alive = False
    self._connection_time = 0.0  # time when we last connected or disconnected

  def is_alive(self) -> bool:
    """
    Checks if the socket is known to be closed. We won't be aware if it is
    until we either use it or have explicitily shut it down.

    :returns: **bool** that's **True** if our socket is connected and **False**
      otherwise
    """

    return self._is_alive

  def connection_time(self) -> float:
    """
    Provides the unix timestamp for when our socket was either connected or
    disconnected.

    :returns: **float** for when we last connected or disconnected, zero if
      we've never connected
    """

    return self._connection_time

  def connect(self) -> None:
    """
    Connects to tor's control port. If we're already connected then this
    reconnects.

    :raises: :class:`torutils.SocketError` if unable to make a socket
    """

    if self._is_alive:
      self.close()

    try:
      self._socket = socket.create_connection((self.address, self.port), self.timeout)
    except (OSError, ValueError) as exc:
      raise torutils.SocketError('Failed to connect to control port %s:%s: %s' % (self.address, self.port, exc))

    self._reader = self._socket.makefile('rb')
    self._writer = self._socket.makefile('wb', buffering = 0)
    self._is_alive = True
    self._connection_time = time.time()

  def send(self, message: Union[str, bytes]) -> None:
    """
    Formats and sends a message to the control socket. A partial write is
    treated as a failure since tor would be left with an incomplete command.

    :param message: message to be sent on the control socket

    :raises:
      * :class:`torutils.SocketError` if a problem arises in using the socket
      * :class:`torutils.SocketClosed` if the socket is known to be shut down
    """

    if not self._is_alive or self._writer is None:
      raise torutils.SocketClosed('Not connected')

    message = send_formatting(torutils.util.str_tools._to_unicode(message))
    content = torutils.util.str_tools._to_bytes(message)

    try:
      written = self._writer.write(content)
    except OSError as exc:
      log.info('Failed to send: %s' % exc)

      if isinstance(exc, BrokenPipeError):
        self.close()
        raise torutils.SocketClosed(exc)
      else:
        raise torutils.SocketError(exc)

    if written is not None and written != len(content):
      log.info('Failed to send: only wrote %i of %i bytes' % (written, len(content)))
      raise torutils.SocketError('Failed to write data to control port')

    if log.is_tracing():
      log_message = message.replace('\r\n', '\n').rstrip()
      msg_div = '\n' if '\n' in log_message else ' '
      log.trace('Sent to tor:%s%s' % (msg_div, log_message))

  def recv_line(self) -> str:
    """
    Reads a single line from the control socket, including its CRLF.

    :returns: **str** with the line we read

    :raises: :class:`torutils.SocketClosed` if the socket closes, times out, or
      otherwise fails before providing a line
    """

    if not self._is_alive or self._reader is None:
      raise torutils.SocketClosed('Not connected')

    try:
      line = self._reader.readline()
    except (OSError, ValueError) as exc:
      log.info(ERROR_MSG % ('SocketClosed', 'received exception "%s"' % exc))
      self.close()
      raise torutils.SocketClosed(exc)

    if not line:
      log.info(ERROR_MSG % ('SocketClosed', 'empty socket content'))
      self.close()
      raise torutils.SocketClosed('Received empty socket content.')

    return torutils.util.str_tools._to_unicode(line)

  def close(self) -> None:
    """
    Shuts down the socket. If it's already closed then this is a no-op.
    """

    for closable in (self._reader, self._writer, self._socket):
      if closable is None:
        continue

      try:
        closable.close()
      except OSError as exc:
        log.debug('Error while closing the control socket: %s' % exc)

    self._socket, self._reader, self._writer = None, None, None

    if self._is_alive:
      self._connection_time = time.time()

    self._is_alive = False

  def __enter__(self) -> 'torutils.socket.ControlSocket':
    return self

  def __exit__(self, exit_type: Optional[Type[BaseException]], value: Optional[BaseException], traceback: Optional[TracebackType]) -> None:
    self.close()


def send_formatting(message: str) -> str:
  """
  Performs the formatting expected from sent control messages. A command is
  either a single line...

  ::

    <message>\\r\\n

  ... or, if it contains newlines, a multi-line command whose data ends with
  a lone period...

  ::

    +<line 1>\\r\\n
    <line 2>\\r\\n
    .\\r\\n

  :param message: message to be formatted

  :returns: **str** of the message wrapped by the formatting expected from
    controllers
  """

  # if we already have \r\n entries then standardize on \n to start with
  message = message.replace('\r\n', '\n')

  if '\n' in message:
    return '+%s\r\n.\r\n' % message.replace('\n', '\r\n')
  else:
    return message + '\r\n'


def _log_trace(lines: List[str]) -> None:
  if not log.is_tracing():
    return

  log_message = ''.join(lines).replace('\r\n', '\n').rstrip()
  log_message_lines = log_message.split('\n')

  if TRUNCATE_LOGS and len(log_message_lines) > TRUNCATE_LOGS:
    log_message = '\n'.join(log_message_lines[:TRUNCATE_LOGS] + ['... %i more lines...' % (len(log_message_lines) - TRUNCATE_LOGS)])

  if len(log_message_lines) > 2:
    log.trace('Received from tor:\n%s' % log_message)
  else:
    log.trace('Received from tor: %s' % log.escape(log_message))
