# Copyright 2016-2020, Damian Johnson and The Tor Project
# See LICENSE for licensing information

"""
Library for talking with tor's control port and directory authorities.

**Module Overview:**

::

  ControllerError - Base exception raised when using the controller.
    |- ProtocolError - Malformed socket data.
    |- OperationFailed - Tor was unable to successfully complete the operation.
    |  |- UnsatisfiableRequest - Tor was unable to satisfy a valid request.
    |  |- InvalidRequest - Invalid request.
    |  |  +- InvalidArguments - Invalid request parameters.
    |  +- AuthenticationFailure - Tor rejected our credentials.
    +- SocketError - Communication with the socket failed.
       +- SocketClosed - Socket has been shut down.

  DownloadFailed - Inability to download a directory document.
  ResolutionFailed - Inability to query the exit list DNS service.

.. data:: CircStatus (enum)

  Statuses that a circuit can be in.

  ============== ===========
  CircStatus     Description
  ============== ===========
  **LAUNCHED**   new circuit was created
  **BUILT**      circuit finished being created and can accept traffic
  **GUARD_WAIT** waiting to see if there's a circuit with a better guard
  **EXTENDED**   circuit has been extended by a hop
  **FAILED**     circuit construction failed
  **CLOSED**     circuit has been closed
  ============== ===========

.. data:: CircBuildFlag (enum)

  Attributes about how a circuit is built. Tor may provide flags not in this
  enum.

  ================= ===========
  CircBuildFlag     Description
  ================= ===========
  **ONEHOP_TUNNEL** single hop circuit to fetch directory information
  **IS_INTERNAL**   circuit that won't be used for client traffic
  **NEED_CAPACITY** circuit only includes high capacity relays
  **NEED_UPTIME**   circuit only includes relays with a high uptime
  ================= ===========

.. data:: CircPurpose (enum)

  Description of what a circuit is intended for. Tor may provide purposes not
  in this enum.

.. data:: StreamStatus (enum)

  State that a stream going through tor can have.

.. data:: GuardType (enum)

  Use a guard relay can be for.

.. data:: GuardStatus (enum)

  Status a guard relay can have.

.. data:: Signal (enum)

  Signals that the controller can send to tor.

  ================= ===========
  Signal            Description
  ================= ===========
  **RELOAD**        reloads our torrc
  **SHUTDOWN**      shut down, waiting ShutdownWaitLength first if we're a relay
  **DUMP**          dumps information about open connections and circuits to our log
  **DEBUG**         switch our logging to the DEBUG runlevel
  **HALT**          exit tor immediately
  **NEWNYM**        switch to new circuits, so new application requests don't share any circuits with old ones
  **CLEARDNSCACHE** clears cached DNS results
  **HEARTBEAT**     trigger a heartbeat log message
  ================= ===========

.. data:: AuthMethod (enum)

  Authentication methods tor can accept via PROTOCOLINFO.
"""

import torutils.util.enum

__version__ = '1.2.0'
__author__ = 'Damian Johnson'
__contact__ = 'atagar@torproject.org'
__url__ = 'https://gitweb.torproject.org/torutils.git'
__license__ = 'LGPLv3'

__all__ = [
  'descriptor',
  'response',
  'util',
  'control',
  'dnsel',
  'socket',
  'ControllerError',
  'ProtocolError',
  'OperationFailed',
  'UnsatisfiableRequest',
  'InvalidRequest',
  'InvalidArguments',
  'AuthenticationFailure',
  'SocketError',
  'SocketClosed',
  'DownloadFailed',
  'ResolutionFailed',
  'CircStatus',
  'CircBuildFlag',
  'CircPurpose',
  'CircClosureReason',
  'HiddenServiceState',
  'StreamStatus',
  'GuardType',
  'GuardStatus',
  'Signal',
  'AuthMethod',
]


class ControllerError(Exception):
  """
  Base error for controller communication issues.
  """


class ProtocolError(ControllerError):
  """
  Content from the control socket or a directory document could not be
  understood.

  :var str code: status code of the reply we were handling, **None** if
    unavailable
  """

  def __init__(self, message, code = None):
    super(ProtocolError, self).__init__(message)
    self.code = code


class OperationFailed(ControllerError):
  """
  Base exception class for failed operations that return an error code.

  :var str code: error code returned by Tor
  :var str message: error message returned by Tor or a human readable error
    message
  """

  def __init__(self, code = None, message = None):
    super(OperationFailed, self).__init__(message)
    self.code = code
    self.message = message


class UnsatisfiableRequest(OperationFailed):
  """
  Exception raised if Tor was unable to process our request.
  """


class InvalidRequest(OperationFailed):
  """
  Exception raised when the request was invalid or malformed.
  """


class InvalidArguments(InvalidRequest):
  """
  Exception class for requests which had invalid arguments.

  :var list arguments: a list of arguments which were invalid
  """

  def __init__(self, code = None, message = None, arguments = None):
    super(InvalidArguments, self).__init__(code, message)
    self.arguments = arguments


class AuthenticationFailure(OperationFailed):
  """
  Tor refused our credentials, or we had no way of authenticating.
  """


class SocketError(ControllerError):
  'Error arose while communicating with the control socket.'


class SocketClosed(SocketError):
  'Control socket was closed before completing the message.'


class DownloadFailed(IOError):
  """
  Inability to download a directory document.

  :var str url: url we failed to download from
  :var Exception error: original exception, **None** if our own check failed
  """

  def __init__(self, url, error = None, message = None):
    if message is None:
      message = 'Failed to download from %s (%s): %s' % (url, type(error).__name__, error)

    super(DownloadFailed, self).__init__(message)
    self.url = url
    self.error = error


class ResolutionFailed(IOError):
  """
  Our exit list DNS query failed or was answered with an error.
  """


CircStatus = torutils.util.enum.UppercaseEnum(
  'LAUNCHED',
  'BUILT',
  'GUARD_WAIT',
  'EXTENDED',
  'FAILED',
  'CLOSED',
)

CircBuildFlag = torutils.util.enum.UppercaseEnum(
  'ONEHOP_TUNNEL',
  'IS_INTERNAL',
  'NEED_CAPACITY',
  'NEED_UPTIME',
)

CircPurpose = torutils.util.enum.UppercaseEnum(
  'GENERAL',
  'HS_CLIENT_INTRO',
  'HS_CLIENT_REND',
  'HS_SERVICE_INTRO',
  'HS_SERVICE_REND',
  'TESTING',
  'CONTROLLER',
  'MEASURE_TIMEOUT',
  'HS_VANGUARDS',
  'PATH_BIAS_TESTING',
  'CIRCUIT_PADDING',
)

CircClosureReason = torutils.util.enum.UppercaseEnum(
  'NONE',
  'TORPROTOCOL',
  'INTERNAL',
  'REQUESTED',
  'HIBERNATING',
  'RESOURCELIMIT',
  'CONNECTFAILED',
  'OR_IDENTITY',
  'OR_CONN_CLOSED',
  'FINISHED',
  'TIMEOUT',
  'DESTROYED',
  'NOPATH',
  'NOSUCHSERVICE',
  'MEASUREMENT_EXPIRED',
  'IP_NOW_REDUNDANT',
)

HiddenServiceState = torutils.util.enum.UppercaseEnum(
  'HSCI_CONNECTING',
  'HSCI_INTRO_SENT',
  'HSCI_DONE',
  'HSCR_CONNECTING',
  'HSCR_ESTABLISHED_IDLE',
  'HSCR_ESTABLISHED_WAITING',
  'HSCR_JOINED',
  'HSSI_CONNECTING',
  'HSSI_ESTABLISHED',
  'HSSR_CONNECTING',
  'HSSR_JOINED',
)

StreamStatus = torutils.util.enum.UppercaseEnum(
  'NEW',
  'NEWRESOLVE',
  'REMAP',
  'SENTCONNECT',
  'SENTRESOLVE',
  'SUCCEEDED',
  'FAILED',
  'DETACHED',
  'CLOSED',
)

GuardType = torutils.util.enum.UppercaseEnum(
  'ENTRY',
)

GuardStatus = torutils.util.enum.UppercaseEnum(
  'NEW',
  'UP',
  'DOWN',
  'BAD',
  'GOOD',
  'DROPPED',
)

Signal = torutils.util.enum.UppercaseEnum(
  'RELOAD',
  'SHUTDOWN',
  'DUMP',
  'DEBUG',
  'HALT',
  'NEWNYM',
  'CLEARDNSCACHE',
  'HEARTBEAT',
)

AuthMethod = torutils.util.enum.UppercaseEnum(
  'NONE',
  'HASHEDPASSWORD',
  'COOKIE',
  'SAFECOOKIE',
)
