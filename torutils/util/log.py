# Copyright 2016-2020, Damian Johnson and The Tor Project
# See LICENSE for licensing information

"""
Logging for torutils. Messages go to the 'torutils' logger, which is silent
until a handler is attached, either your own or the one provided by
:func:`~torutils.util.log.log_to_stdout`. For instance, to see everything
exchanged with tor's control port...

::

  from torutils.util import log

  log.log_to_stdout(log.Runlevel.TRACE)

**Module Overview:**

::

  get_logger - torutils logging.Logger
  logging_level - logging module value for a runlevel
  is_tracing - checks if a handler accepts TRACE messages
  escape - puts a multi-line message onto a single line

  log / log_once - logs at a runlevel, log_once only the first time for an id
  trace / debug / info / notice / warn / error - runlevel shorthands

  log_to_stdout - prints further messages

.. data:: Runlevel (enum)

  Runlevels torutils logs at, from noisiest to quietest.

  ========== ===========
  Runlevel   Used For
  ========== ===========
  **TRACE**  each line sent to or read from the control port
  **DEBUG**  descriptor and dns activity, lines we skip while parsing
  **INFO**   connections, authentication, values tor reported we don't recognize
  **NOTICE** nothing at present, reserved for users of the library
  **WARN**   events we couldn't parse or whose handler raised
  **ERROR**  nothing at present, reserved for users of the library
  ========== ===========
"""

import logging
import sys

import torutils.util.enum
import torutils.util.str_tools

Runlevel = torutils.util.enum.UppercaseEnum('TRACE', 'DEBUG', 'INFO', 'NOTICE', 'WARN', 'ERROR')
TRACE, DEBUG, INFO, NOTICE, WARN, ERR = list(Runlevel)

# logging module has no TRACE or NOTICE, so these sit five below DEBUG and
# five above INFO

LOG_VALUES = dict(zip(Runlevel, (
  logging.DEBUG - 5,
  logging.DEBUG,
  logging.INFO,
  logging.INFO + 5,
  logging.WARN,
  logging.ERROR,
)))

SILENT = logging.FATAL + 5

logging.addLevelName(LOG_VALUES[TRACE], 'TRACE')
logging.addLevelName(LOG_VALUES[NOTICE], 'NOTICE')

LOGGER = logging.getLogger('torutils')
LOGGER.setLevel(LOG_VALUES[TRACE])

if not LOGGER.handlers:
  LOGGER.addHandler(logging.NullHandler())

FORMATTER = logging.Formatter(
  fmt = '%(asctime)s [%(levelname)s] %(message)s',
  datefmt = '%m/%d/%Y %H:%M:%S',
)

# ids passed to log_once() so far

LOGGED_ONCE = set()


def get_logger() -> logging.Logger:
  """
  Provides the logger all torutils messages go to.

  :returns: **logging.Logger** named 'torutils'
  """

  return LOGGER


def logging_level(runlevel: 'torutils.util.log.Runlevel') -> int:
  """
  Provides the logging module's value for a runlevel, suitable for
  **Handler.setLevel()**.

  :param runlevel: runlevel to convert, **None** for a level nothing reaches
  """

  return LOG_VALUES[runlevel] if runlevel else SILENT


def is_tracing() -> bool:
  """
  Checks if any handler on our logger will take TRACE messages. Control
  traffic is only formatted for logging when this is the case.

  :returns: **True** if TRACE messages would be handled, **False** otherwise
  """

  for handler in LOGGER.handlers:
    if not isinstance(handler, logging.NullHandler) and handler.level <= LOG_VALUES[TRACE]:
      return True

  return False


def escape(message: str) -> str:
  """
  Replaces the newlines, carriage returns and tabs of a message with their
  escape sequences. Bytes are decoded first.

  :param message: message to escape

  :returns: **str** on a single line
  """

  message = torutils.util.str_tools._to_unicode(message)
  return message.replace('\n', '\\n').replace('\r', '\\r').replace('\t', '\\t')


def log(runlevel: 'torutils.util.log.Runlevel', message: str) -> None:
  """
  Logs a message.

  :param runlevel: runlevel of the message, nothing is logged if **None**
  :param message: message to log
  """

  if runlevel:
    LOGGER.log(LOG_VALUES[runlevel], message)


def log_once(message_id: str, runlevel: 'torutils.util.log.Runlevel', message: str) -> bool:
  """
  Logs a message the first time we see its id. This keeps values tor sends
  repeatedly, such as an unrecognized event attribute, from flooding our log.

  :param message_id: identifier for this kind of message
  :param runlevel: runlevel of the message, nothing is logged if **None**
  :param message: message to log

  :returns: **True** if the message was logged, **False** otherwise
  """

  if not runlevel or message_id in LOGGED_ONCE:
    return False

  LOGGED_ONCE.add(message_id)
  log(runlevel, message)
  return True


def trace(message: str) -> None:
  log(TRACE, message)


def debug(message: str) -> None:
  log(DEBUG, message)


def info(message: str) -> None:
  log(INFO, message)


def notice(message: str) -> None:
  log(NOTICE, message)


def warn(message: str) -> None:
  log(WARN, message)


def error(message: str) -> None:
  log(ERR, message)


def log_to_stdout(runlevel: 'torutils.util.log.Runlevel') -> logging.Handler:
  """
  Prints messages at or above the given runlevel to stdout.

  :param runlevel: quietest runlevel to print

  :returns: **logging.Handler** that was added, which can be passed to
    **get_logger().removeHandler()** to stop
  """

  handler = logging.StreamHandler(sys.stdout)
  handler.setLevel(logging_level(runlevel))
  handler.setFormatter(FORMATTER)
  LOGGER.addHandler(handler)

  return handler
