# Copyright 2016-2020, Damian Johnson and The Tor Project
# See LICENSE for licensing information

"""
Parses replies from the control socket.

Tor replies are made up of lines of the form...

::

  <3 digit status code><divider><content>\\r\\n

... where the divider is a '-' if more lines follow, a '+' if a data block
terminated by a lone '.' follows, and a space for the last line. Asynchronous
events use the same grammar with a 650 status code.

**Module Overview:**

::

  is_end_reply_line - checks if a line is the last of its reply
  is_mid_reply_line - checks if more lines of the reply follow this one
  is_data_reply_line - checks if a data block follows this line
  is_event_line - checks if a line belongs to an asynchronous event
  is_data_terminator - checks if a line ends a data block

  convert - translates a Reply into a particular response subclass
  raise_for_status - raises the OperationFailed matching a negative reply

  Reply - Lines of a reply along with its status code.
    |- from_str - provides a Reply for the given string
    |- append_line - adds a raw line from the control socket
    |- close_data_block - notes that a data block has ended
    |- status_code - status code of the reply
    |- command - command this is a reply to
    |- is_positive - checks if the status code is a 2xx
    |- line - positional line at a given index
    |- lines - all positional lines
    |- get - keyed value for a given keyword
    |- items - (keyword, value) tuples in the order they arrived
    |- __getitem__ - positional or keyed lookup
    |- __iter__ - iterates over our line values
    +- __len__ - number of lines in the reply
"""

import re

import torutils

from typing import Any, Iterator, List, Optional, Tuple, Union

__all__ = [
  'authchallenge',
  'events',
  'getconf',
  'protocolinfo',
  'is_end_reply_line',
  'is_mid_reply_line',
  'is_data_reply_line',
  'is_event_line',
  'is_data_terminator',
  'convert',
  'raise_for_status',
  'Reply',
]

EVENT_STATUS = '650'

END_REPLY_LINE = re.compile('^\\d{3} .*\\r\\n$', re.DOTALL)
MID_REPLY_LINE = re.compile('^\\d{3}-')
DATA_REPLY_LINE = re.compile('^\\d{3}\\+')

EVENT_LINE_CONTENT = re.compile('^650[+-]')
KEYWORD_LINE = re.compile('^(\\d{3})-([^\\s=]+)(?:=|\\s*)(.*)$')
MID_LINE = re.compile('^(\\d{3})-(.*)$')
STATUS_LINE = re.compile('^(\\d{3}) (.*)$')
POSITIVE_STATUS_LINE = re.compile('^(2[0-9]{2})$')

# status codes of negative replies and the exception they're raised as

FAILURE_TYPES = {
  '510': torutils.InvalidRequest,
  '511': torutils.InvalidRequest,
  '512': torutils.InvalidArguments,
  '513': torutils.InvalidArguments,
  '514': torutils.AuthenticationFailure,
  '515': torutils.AuthenticationFailure,
  '551': torutils.UnsatisfiableRequest,
  '552': torutils.InvalidArguments,
  '553': torutils.InvalidArguments,
}


def convert(response_type: str, message: 'torutils.response.Reply', **kwargs: Any) -> None:
  """
  Converts a :class:`~torutils.response.Reply` into a particular kind of tor
  response. This does an in-place conversion of the message from being a
  :class:`~torutils.response.Reply` to a subclass for its response type.
  Recognized types include...

  ================= =====
  response_type     Class
  ================= =====
  **AUTHCHALLENGE** :class:`torutils.response.authchallenge.AuthChallengeResponse`
  **EVENT**         :class:`torutils.response.events.Event` subclass
  **GETCONF**       :class:`torutils.response.getconf.GetConfResponse`
  **PROTOCOLINFO**  :class:`torutils.response.protocolinfo.ProtocolInfoResponse`
  ================= =====

  :param response_type: type of tor response to convert to
  :param message: message to be converted
  :param kwargs: optional keyword arguments to be passed to the parser method

  :raises:
    * :class:`torutils.ProtocolError` the message isn't a proper response of
      that type
    * :class:`torutils.OperationFailed` subclass if tor rejected the request
    * **TypeError** if argument isn't a :class:`~torutils.response.Reply`
      or response_type isn't supported
  """

  import torutils.response.authchallenge
  import torutils.response.events
  import torutils.response.getconf
  import torutils.response.protocolinfo

  if not isinstance(message, Reply):
    raise TypeError('Only able to convert torutils.response.Reply instances')

  response_types = {
    'AUTHCHALLENGE': torutils.response.authchallenge.AuthChallengeResponse,
    'EVENT': torutils.response.events.Event,
    'GETCONF': torutils.response.getconf.GetConfResponse,
    'PROTOCOLINFO': torutils.response.protocolinfo.ProtocolInfoResponse,
  }

  try:
    response_class = response_types[response_type]
  except KeyError:
    raise TypeError('Unsupported response type: %s' % response_type)

  message.__class__ = response_class
  message._parse_message(**kwargs)  # type: ignore


def raise_for_status(reply: 'torutils.response.Reply') -> None:
  """
  Raises the :class:`~torutils.OperationFailed` subclass matching the status
  code of a negative reply. This is a no-op for positive replies.

  :param reply: reply to be checked

  :raises: :class:`~torutils.OperationFailed` subclass if the reply is
    negative
  """

  if reply.is_positive():
    return

  code = reply.status_code()
  message = reply.line(0) if reply.line(0) is not None else str(reply)

  raise FAILURE_TYPES.get(code, torutils.OperationFailed)(code, message)


def is_end_reply_line(line: str) -> bool:
  """
  Checks if this line completes a reply. These are of the form...

  ::

    250 OK\\r\\n

  :param line: raw line from the control socket, including its CRLF

  :returns: **True** if this is the last line of a reply, **False** otherwise
  """

  return bool(line) and bool(END_REPLY_LINE.match(line))


def is_mid_reply_line(line: str) -> bool:
  """
  Checks if further lines of this reply follow.

  :param line: raw line from the control socket

  :returns: **True** if this is a '-' divided line, **False** otherwise
  """

  return bool(line) and bool(MID_REPLY_LINE.match(line))


def is_data_reply_line(line: str) -> bool:
  """
  Checks if this line introduces a data block.

  :param line: raw line from the control socket

  :returns: **True** if this is a '+' divided line, **False** otherwise
  """

  return bool(line) and bool(DATA_REPLY_LINE.match(line))


def is_event_line(line: str) -> bool:
  """
  Checks if this line belongs to an asynchronous event. This takes precedence
  over the other classifications since an event line can also be a mid or end
  reply line.

  :param line: raw line from the control socket

  :returns: **True** if this line has a 650 status code, **False** otherwise
  """

  return bool(line) and line[:3] == EVENT_STATUS


def is_data_terminator(line: str) -> bool:
  """
  Checks if this line is the lone period that ends a data block.

  :param line: raw line from the control socket

  :returns: **True** if this terminates a data block, **False** otherwise
  """

  return bool(line) and line.rstrip('\r\n') == '.'


class Reply(object):
  """
  Lines of a control port reply, along with its status code. Lines are either
  positional or keyed. For instance...

  ::

    250-PROTOCOLINFO 1
    250-AUTH METHODS=COOKIE,SAFECOOKIE COOKIEFILE="/var/run/tor/control.authcookie"
    250-VERSION Tor="0.4.2.7"
    250 OK

  ... provides keyed 'PROTOCOLINFO', 'AUTH', and 'VERSION' entries followed by
  the positional 'OK' line. Integer indexing, iteration and length all cover
  every line in the order it arrived. Keyed values are also available by their
  keyword, and :func:`~torutils.response.Reply.line` addresses only the
  positional lines.

  Replies are assembled one line at a time by the control loop, and should be
  treated as read-only once handed to callers.

  :var str command: command this is a reply to, **None** if unknown
  """

  def __init__(self, command: Optional[str] = None) -> None:
    self.command = command

    self._status_code = None  # type: Optional[str]
    self._entries = []  # type: List[List[Optional[str]]]
    self._keyed = {}  # type: dict
    self._positional = []  # type: List[str]
    self._in_data_block = False

    if command:
      self._command_value = re.compile('^(\\d{3})-%s=(.*)$' % re.escape(command))
      self._command_data = re.compile('^(\\d{3})\\+%s=$' % re.escape(command))
    else:
      self._command_value = None
      self._command_data = re.compile('^(\\d{3})\\+\\S*=$')

  @staticmethod
  def from_str(content: str, command: Optional[str] = None, normalize: bool = False) -> 'torutils.response.Reply':
    """
    Provides a Reply for the given content. This feeds lines through
    :func:`~torutils.response.Reply.append_line` without the control loop, so
    data block terminators are only noted rather than validated.

    :param content: reply content
    :param command: command the content is a reply to
    :param normalize: ensures the content ends with CRLF newlines

    :returns: :class:`~torutils.response.Reply` for the content
    """

    if normalize:
      content = content.replace('\r\n', '\n').rstrip('\n').replace('\n', '\r\n') + '\r\n'

    reply = Reply(command)

    for line in content.splitlines(True):
      if is_data_terminator(line):
        reply.close_data_block()
      else:
        reply.append_line(line)

    return reply

  def append_line(self, line: str) -> None:
    """
    Adds a raw line from the control socket. Its status code is taken only if
    we don't have one yet.

    :param line: line to be added, including its CRLF
    """

    line = line.rstrip('\r\n')
    status = None

    if self._in_data_block:
      self._add(None, line)
      return

    value_match = self._command_value.match(line) if self._command_value else None
    data_match = self._command_data.match(line)

    if value_match:
      # ###-COMMAND=value
      status, value = value_match.groups()

      if value.strip():
        self._add(None, value)
    elif data_match:
      # ###+COMMAND= followed by a data block
      status = data_match.group(1)
      self._in_data_block = True
    elif EVENT_LINE_CONTENT.match(line):
      status = EVENT_STATUS
      self._add(None, line[4:])

      if line[3] == '+':
        self._in_data_block = True
    elif KEYWORD_LINE.match(line):
      status, keyword, value = KEYWORD_LINE.match(line).groups()

      if POSITIVE_STATUS_LINE.match(status):
        self._add(keyword, value)
      else:
        self._add(None, line[4:])
    elif MID_LINE.match(line):
      status, value = MID_LINE.match(line).groups()
      self._add(None, value)
    elif STATUS_LINE.match(line):
      status, value = STATUS_LINE.match(line).groups()
      self._add(None, value)
    else:
      self._add(None, line)

    if status and self._status_code is None:
      self._status_code = status

  def append_lines(self, lines: List[str]) -> None:
    """
    Adds content verbatim as positional lines, such as the body of a
    directory document.

    :param lines: lines to be added
    """

    for line in lines:
      self._add(None, line)

  def close_data_block(self) -> None:
    """
    Notes that the data block we were reading has ended, so further lines are
    parsed as status lines again.
    """

    self._in_data_block = False

  def status_code(self) -> Optional[str]:
    """
    Provides the status code of this reply.

    :returns: **str** with the three digit status code, **None** if no line
      has carried one yet
    """

    return self._status_code

  def is_positive(self) -> bool:
    """
    Checks if our status code indicates success.

    :returns: **True** if our status code is a 2xx, **False** otherwise
    """

    return bool(self._status_code) and self._status_code[0] == '2'

  def is_in_data_block(self) -> bool:
    """
    Checks if we're in the midst of a data block.

    :returns: **True** if lines are currently being taken verbatim
    """

    return self._in_data_block

  def line(self, index: int) -> Optional[str]:
    """
    Provides a positional line.

    :param index: index among our positional lines

    :returns: **str** for the line, **None** if we don't have one at that index
    """

    try:
      return self._positional[index]
    except IndexError:
      return None

  def lines(self) -> List[str]:
    """
    Provides our positional lines.

    :returns: **list** of positional lines in the order they arrived
    """

    return list(self._positional)

  def get(self, keyword: str, default: Optional[str] = None) -> Optional[str]:
    """
    Provides the value of a keyed line.

    :param keyword: keyword to look up
    :param default: value if we don't have this keyword

    :returns: **str** value of the keyword
    """

    return self._keyed.get(keyword, default)

  def items(self) -> List[Tuple[Optional[str], str]]:
    """
    Provides all of our lines in the order they arrived.

    :returns: **list** of **(keyword, value)** tuples, where the keyword is
      **None** for positional lines
    """

    return [(keyword, value) for keyword, value in self._entries]

  def _add(self, keyword: Optional[str], value: str) -> None:
    if keyword is None:
      self._entries.append([None, value])
      self._positional.append(value)
    elif keyword in self._keyed:
      # repeated keys keep their original position, taking the latest value

      self._keyed[keyword] = value

      for entry in self._entries:
        if entry[0] == keyword:
          entry[1] = value
    else:
      self._entries.append([keyword, value])
      self._keyed[keyword] = value

  def __getitem__(self, index: Union[int, str]) -> str:
    if isinstance(index, int):
      return self._entries[index][1]
    else:
      return self._keyed[index]

  def __contains__(self, keyword: str) -> bool:
    return keyword in self._keyed

  def __iter__(self) -> Iterator[str]:
    for _, value in self._entries:
      yield value

  def __len__(self) -> int:
    return len(self._entries)

  def __str__(self) -> str:
    return '\n'.join(self)

  def __repr__(self) -> str:
    return '<Reply %s: %s>' % (self._status_code, ', '.join(repr(value) for value in self))
