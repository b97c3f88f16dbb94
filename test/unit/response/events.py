"""
Unit tests for the torutils.response.events classes.
"""

import datetime
import unittest

import torutils
import torutils.response
import torutils.response.events
import test.mocking

from unittest.mock import Mock, patch

from torutils.response.events import (
  AddrMapEvent,
  BandwidthEvent,
  CircuitEvent,
  Event,
  GuardEvent,
  LogEvent,
  NetworkStatusEvent,
  NewConsensusEvent,
  SignalEvent,
  StreamEvent,
)

CIRC_EXTENDED = '650 CIRC 212 EXTENDED $844AE9CAD04325E955E2BE1521563B79FE7094B7~Smeerboel \
BUILD_FLAGS=NEED_CAPACITY PURPOSE=GENERAL TIME_CREATED=2016-12-22T06:11:06.611813'

CIRC_LAUNCHED = '650 CIRC 7 LAUNCHED BUILD_FLAGS=NEED_CAPACITY PURPOSE=GENERAL \
TIME_CREATED=2012-11-08T16:48:38.417238'

CIRC_BUILT = '650 CIRC 7 BUILT \
$999A226EBED397F331B612FE1E4CFAE5C1F201BA=piyaz,\
$E57A476CD4DFBD99B4EE52A100A58610AD6E80B9~ran,\
$844AE9CAD04325E955E2BE1521563B79FE7094B7~Smeerboel \
BUILD_FLAGS=NEED_CAPACITY PURPOSE=GENERAL TIME_CREATED=2012-11-08T16:48:38.417238'

CIRC_ONEHOP = '650 CIRC 8 BUILT $AC0D3AA6F7A01B7ABD1FDE1B2B75FE2A0A0B0C0D~moria1 \
BUILD_FLAGS=ONEHOP_TUNNEL,IS_INTERNAL,NEED_CAPACITY PURPOSE=GENERAL'

CIRC_CLOSED = '650 CIRC 7 CLOSED $999A226EBED397F331B612FE1E4CFAE5C1F201BA=piyaz \
BUILD_FLAGS=NEED_CAPACITY PURPOSE=GENERAL TIME_CREATED=2012-11-08T16:48:38.417238 \
REASON=FINISHED REMOTE_REASON=TIMEOUT'

CIRC_BAD_STATUS = '650 CIRC 7 BLARG BUILD_FLAGS=NEED_CAPACITY'

ADDRMAP = '650 ADDRMAP www.atagar.com 75.119.206.243 "2012-11-19 00:50:13" \
EXPIRES="2012-11-19 08:50:13" CACHED="NO"'

ADDRMAP_ERROR = '650 ADDRMAP www.atagar.com <error> "2012-11-19 00:50:13" \
error=yes EXPIRES="2012-11-19 08:50:13" CACHED="YES"'

BW = '650 BW 15 25'
BW_MISSING_WRITTEN = '650 BW 15'
BW_NEGATIVE = '650 BW -15 25'

GUARD_NEW = '650 GUARD ENTRY $36B5DBA788246E8369DBAF58577C6BC044A9A374~ADoLmgmN NEW'
GUARD_UNKNOWN = '650 GUARD ENTRY bad_nickname DROPPED'

LOG_NOTICE = '650 NOTICE Tor 0.4.2.7 opening log file.'

LOG_MULTILINE = """650+WARN
Bootstrapping stalled
while loading consensus
.
650 OK"""

NS_EVENT = """650+NS
r moria1 lpXfw1/+uGEym58asExGOXAgzjE IpcU7dolas8+Q+oAzwgvZIWx7PA 2018-05-23 02:41:25 128.31.0.34 9101 9131
s Authority Fast Running Stable V2Dir Valid
w Bandwidth=20 Unmeasured=1
.
650 OK"""

NEWCONSENSUS_EVENT = """650+NEWCONSENSUS
r moria1 lpXfw1/+uGEym58asExGOXAgzjE IpcU7dolas8+Q+oAzwgvZIWx7PA 2018-05-23 02:41:25 128.31.0.34 9101 9131
s Authority Fast Running Stable V2Dir Valid
r caerSidi vJJNUAeGZqAgj5118pynNkX7YE0 IpcU7dolas8+Q+oAzwgvZIWx7PA 2018-05-23 03:00:00 71.35.133.197 9001 0
s Fast Valid
.
650 OK"""

SIGNAL = '650 SIGNAL NEWNYM'

STREAM_NEW = '650 STREAM 18 NEW 0 encrypted.google.com:443 \
SOURCE_ADDR=127.0.0.1:47849 PURPOSE=USER'

STREAM_SUCCEEDED = '650 STREAM 18 SUCCEEDED 26 74.125.227.129:443'

STREAM_BAD_PORT = '650 STREAM 18 NEW 0 encrypted.google.com:70000'

# values tor may add in the future, with text that looks like format specifiers

CIRC_UNRECOGNIZED_PURPOSE = '650 CIRC 5 BUILT PURPOSE=CONFLUX_LINKED SOCKS_USERNAME="%s%s%s"'

STREAM_UNRECOGNIZED_STATUS = '650 STREAM 18 SUSPENDED 0 example.com:80 SOCKS_USERNAME="100%d"'

UNKNOWN_EVENT = '650 BLARG a b c key=value OTHER="quoted"'


def _get_event(content):
  event = test.mocking.get_message(content)
  torutils.response.convert('EVENT', event, arrived_at = 25)
  return event


class TestEvents(unittest.TestCase):
  def test_example(self):
    """
    Parses the CIRC event from our module documentation.
    """

    event = _get_event(CIRC_EXTENDED)

    self.assertTrue(isinstance(event, CircuitEvent))
    self.assertEqual('CIRC', event.type)
    self.assertEqual(25, event.arrived_at)
    self.assertEqual('212', event.id)
    self.assertEqual(torutils.CircStatus.EXTENDED, event.status)
    self.assertEqual([('$844AE9CAD04325E955E2BE1521563B79FE7094B7', 'Smeerboel')], event.path)
    self.assertEqual([torutils.CircBuildFlag.NEED_CAPACITY], event.build_flags)
    self.assertEqual(torutils.CircPurpose.GENERAL, event.purpose)
    self.assertEqual(datetime.datetime(2016, 12, 22, 6, 11, 6, 611813), event.created)
    self.assertEqual(None, event.reason)
    self.assertEqual(None, event.hs_state)

  def test_circ_event_without_path(self):
    event = _get_event(CIRC_LAUNCHED)

    self.assertEqual('7', event.id)
    self.assertEqual(torutils.CircStatus.LAUNCHED, event.status)
    self.assertEqual([], event.path)
    self.assertEqual(None, event.hop_roles())

  def test_circ_event_path(self):
    """
    Parses a three hop path, including an entry with the older '=' divider.
    """

    event = _get_event(CIRC_BUILT)

    expected_path = [
      ('$999A226EBED397F331B612FE1E4CFAE5C1F201BA', 'piyaz'),
      ('$E57A476CD4DFBD99B4EE52A100A58610AD6E80B9', 'ran'),
      ('$844AE9CAD04325E955E2BE1521563B79FE7094B7', 'Smeerboel'),
    ]

    self.assertEqual(expected_path, event.path)

    self.assertEqual([
      ('Guard', expected_path[0]),
      ('Middle', expected_path[1]),
      ('Exit', expected_path[2]),
    ], event.hop_roles())

  def test_circ_event_onehop(self):
    event = _get_event(CIRC_ONEHOP)

    self.assertEqual([torutils.CircBuildFlag.ONEHOP_TUNNEL, torutils.CircBuildFlag.IS_INTERNAL, torutils.CircBuildFlag.NEED_CAPACITY], event.build_flags)
    self.assertEqual(None, event.created)
    self.assertEqual(None, event.hop_roles())

  def test_circ_event_closed(self):
    event = _get_event(CIRC_CLOSED)

    self.assertEqual(torutils.CircStatus.CLOSED, event.status)
    self.assertEqual(torutils.CircClosureReason.FINISHED, event.reason)
    self.assertEqual(torutils.CircClosureReason.TIMEOUT, event.remote_reason)

  def test_circ_event_malformed(self):
    self.assertRaises(torutils.ProtocolError, _get_event, CIRC_BAD_STATUS)
    self.assertRaises(torutils.ProtocolError, _get_event, '650 CIRC 7')
    self.assertRaises(torutils.ProtocolError, _get_event, CIRC_LAUNCHED.replace('2012-11-08T16:48:38.417238', '2012-11-08 16:48:38'))

  def test_parse_circuit_status(self):
    """
    Parses lines from a 'GETINFO circuit-status' query, which lack the CIRC
    event type.
    """

    event = torutils.response.events.parse_circuit_status(CIRC_EXTENDED[9:], arrived_at = 10)

    self.assertTrue(isinstance(event, CircuitEvent))
    self.assertEqual('212', event.id)
    self.assertEqual(10, event.arrived_at)
    self.assertEqual(CIRC_EXTENDED[4:], str(event))

    event = torutils.response.events.parse_circuit_status(CIRC_EXTENDED[4:])
    self.assertEqual('212', event.id)

    self.assertRaises(torutils.ProtocolError, torutils.response.events.parse_circuit_status, '7 BLARG')

  def test_parse_circuit_path(self):
    self.assertEqual([], torutils.response.events.parse_circuit_path(''))

    self.assertEqual(
      [('$E57A476CD4DFBD99B4EE52A100A58610AD6E80B9', None), ('$844AE9CAD04325E955E2BE1521563B79FE7094B7', 'Smeerboel')],
      torutils.response.events.parse_circuit_path('$E57A476CD4DFBD99B4EE52A100A58610AD6E80B9,$844AE9CAD04325E955E2BE1521563B79FE7094B7~Smeerboel'),
    )

  def test_addrmap_event(self):
    event = _get_event(ADDRMAP)

    self.assertTrue(isinstance(event, AddrMapEvent))
    self.assertEqual('www.atagar.com', event.hostname)
    self.assertEqual('75.119.206.243', event.destination)
    self.assertEqual('2012-11-19 00:50:13', event.expiry)
    self.assertEqual(None, event.error)
    self.assertEqual(datetime.datetime(2012, 11, 19, 8, 50, 13), event.utc_expiry)
    self.assertEqual(False, event.cached)

  def test_addrmap_event_with_error(self):
    event = _get_event(ADDRMAP_ERROR)

    self.assertEqual(None, event.destination)
    self.assertEqual('yes', event.error)
    self.assertEqual(True, event.cached)

  def test_addrmap_event_malformed(self):
    self.assertRaises(torutils.ProtocolError, _get_event, '650 ADDRMAP www.atagar.com')

  def test_bw_event(self):
    event = _get_event(BW)

    self.assertTrue(isinstance(event, BandwidthEvent))
    self.assertEqual(15, event.read)
    self.assertEqual(25, event.written)

    self.assertRaises(torutils.ProtocolError, _get_event, BW_MISSING_WRITTEN)
    self.assertRaises(torutils.ProtocolError, _get_event, BW_NEGATIVE)

  def test_guard_event(self):
    event = _get_event(GUARD_NEW)

    self.assertTrue(isinstance(event, GuardEvent))
    self.assertEqual(torutils.GuardType.ENTRY, event.guard_type)
    self.assertEqual('$36B5DBA788246E8369DBAF58577C6BC044A9A374~ADoLmgmN', event.name)
    self.assertEqual('$36B5DBA788246E8369DBAF58577C6BC044A9A374', event.fingerprint)
    self.assertEqual('ADoLmgmN', event.nickname)
    self.assertEqual(torutils.GuardStatus.NEW, event.status)

    event = _get_event(GUARD_UNKNOWN)

    self.assertEqual(None, event.fingerprint)
    self.assertEqual('bad_nickname', event.nickname)
    self.assertEqual(torutils.GuardStatus.DROPPED, event.status)

    self.assertRaises(torutils.ProtocolError, _get_event, '650 GUARD ENTRY')

  def test_log_event(self):
    event = _get_event(LOG_NOTICE)

    self.assertTrue(isinstance(event, LogEvent))
    self.assertEqual('NOTICE', event.runlevel)
    self.assertEqual('Tor 0.4.2.7 opening log file.', event.message)

  def test_log_event_multiline(self):
    event = _get_event(LOG_MULTILINE)

    self.assertEqual('WARN', event.runlevel)
    self.assertEqual('Bootstrapping stalled\nwhile loading consensus', event.message)

  def test_ns_event(self):
    event = _get_event(NS_EVENT)

    self.assertTrue(isinstance(event, NetworkStatusEvent))
    self.assertEqual(1, len(event.descriptors))

    desc = event.descriptor
    self.assertEqual('moria1', desc.nickname)
    self.assertEqual('9695DFC35FFEB861329B9F1AB04C46397020CE31', desc.fingerprint)
    self.assertEqual('128.31.0.34', desc.ip_address)
    self.assertEqual(9101, desc.or_port)
    self.assertEqual(9131, desc.dir_port)
    self.assertEqual(['Authority', 'Fast', 'Running', 'Stable', 'V2Dir', 'Valid'], desc.flags)
    self.assertEqual(20, desc.bandwidth)
    self.assertEqual(True, desc.bandwidth_unmeasured)

  def test_newconsensus_event(self):
    event = _get_event(NEWCONSENSUS_EVENT)

    self.assertTrue(isinstance(event, NewConsensusEvent))
    self.assertEqual(['moria1', 'caerSidi'], [desc.nickname for desc in event.descriptors])
    self.assertEqual('BC924D50078666A0208F9D75F29CA73645FB604D', event.descriptors[1].fingerprint)
    self.assertEqual(0, event.descriptors[1].dir_port)

  def test_signal_event(self):
    event = _get_event(SIGNAL)

    self.assertTrue(isinstance(event, SignalEvent))
    self.assertEqual(torutils.Signal.NEWNYM, event.signal)

    self.assertRaises(torutils.ProtocolError, _get_event, '650 SIGNAL')

  def test_stream_event(self):
    event = _get_event(STREAM_NEW)

    self.assertTrue(isinstance(event, StreamEvent))
    self.assertEqual('18', event.id)
    self.assertEqual(torutils.StreamStatus.NEW, event.status)
    self.assertEqual(None, event.circ_id)
    self.assertEqual('encrypted.google.com:443', event.target)
    self.assertEqual('encrypted.google.com', event.target_address)
    self.assertEqual(443, event.target_port)
    self.assertEqual('127.0.0.1:47849', event.source_addr)
    self.assertEqual('USER', event.purpose)

    event = _get_event(STREAM_SUCCEEDED)

    self.assertEqual('26', event.circ_id)
    self.assertEqual('74.125.227.129', event.target_address)

    self.assertRaises(torutils.ProtocolError, _get_event, STREAM_BAD_PORT)
    self.assertRaises(torutils.ProtocolError, _get_event, '650 STREAM 18 NEW 0')

  @patch('torutils.util.log.log_once')
  def test_unrecognized_values(self, log_once_mock):
    """
    Values that aren't among our enums are logged, with the full event
    included as-is even if it has '%' characters.
    """

    event = _get_event(CIRC_UNRECOGNIZED_PURPOSE)

    self.assertEqual('CONFLUX_LINKED', event.purpose)
    self.assertEqual('%s%s%s', event.socks_username)

    log_once_mock.assert_called_once_with(
      'event.circ.unknown_purpose.CONFLUX_LINKED',
      torutils.util.log.INFO,
      "CIRC event had an unrecognized purpose (CONFLUX_LINKED). Maybe a new addition to the control protocol? Full Event: 'CIRC 5 BUILT PURPOSE=CONFLUX_LINKED SOCKS_USERNAME=\"%s%s%s\"'",
    )

    event = _get_event(STREAM_UNRECOGNIZED_STATUS)

    self.assertEqual('SUSPENDED', event.status)
    self.assertEqual('100%d', event.socks_username)
    self.assertTrue(log_once_mock.call_args[0][2].endswith("Full Event: 'STREAM 18 SUSPENDED 0 example.com:80 SOCKS_USERNAME=\"100%d\"'"))

  def test_unrecognized_values_while_awaiting_reply(self):
    """
    Events with values we don't recognize are still delivered, and don't
    disrupt the reply we're waiting for.
    """

    handler = Mock()
    controller = test.mocking.get_controller('\n'.join((CIRC_UNRECOGNIZED_PURPOSE, STREAM_UNRECOGNIZED_STATUS, '250-SOCKSPORT=9050', '250 ORPORT=0')))
    controller.set_event_handler(handler)

    self.assertEqual({'SOCKSPORT': '9050', 'ORPORT': '0'}, controller.get_conf(['SOCKSPORT', 'ORPORT']))
    self.assertEqual(['CIRC', 'STREAM'], [call[0][0] for call in handler.call_args_list])
    self.assertEqual('CONFLUX_LINKED', handler.call_args_list[0][0][1].purpose)
    self.assertEqual('SUSPENDED', handler.call_args_list[1][0][1].status)

  def test_unknown_event(self):
    """
    Events we don't have a subclass for are still parsed into their
    positional and keyword arguments.
    """

    event = _get_event(UNKNOWN_EVENT)

    self.assertEqual(Event, type(event))
    self.assertEqual('BLARG', event.type)
    self.assertEqual(['a', 'b', 'c'], event.positional_args)
    self.assertEqual({'key': 'value', 'other': 'quoted'}, event.keyword_args)

  def test_blank_event(self):
    self.assertRaises(torutils.ProtocolError, _get_event, '650 ')
