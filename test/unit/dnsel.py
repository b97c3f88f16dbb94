"""
Unit tests for the torutils.dnsel module.
"""

import socket
import struct
import unittest

import torutils
import torutils.dnsel

from unittest.mock import patch

from torutils.dnsel import DnsAnswer, dnsel_name

EXIT_HOSTNAME = '4.3.2.1.dnsel.torproject.org'
FINGERPRINT = '9695DFC35FFEB861329B9F1AB04C46397020CE31'


def _name(hostname):
  return b''.join([struct.pack('!B', len(label)) + label.encode('ascii') for label in hostname.split('.')]) + b'\x00'


def _record(record_type, data, ttl = 1800):
  # answer names point back at the question, which follows the header

  return b'\xc0\x0c' + struct.pack('!2HIH', record_type, 1, ttl, len(data)) + data


def _response(transaction_id, records = (), flags = 0x8180, query_type = torutils.dnsel.TYPE_A):
  header = struct.pack('!6H', transaction_id, flags, 1, len(records), 0, 0)
  question = _name(EXIT_HOSTNAME) + struct.pack('!2H', query_type, 1)

  return header + question + b''.join(records)


class TestDnsel(unittest.TestCase):
  def test_dnsel_name(self):
    self.assertEqual('4.3.2.1.dnsel.torproject.org', dnsel_name('1.2.3.4'))
    self.assertEqual('1.0.0.0.0.0.0.0.0.0.0.0.0.0.0.0.0.0.0.0.0.0.0.0.8.b.d.0.1.0.0.2.dnsel.torproject.org', dnsel_name('2001:0db8::0001'))
    self.assertEqual('8.4.3.7.0.7.3.0.e.2.a.8.9.1.3.1.3.d.8.0.3.a.5.8.8.b.d.0.1.0.0.2.dnsel.torproject.org', dnsel_name('[2001:db8:85a3:8d3:1319:8a2e:370:7348]'))

    for invalid in ('1.2.3', '1.2.3.256', 'torproject.org', '2001:db8::aaaa::1', ''):
      self.assertRaises(ValueError, dnsel_name, invalid)

  def test_build_query(self):
    expected = b'\x12\x34\x01\x00\x00\x01\x00\x00\x00\x00\x00\x00' + b'\x01a\x05dnsel\x00' + b'\x00\x10\x00\x01'
    self.assertEqual(expected, torutils.dnsel._build_query(0x1234, 'a.dnsel', torutils.dnsel.TYPE_TXT))

  def test_parse_address_answer(self):
    response = _response(0x1234, [_record(torutils.dnsel.TYPE_A, b'\x7f\x00\x00\x02')])
    answers = torutils.dnsel._parse_response(0x1234, response)

    self.assertEqual([DnsAnswer(EXIT_HOSTNAME, torutils.dnsel.TYPE_A, 1, 1800, '127.0.0.2')], answers)

  def test_parse_txt_answers(self):
    response = _response(0x1234, [
      _record(torutils.dnsel.TYPE_TXT, b'\x28' + FINGERPRINT.encode('ascii')),
      _record(torutils.dnsel.TYPE_TXT, b'\x28' + b'A7569A83B5706AB1B1A9CB52EFF7D2D32E4553EB'),
    ], query_type = torutils.dnsel.TYPE_TXT)

    answers = torutils.dnsel._parse_response(0x1234, response)

    self.assertEqual([FINGERPRINT, 'A7569A83B5706AB1B1A9CB52EFF7D2D32E4553EB'], [answer.data for answer in answers])
    self.assertEqual(EXIT_HOSTNAME, answers[1].name)

  def test_parse_nxdomain(self):
    """
    Addresses that aren't exits don't exist within the exit list's zone.
    """

    self.assertEqual([], torutils.dnsel._parse_response(0x1234, _response(0x1234, flags = 0x8183)))

  def test_parse_errors(self):
    expected = {
      _response(0x4321): 'DNS answer packet transaction ID mismatch (expected 4660 but got 17185)',
      _response(0x1234, flags = 0x0100): 'DNS response QR flag is not set to response (1)',
      _response(0x1234, flags = 0x8182): 'Server failure, the name server was unable to process this query',
      _response(0x1234, flags = 0x8185): 'The name server refuses to perform the specified operation for policy reasons',
      _response(0x1234, flags = 0x8186): 'Bad RCODE in DNS response: 6',
      b'\x12\x34\x81\x80': 'DNS lookup failed, response is less than 12 octets',
      _response(0x1234, [_record(torutils.dnsel.TYPE_A, b'\x7f\x00\x00\x02')])[:-2]: 'DNS response was truncated',
    }

    for response, message in expected.items():
      try:
        torutils.dnsel._parse_response(0x1234, response)
        self.fail('response should have been rejected: %r' % response)
      except torutils.ResolutionFailed as exc:
        self.assertEqual(message, str(exc))

  def test_parse_missing_answer(self):
    response = struct.pack('!6H', 0x1234, 0x8180, 1, 1, 0, 0) + _name(EXIT_HOSTNAME) + struct.pack('!2H', 1, 1)
    self.assertRaises(torutils.ResolutionFailed, torutils.dnsel._parse_response, 0x1234, response)

  @patch('torutils.dnsel.query')
  def test_is_tor(self, query_mock):
    query_mock.return_value = [DnsAnswer(EXIT_HOSTNAME, torutils.dnsel.TYPE_A, 1, 1800, '127.0.0.2')]
    self.assertTrue(torutils.dnsel.is_tor('1.2.3.4'))

    query_mock.return_value = []
    self.assertFalse(torutils.dnsel.is_tor('1.2.3.4'))

    query_mock.return_value = [DnsAnswer(EXIT_HOSTNAME, torutils.dnsel.TYPE_A, 1, 1800, '127.0.0.1')]
    self.assertFalse(torutils.dnsel.is_tor('1.2.3.4'))

  @patch('torutils.dnsel.query')
  def test_get_fingerprints(self, query_mock):
    query_mock.return_value = [
      DnsAnswer(EXIT_HOSTNAME, torutils.dnsel.TYPE_TXT, 1, 1800, FINGERPRINT),
      DnsAnswer(EXIT_HOSTNAME, torutils.dnsel.TYPE_A, 1, 1800, '127.0.0.2'),
    ]

    self.assertEqual([FINGERPRINT], torutils.dnsel.get_fingerprints('1.2.3.4'))
    query_mock.assert_called_once_with('1.2.3.4', torutils.dnsel.TYPE_TXT, None, torutils.dnsel.DEFAULT_TIMEOUT)

  @patch('random.randint', return_value = 0x1234)
  @patch('socket.socket')
  def test_query(self, socket_mock, randint_mock):
    dns_socket = socket_mock.return_value.__enter__.return_value
    dns_socket.recv.return_value = _response(0x1234, [_record(torutils.dnsel.TYPE_A, b'\x7f\x00\x00\x02')])

    answers = torutils.dnsel.query('1.2.3.4', torutils.dnsel.TYPE_A, timeout = 2)

    self.assertEqual('127.0.0.2', answers[0].data)
    dns_socket.settimeout.assert_called_once_with(2)
    dns_socket.sendto.assert_called_once_with(torutils.dnsel._build_query(0x1234, EXIT_HOSTNAME, torutils.dnsel.TYPE_A), ('check-01.torproject.org', 53))

  @patch('socket.socket')
  def test_query_timeout(self, socket_mock):
    socket_mock.return_value.__enter__.return_value.recv.side_effect = socket.timeout('timed out')

    try:
      torutils.dnsel.query('1.2.3.4', torutils.dnsel.TYPE_A, server = '127.0.0.1')
      self.fail('query should have timed out')
    except torutils.ResolutionFailed as exc:
      self.assertEqual('DNS request to 127.0.0.1 timed out', str(exc))

  @patch('socket.socket')
  def test_query_failure(self, socket_mock):
    socket_mock.return_value.__enter__.return_value.sendto.side_effect = OSError('Network is unreachable')
    self.assertRaises(torutils.ResolutionFailed, torutils.dnsel.query, '1.2.3.4', torutils.dnsel.TYPE_A)

  def test_query_with_invalid_address(self):
    self.assertRaises(ValueError, torutils.dnsel.query, 'not an address', torutils.dnsel.TYPE_A)
