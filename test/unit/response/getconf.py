"""
Unit tests for the torutils.response.getconf.GetConfResponse class.
"""

import unittest

import torutils
import torutils.response
import torutils.response.getconf
import test.mocking

SINGLE_RESPONSE = """\
250 DataDirectory=/home/neena/.tor"""

BATCH_RESPONSE = """\
250-CookieAuthentication=0
250-ControlPort=9100
250-DataDirectory=/tmp/fake dir
250 DirPort"""

MULTIVALUE_RESPONSE = """\
250-ControlPort=9100
250-ExitPolicy=accept 34.3.4.5
250-ExitPolicy=accept 3.4.53.3
250-ExitPolicy=accept 3.4.53.3
250 ExitPolicy=reject 23.245.54.3"""

UNRECOGNIZED_KEY_RESPONSE = '''552-Unrecognized configuration key "brickroad"
552 Unrecognized configuration key "submarine"'''

INVALID_RESPONSE = """\
123-FOO
232 BAR"""


class TestGetConfResponse(unittest.TestCase):
  def test_empty_response(self):
    """
    Parses a GETCONF reply without options (just calling "GETCONF").
    """

    reply = test.mocking.get_message('250 OK')
    torutils.response.convert('GETCONF', reply)

    self.assertTrue(isinstance(reply, torutils.response.getconf.GetConfResponse))
    self.assertEqual({}, reply.entries)

  def test_single_response(self):
    reply = test.mocking.get_message(SINGLE_RESPONSE)
    torutils.response.convert('GETCONF', reply)

    self.assertEqual({'DataDirectory': '/home/neena/.tor'}, reply.entries)

  def test_batch_response(self):
    """
    Parses a GETCONF reply for several options, including an unset one.
    """

    reply = test.mocking.get_message(BATCH_RESPONSE)
    torutils.response.convert('GETCONF', reply)

    expected = {
      'CookieAuthentication': '0',
      'ControlPort': '9100',
      'DataDirectory': '/tmp/fake dir',
      'DirPort': None,
    }

    self.assertEqual(expected, reply.entries)

  def test_multivalue_response(self):
    """
    Repeated options take their last value.
    """

    reply = test.mocking.get_message(MULTIVALUE_RESPONSE)
    torutils.response.convert('GETCONF', reply)

    self.assertEqual({'ControlPort': '9100', 'ExitPolicy': 'reject 23.245.54.3'}, reply.entries)

  def test_unrecognized_key_response(self):
    """
    Parses a GETCONF reply that contains an error code with an unrecognized
    key.
    """

    reply = test.mocking.get_message(UNRECOGNIZED_KEY_RESPONSE)

    try:
      torutils.response.convert('GETCONF', reply)
      self.fail('expected an InvalidArguments to be raised')
    except torutils.InvalidArguments as exc:
      self.assertEqual('552', exc.code)
      self.assertEqual(['brickroad', 'submarine'], exc.arguments)

  def test_invalid_content(self):
    """
    Parses a malformed GETCONF reply that contains an invalid response code.
    """

    reply = test.mocking.get_message(INVALID_RESPONSE)
    self.assertRaises(torutils.OperationFailed, torutils.response.convert, 'GETCONF', reply)
