"""
Unit tests for the torutils.response.authchallenge.AuthChallengeResponse class.
"""

import binascii
import unittest

import torutils
import torutils.response
import torutils.response.authchallenge
import test.mocking

VALID_RESPONSE = '250 AUTHCHALLENGE \
SERVERHASH=B16F72DACD4B5ED1531F3FCC04B593D46A1E30267E636EA7C7F8DD7A2B7BAA05 \
SERVERNONCE=653574272ABBB49395BADC1B7E9B5A3BDFBC1F9B23B4B5E4B3F4FF5CF0D7F4C6'

VALID_HASH = binascii.unhexlify('B16F72DACD4B5ED1531F3FCC04B593D46A1E30267E636EA7C7F8DD7A2B7BAA05')
VALID_NONCE = binascii.unhexlify('653574272ABBB49395BADC1B7E9B5A3BDFBC1F9B23B4B5E4B3F4FF5CF0D7F4C6')


class TestAuthChallengeResponse(unittest.TestCase):
  def test_valid_response(self):
    """
    Parses valid AUTHCHALLENGE responses.
    """

    reply = test.mocking.get_message(VALID_RESPONSE)
    torutils.response.convert('AUTHCHALLENGE', reply)

    self.assertTrue(isinstance(reply, torutils.response.authchallenge.AuthChallengeResponse))
    self.assertEqual(VALID_HASH, reply.server_hash)
    self.assertEqual(VALID_NONCE, reply.server_nonce)

  def test_lowercase_hex(self):
    reply = test.mocking.get_message(VALID_RESPONSE.replace('SERVERHASH=B16F72DACD', 'SERVERHASH=b16f72dacd'))
    torutils.response.convert('AUTHCHALLENGE', reply)

    self.assertEqual(VALID_HASH, reply.server_hash)

  def test_missing_values(self):
    """
    Checks responses that are missing their hash or nonce.
    """

    without_hash = VALID_RESPONSE.replace('SERVERHASH=', 'BLARG=')
    without_nonce = VALID_RESPONSE.replace('SERVERNONCE=', 'BLARG=')

    for content, missing in ((without_hash, 'SERVERHASH'), (without_nonce, 'SERVERNONCE')):
      reply = test.mocking.get_message(content)

      try:
        torutils.response.convert('AUTHCHALLENGE', reply)
        self.fail('response without %s should fail' % missing)
      except torutils.ProtocolError as exc:
        self.assertEqual('AUTHCHALLENGE response is missing %s' % missing, str(exc))

  def test_wrong_response_type(self):
    reply = test.mocking.get_message('250 OK')
    self.assertRaises(torutils.ProtocolError, torutils.response.convert, 'AUTHCHALLENGE', reply)

  def test_rejected_challenge(self):
    reply = test.mocking.get_message('513 Invalid base16 client nonce')
    self.assertRaises(torutils.AuthenticationFailure, torutils.response.convert, 'AUTHCHALLENGE', reply)
