# Copyright 2016-2020, Damian Johnson and The Tor Project
# See LICENSE for licensing information

import binascii
import re

import torutils
import torutils.response

SERVER_HASH = re.compile('SERVERHASH=([A-F0-9]+)', re.IGNORECASE)
SERVER_NONCE = re.compile('SERVERNONCE=([A-F0-9]+)', re.IGNORECASE)


class AuthChallengeResponse(torutils.response.Reply):
  """
  AUTHCHALLENGE query response.

  :var bytes server_hash: server hash provided by tor
  :var bytes server_nonce: server nonce provided by tor
  """

  def _parse_message(self) -> None:
    # Example:
    #   250 AUTHCHALLENGE SERVERHASH=680A73C9836C4F557314EA1C4EDE54C285DB9DC89C83627401AEF9D7D27A95D5 SERVERNONCE=F8EA4B1F2C8B40EF1AF68860171605B910E3BBCABADF6FC3DB1FA064F4690E85

    if not self.is_positive():
      raise torutils.AuthenticationFailure(self.status_code(), 'SAFECOOKIE auth failed with code %s: %s' % (self.status_code(), self.line(0)))

    line = self.line(0) or ''

    if not line.startswith('AUTHCHALLENGE'):
      raise torutils.ProtocolError('Message is not an AUTHCHALLENGE response (%s)' % self, self.status_code())

    hash_match = SERVER_HASH.search(line)
    nonce_match = SERVER_NONCE.search(line)

    if not hash_match or not nonce_match:
      missing = [name for name, match in (('SERVERHASH', hash_match), ('SERVERNONCE', nonce_match)) if not match]
      raise torutils.ProtocolError('AUTHCHALLENGE response is missing %s' % ' and '.join(missing), self.status_code())

    try:
      self.server_hash = binascii.unhexlify(hash_match.group(1))
      self.server_nonce = binascii.unhexlify(nonce_match.group(1))
    except binascii.Error as exc:
      raise torutils.ProtocolError('AUTHCHALLENGE response has malformed hex values (%s): %s' % (exc, line), self.status_code())
