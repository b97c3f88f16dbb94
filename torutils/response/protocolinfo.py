# Copyright 2016-2020, Damian Johnson and The Tor Project
# See LICENSE for licensing information

import torutils
import torutils.response

from torutils.descriptor import parse_delimited
from torutils.util import log


class ProtocolInfoResponse(torutils.response.Reply):
  """
  Version one PROTOCOLINFO query response.

  The protocol_version is the only mandatory data for a valid PROTOCOLINFO
  response, so all other values are None if undefined or empty if a collection.

  :var int protocol_version: protocol version of the response
  :var str tor_version: version of the tor process
  :var list auth_methods: authentication methods tor will accept, such as
    'COOKIE' or 'SAFECOOKIE'
  :var str cookie_path: path of tor's authentication cookie
  """

  def _parse_message(self) -> None:
    # Example:
    #   250-PROTOCOLINFO 1
    #   250-AUTH METHODS=COOKIE,SAFECOOKIE COOKIEFILE="/var/run/tor/control.authcookie"
    #   250-VERSION Tor="0.4.2.7"
    #   250 OK

    self.protocol_version = None
    self.tor_version = None
    self.cookie_path = None
    self.auth_methods = []

    torutils.response.raise_for_status(self)

    piversion = self.get('PROTOCOLINFO')

    if piversion and piversion.isdigit():
      self.protocol_version = int(piversion)

      if self.protocol_version != 1:
        log.info("We made a PROTOCOLINFO version 1 query but got a version %i response instead. We'll still try to use it, but this may cause problems." % self.protocol_version)

    if 'AUTH' not in self:
      raise torutils.ProtocolError('PROTOCOLINFO response did not contain AUTH line', self.status_code())

    auth = parse_delimited(self['AUTH'])

    if not auth.get('methods'):
      raise torutils.ProtocolError('PROTOCOLINFO reply did not contain any authentication methods', self.status_code())

    # tor calls the lack of authentication 'NULL'

    self.auth_methods = [torutils.AuthMethod.NONE if method == 'NULL' else method for method in auth['methods'].split(',')]
    self.cookie_path = auth.get('cookiefile')

    for method in self.auth_methods:
      if method not in torutils.AuthMethod:
        log.log_once('torutils.response.protocolinfo.unknown_auth_%s' % method, log.INFO, "PROTOCOLINFO response included a type of authentication that we don't recognize: %s" % method)

    if 'VERSION' not in self:
      raise torutils.ProtocolError('PROTOCOLINFO response did not contain VERSION line', self.status_code())

    version = parse_delimited(self['VERSION'])

    if 'tor' not in version:
      raise torutils.ProtocolError('PROTOCOLINFO version line did not match expected format', self.status_code())

    self.tor_version = version['tor']
