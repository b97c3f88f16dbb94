# Copyright 2016-2020, Damian Johnson and The Tor Project
# See LICENSE for licensing information

import torutils
import torutils.response


class GetConfResponse(torutils.response.Reply):
  """
  Reply for a GETCONF query.

  Options can be provided either as '250-Key=value' lines, or as bare keys
  when they're unset...

  ::

    250-SocksPort=9050
    250-DataDirectory=/home/atagar/.tor
    250 DirPort

  :var dict entries: mapping between the queried options and their values,
    which are **None** for unset options
  """

  def _parse_message(self) -> None:
    self.entries = {}

    if not self.is_positive():
      unrecognized_keywords = []

      for line in self.lines():
        if line.startswith('Unrecognized configuration key "') and line.endswith('"'):
          unrecognized_keywords.append(line[32:-1])

      if unrecognized_keywords:
        raise torutils.InvalidArguments(self.status_code(), 'GETCONF request contained unrecognized keywords: %s' % ', '.join(unrecognized_keywords), unrecognized_keywords)

      raise torutils.response.FAILURE_TYPES.get(self.status_code(), torutils.OperationFailed)(self.status_code(), '; '.join(self.lines()))

    for keyword, value in self.items():
      if keyword is None:
        # positional entries are either 'key=value' or a bare key

        keyword, divider, value = value.partition('=')

        if not divider:
          value = None

      if keyword == 'OK' and value is None:
        continue

      self.entries[keyword] = value
