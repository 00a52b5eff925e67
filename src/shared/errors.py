"""Errors raised by the listener/milestone layer.

Routes translate these into HTTP responses:
  InvalidReportError    -> 400 (bad input, or a report_id held by another listener)
  StoreUnavailableError -> 503 (transient, the client resends the same batch)
"""


class RadioError(Exception):
    pass


class InvalidReportError(RadioError, ValueError):
    pass


class StoreUnavailableError(RadioError):
    pass
