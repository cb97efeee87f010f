"""Errors raised by extremum stores and surfaced through QueryState.error."""


class FetchError(Exception):
    """A day summary could not be obtained."""


class NetworkError(FetchError):
    """The store could not reach its source, or the request timed out."""


class MalformedDataError(FetchError):
    """The store received tide records it could not parse."""
