"""Exceptions raised by objsig service implementations."""


class ObjsigError(Exception):
    """Base class for objsig errors."""


class TransportFault(ObjsigError):
    """A remote query failed (network, HTTP status, or server-reported error)."""


class MalformedResponse(TransportFault):
    """A remote query returned an envelope that could not be interpreted."""
