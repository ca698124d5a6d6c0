"""Exceptions raised by the XQuery Language Server collaborators."""


class XQLSError(Exception):
    """Base class for xqls errors."""


class ParseError(XQLSError):
    """The full XQuery parser failed or produced no tree."""


class RemoteError(XQLSError):
    """The remote eXist-db service could not answer a request."""
