class RESPError(Exception):
    """Base class for all errors raised by this library."""


class ProtocolUsageError(RESPError):
    """
    Raised when the caller violates the framing contract of a writer.

    Examples include ending a streamed string that was never started, declaring a
    negative aggregate length or writing to a closed writer.
    """


class RESPParseError(RESPError):
    """
    Raised when the protocol state machine detects a protocol discrepancy.

    If this exception is raised by the protocol, the connection should be invalidated.
    """
