"""Error taxonomy for the engine.

Core functions raise these; the shell maps them to HTTP statuses and tool errors.
"""


class SammyError(Exception):
    """Base class for all engine errors."""


class ValidationError(SammyError, ValueError):
    """Malformed input: bad template values, counts or dates."""


class UnsupportedModeError(SammyError):
    """A stats mode was requested that the user's data cannot support."""


class AtomicWriteFailure(SammyError):
    """Storage could not commit a batch. Nothing in the batch was written."""
