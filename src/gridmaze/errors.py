class GridError(Exception):
    """Base class for errors raised by the grid engines."""


class OutOfRangeError(GridError, IndexError):
    """An index or coordinate lies outside the lattice. State is left unchanged."""


class SessionNotStartedError(GridError, RuntimeError):
    """The maze generator was used before start_session() was called."""


class InvariantViolationError(GridError, RuntimeError):
    """A broken precondition: bad lattice dimensions or an exhausted stack."""
