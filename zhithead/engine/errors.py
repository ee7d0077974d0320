class ZhitheadError(Exception):
    pass


class DealError(ZhitheadError, ValueError):
    """The deck cannot be dealt to the requested number of players."""


class EmptyDeckError(ZhitheadError, ValueError):
    pass


class InvariantViolation(ZhitheadError, RuntimeError):
    """A programmer error: the engine was asked to do something that
    can never happen in a consistent game, e.g. a human answering a move
    request with no card or a card taken from the wrong zone."""
