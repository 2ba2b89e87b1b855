class ReplayError(Exception):
    """Base class for every error raised by the replay engine."""


class ConfigurationError(ReplayError, ValueError):
    """
    A construction-time value is out of range (capacity, batch size,
    anneal steps, exponents, floor). Fatal: fix the configuration.
    """


class EmptyStoreError(ReplayError):
    """
    Sampling was requested while the store holds no transitions.
    The only recoverable condition; callers skip the replay cycle.
    """


class ContractViolation(ReplayError):
    """
    A caller broke the engine's contract: mismatched batch lengths or a
    slot index outside the valid range. Programming error, never retried.
    """
