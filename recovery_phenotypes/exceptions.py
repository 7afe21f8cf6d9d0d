"""
Error taxonomy for the phenotyping engine.
"""


class PhenotypingError(Exception):
    """Base class for all engine errors."""


class InvalidInput(PhenotypingError, ValueError):
    """Empty population, non-finite features or otherwise unusable input."""


class InvalidK(PhenotypingError, ValueError):
    """Cluster count outside [1, population size]."""


class NotClusteredYet(PhenotypingError, ValueError):
    """No clustering model is available yet."""


class PersistenceError(PhenotypingError):
    """Base class for key-value store failures."""


class PersistenceReadFailure(PersistenceError):
    """A stored record could not be read or decoded."""


class PersistenceWriteFailure(PersistenceError):
    """A record could not be written to the store."""
