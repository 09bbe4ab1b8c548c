class ConfigurationError(ValueError):
    """Raised when a simulation or velocity parameter set cannot be used."""


class BoundsError(IndexError):
    """Raised when a radial index or lag window falls outside the data volume."""
