"""Weekly routine templates mirrored into a rolling window of dates."""

__version__ = "0.1.0"
