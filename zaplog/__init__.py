"""Leveled, structured logging: levels, cores, loggers, sinks and test helpers."""

__version__ = "0.1.0"