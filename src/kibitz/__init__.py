"""Kibitz: chess position rules plus live UCI engine analysis."""

__version__ = "0.1.0"
