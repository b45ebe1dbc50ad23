"""Prometheus bridge for GNSS receivers that publish an XML status document."""

__version__ = "0.1.0"
