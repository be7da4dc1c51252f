"""Materialize read-optimized story views from linked record collections."""

__version__ = "4.0.0"
