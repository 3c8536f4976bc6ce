"""Switchboard: rules inference engine for IVR contact flows."""

__version__ = "0.1.0"
