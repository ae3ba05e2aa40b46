"""Custodial wallet provisioning and transaction workflow server."""

__version__ = "0.1.0"
