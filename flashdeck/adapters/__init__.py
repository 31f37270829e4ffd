"""Adapters for external systems."""

from .serial_adapter import SerialAdapter, create_serial_adapter


__all__ = ["SerialAdapter", "create_serial_adapter"]
