"""
Core device abstractions for emucoleco.

IPortDevice is the abstract interface for everything reached through the
Z80's 8-bit I/O port space (IN / OUT).  NullPortDevice is the placeholder
used when the CPU runs without a machine around it.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional


class IPortDevice(ABC):
    """Abstract interface for all port-mapped devices."""

    @abstractmethod
    def reset(self) -> None:
        """Reset the device to its initial power-on state."""
        ...

    @abstractmethod
    def read_port(self, port: int) -> int:
        """Read a byte from *port*.

        Args:
            port: The full 8-bit port number (the device decodes it).

        Returns:
            An integer in the range 0..255.
        """
        ...

    @abstractmethod
    def write_port(self, port: int, value: int) -> None:
        """Write *value* (0..255) to *port*."""
        ...


class NullPortDevice(IPortDevice):
    """A device that ignores all writes and always reads as zero."""

    _instance: Optional[NullPortDevice] = None

    def __new__(cls) -> NullPortDevice:
        """NullPortDevice is a singleton -- every call returns the same instance."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def reset(self) -> None:
        pass

    def read_port(self, port: int) -> int:
        return 0

    def write_port(self, port: int, value: int) -> None:
        pass

    def __repr__(self) -> str:
        return "NullPortDevice()"
