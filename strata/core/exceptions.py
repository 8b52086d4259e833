"""
Base exceptions for strata.

This module defines the hierarchy of exceptions used by strata.
"""
from typing import List, Tuple


class StrataError(Exception):
    """Base exception for Strata errors"""
    pass


class SchemaError(StrataError):
    """Exception raised when the layout tree is structurally invalid"""
    pass


class DependencyCycleError(StrataError):
    """Exception raised when devices depend on each other in a loop"""

    def __init__(self, cycle: List[Tuple[str, str]]):
        self.cycle = cycle
        path = " -> ".join(f"{group}.{name}" for group, name in cycle)
        super().__init__(f"Detected a cycle in the disk setup: {path}")


class UnsupportedDeviceNamingError(StrataError):
    """Exception raised when a partition path cannot be derived from a device path"""

    def __init__(self, device: str):
        self.device = device
        super().__init__(f"{device} seems not to be a supported disk format")


class ExecutionError(StrataError):
    """Exception raised when a generated script fails while being applied"""
    pass


class PrerequisiteError(StrataError):
    """Exception raised when tools required to apply a layout are missing"""
    pass
