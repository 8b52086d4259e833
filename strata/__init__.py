"""
strata - Storage layout compiler

This package turns a declarative description of disks, partitions, encryption
layers, volume managers and filesystems into shell scripts that create and
mount the layout, plus host-configuration facts describing the result.
"""

__version__ = "0.1.0"

from strata.core.script import compile_layout  # noqa: E402

__all__ = ["compile_layout", "__version__"]
