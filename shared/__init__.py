"""
Tether Shared Module
====================

Configuration, structured logging and console presentation shared by
the Tether library and its CLI.
"""

from shared.config import TetherConfig

__all__ = ["TetherConfig"]
