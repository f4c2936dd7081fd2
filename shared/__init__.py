"""
Sectview Shared Module
======================

Common configuration, logging and console utilities used by every
sectview component.
"""

from shared.config import SectviewConfig

__all__ = ["SectviewConfig"]
