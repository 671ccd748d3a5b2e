"""
Command line interface for evshift.
"""

from .main import main

__all__ = ['main']
