"""
Pipeline Package

Command-line surface and the service dependency pipeline behind it.
"""

from .cli import CLI, main

__all__ = ['CLI', 'main']
