"""
Bootstrap driver backends.
"""

from phyloboot.bootstrap.backends.cpu import CPUBootstrapBackend

__all__ = ['CPUBootstrapBackend']
