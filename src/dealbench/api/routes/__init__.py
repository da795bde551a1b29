"""
API route modules.
"""

from dealbench.api.routes import benchmarks

__all__ = ["benchmarks"]
