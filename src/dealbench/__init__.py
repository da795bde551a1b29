"""
DealBench: benchmark aggregation and deal comparison for contract terms.

Folds structured terms extracted from individual contracts into
privacy-safe market statistics, and scores a single deal against them.
"""

__version__ = "0.1.0"

from dealbench.config import get_settings

__all__ = ["get_settings", "__version__"]
