"""
Storage adapters for DealBench.

The aggregate table and the private contribution table belong to the
surrounding datastore; these adapters are the engine's view of them.
"""

from dealbench.storage.base import AggregateStore, ContractValuesStore
from dealbench.storage.memory import InMemoryBenchmarkStore
from dealbench.storage.sql import SqlBenchmarkStore

__all__ = [
    "AggregateStore",
    "ContractValuesStore",
    "InMemoryBenchmarkStore",
    "SqlBenchmarkStore",
]
