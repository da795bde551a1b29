"""
HTTP API for DealBench.
"""
