"""
Utilities
=========

Shared helpers that carry no browser or HTTP framework types.
"""
