"""Rate limiting adapters.

This package provides a small abstraction layer so the HTTP layer only depends
on an admit/reject decision, while the sliding-window algorithm keeps its
state in whichever shared store is configured (Redis in production).
"""
