"""API Resilience Implementations.

Contains the error classifier, the retry service with exponential backoff,
and the bounded-concurrency queue that drives one retried call per item.
Bounded Context: API Resilience
"""
