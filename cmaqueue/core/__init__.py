"""Core Application Layer: the client facade and the collection adapter.

Connects the domain layer with the infrastructure layer: builds queue jobs
from command tables and hands them to the resilience services.
"""
