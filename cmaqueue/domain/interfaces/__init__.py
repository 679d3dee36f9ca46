"""Domain Interfaces (Ports):

Abstract Base Classes for the remote space, progress rendering, user output
and configuration. The queue engine and client facade depend on these
contracts only; adapters live in the infrastructure layer.
"""
