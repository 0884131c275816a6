"""Infrastructure Layer — adapters, external service clients and cross-cutting concerns.

Invariants:
    - Adapters implement the Protocols in core/repository_protocols.py
    - All external calls wrapped with retry/timeout/error mapping

Design Decisions:
    - Resilient wrappers over raw clients
    - container.py is the composition root: the only module that wires services
"""
