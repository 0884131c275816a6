"""Core Layer — pure domain logic, no IO, no DB.

Invariants:
    - No module in core/ imports from services/, api/, infrastructure/, or db/
    - Functions are deterministic given their inputs (clocks are injected)

Design Decisions:
    - Functional core separated from imperative shell
    - Stateful in-memory policies (AbuseGuard, TTLCache, RuntimeSettings) live here
      because they do no IO; persistence sits behind repository_protocols
"""
