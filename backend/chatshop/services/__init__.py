"""Services Layer — conversation engine, step handlers, approval and admin commands.

Invariants:
    - Handlers split by conversation area (customer, checkout, payment, admin)
    - Step routing uses explicit dict mapping (no auto-discovery)
    - Collaborators arrive through ShopContext, never module-level singletons

Design Decisions:
    - One handler file per area for locality (no god objects)
"""
