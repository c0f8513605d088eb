"""HTTP boundary: contracts, services and controllers.

Nothing in this layer signs or broadcasts transactions. Execution
payloads are prepared for client-side signing only.
"""

__all__ = [
    "contracts",
    "services",
    "controllers",
]
