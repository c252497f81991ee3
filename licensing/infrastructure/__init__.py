"""
Infrastructure layer - External concerns and cross-cutting functionality.

This layer contains:
- Caching services (revoked session registry)
"""
