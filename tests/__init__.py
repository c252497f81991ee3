"""
Tests for the Business Licensing Portal

Tests are organized by functionality:
- test_policy.py / test_verification.py / test_domain.py: pure domain logic, no store
- test_session_context.py / test_cache_service.py: session plumbing
- test_identity.py, test_intake.py, test_repositories.py, test_review.py: against SQLite
- api/: HTTP endpoints through the ASGI app
"""
