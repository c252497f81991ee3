"""
Application layer - Use cases and business logic orchestration.

This layer contains:
- Application intake (submit, read own applications)
- License verification (public lookup)
- Review and license issuance (admin)
- Profile maintenance

Every use case receives a Unit of Work bound to the caller's SessionContext.
No direct dependencies on FastAPI.
"""
