"""
Domain layer - Business logic and domain models.

This layer contains:
- Value objects and status enumerations
- Domain entities (applications, licenses, profiles)
- The authorization policy engine
- License verification rules

No dependencies on infrastructure or frameworks.
"""
