"""Core module containing interfaces."""

from licensing.core.interfaces import (
    IProfileRepository,
    IRoleRepository,
    IApplicationRepository,
    ILicenseRepository,
)

__all__ = [
    "IProfileRepository",
    "IRoleRepository",
    "IApplicationRepository",
    "ILicenseRepository",
]
