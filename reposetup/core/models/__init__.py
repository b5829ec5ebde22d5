"""
Domain models — Pydantic types for reposetup.

All models are re-exported here for convenient access:

    from reposetup.core.models import Action, Receipt, HostIdentity, Settings
"""

from reposetup.core.models.action import Action, Receipt
from reposetup.core.models.host import (
    ElevationStrategy,
    HostIdentity,
    PackagingFamily,
    family_for,
)
from reposetup.core.models.settings import Settings

__all__ = [
    # action.py
    "Action",
    "Receipt",
    # host.py
    "ElevationStrategy",
    "HostIdentity",
    "PackagingFamily",
    "family_for",
    # settings.py
    "Settings",
]
