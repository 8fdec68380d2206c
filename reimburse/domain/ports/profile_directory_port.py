"""
Port (interface) for user profile lookups.
Infrastructure adapters (e.g. SupabaseProfileDirectory) must implement this interface.
"""

from abc import ABC, abstractmethod

from reimburse.domain.entities.compilation import Identity


class IProfileDirectory(ABC):
    @abstractmethod
    async def is_privileged(self, identity: Identity) -> bool:
        """Return True only if the identity's profile carries the admin flag.

        Raises:
            BackendError: if the profile store could not be queried.
        """
        ...
