"""Staff directory interface — defined in domain layer, implemented in infrastructure."""
from __future__ import annotations

from abc import ABC, abstractmethod

from caseload.modules.assignment.domain.models import StaffMember


class StaffDirectory(ABC):

    @abstractmethod
    async def list_staff(self, role: str) -> list[StaffMember]:
        """Members holding ``role``, in directory order."""
        ...
