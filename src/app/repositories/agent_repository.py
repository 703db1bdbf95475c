"""Agent Repository Interface"""

from abc import ABC, abstractmethod
from typing import Optional
from src.domain.agent import AgentRegistration


class AgentRepository(ABC):

    @abstractmethod
    async def get_by_agent_id(self, agent_id: str) -> Optional[AgentRegistration]:
        pass

    @abstractmethod
    async def create(self, agent: AgentRegistration) -> AgentRegistration:
        pass

    @abstractmethod
    async def list_by_owner(self, owner_id: str) -> list[AgentRegistration]:
        """Agents registered to an owner, ordered by agent_id"""
        pass
