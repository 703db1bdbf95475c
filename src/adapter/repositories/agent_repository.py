"""SQLAlchemy implementation of AgentRepository"""

from typing import Optional
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession
from src.app.repositories.agent_repository import AgentRepository
from src.domain.agent import AgentRegistration


class SqlAlchemyAgentRepository(AgentRepository):

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_agent_id(self, agent_id: str) -> Optional[AgentRegistration]:
        stmt = select(AgentRegistration).where(AgentRegistration.agent_id == agent_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def create(self, agent: AgentRegistration) -> AgentRegistration:
        self.session.add(agent)
        await self.session.flush()
        await self.session.refresh(agent)
        return agent

    async def list_by_owner(self, owner_id: str) -> list[AgentRegistration]:
        stmt = (
            select(AgentRegistration)
            .where(AgentRegistration.owner_id == owner_id)
            .order_by(AgentRegistration.agent_id)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
