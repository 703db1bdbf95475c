"""RegisterAgent and GetAgent Use Cases

Record the owner of a minted agent so transfers can be checked against it.
"""

from libs.result import Result, Return, Error
from src.app.repositories.agent_repository import AgentRepository
from src.app.services.unit_of_work import UnitOfWork
from src.domain.agent import AgentRegistration
from src.domain.errors import LedgerErrorCode
from .dtos import AgentResponseDTO, RegisterAgentCommandDTO


def _to_response_dto(agent: AgentRegistration) -> AgentResponseDTO:
    return AgentResponseDTO(
        agent_id=agent.agent_id,
        owner_id=agent.owner_id,
        name=agent.name,
        token_id=agent.token_id,
        registered_at=agent.registered_at,
    )


class RegisterAgent:
    """
    Use Case: Register a minted agent under its owner

    Business Rules:
    1. Re-registering an agent for the same owner returns the existing record
    2. An agent registered to a different owner is rejected
    """

    def __init__(self, uow: UnitOfWork, agent_repo: AgentRepository):
        self.uow = uow
        self.agent_repo = agent_repo

    async def execute(self, command: RegisterAgentCommandDTO) -> Result[AgentResponseDTO]:
        try:
            existing = await self.agent_repo.get_by_agent_id(command.agent_id)
            if existing:
                if existing.owner_id != command.owner_id:
                    return Return.err(
                        Error(
                            code=LedgerErrorCode.AGENT_ALREADY_REGISTERED.value,
                            message=f"Agent {command.agent_id} is registered to another owner",
                            reason=f"owner={existing.owner_id}",
                        )
                    )
                return Return.ok(_to_response_dto(existing))

            agent = await self.agent_repo.create(
                AgentRegistration(
                    agent_id=command.agent_id,
                    owner_id=command.owner_id,
                    name=command.name,
                    token_id=command.token_id,
                )
            )
            await self.uow.commit()
            return Return.ok(_to_response_dto(agent))

        except Exception as e:
            await self.uow.rollback()
            return Return.err(
                Error(
                    code=LedgerErrorCode.STORAGE_FAILURE.value,
                    message="Failed to register agent",
                    reason=str(e),
                )
            )


class GetAgent:

    def __init__(self, agent_repo: AgentRepository):
        self.agent_repo = agent_repo

    async def execute(self, agent_id: str) -> Result[AgentResponseDTO]:
        agent = await self.agent_repo.get_by_agent_id(agent_id)
        if agent is None:
            return Return.err(
                Error(
                    code=LedgerErrorCode.AGENT_NOT_FOUND.value,
                    message=f"Agent {agent_id} not found",
                )
            )
        return Return.ok(_to_response_dto(agent))
