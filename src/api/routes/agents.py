"""Agent Registry API Routes"""

from fastapi import APIRouter, Depends, status
from sqlmodel.ext.asyncio.session import AsyncSession

from src.adapter.repositories.agent_repository import SqlAlchemyAgentRepository
from src.adapter.services.unit_of_work import SqlAlchemyUnitOfWork
from src.api.error import ClientError
from src.api.schemas.credit_request import RegisterAgentRequestSchema
from src.app.use_cases.credits import (
    AgentResponseDTO,
    GetAgent,
    RegisterAgent,
    RegisterAgentCommandDTO,
)
from src.depends import get_session

router = APIRouter(prefix="/agents", tags=["Agents"])


@router.post("", response_model=AgentResponseDTO, status_code=status.HTTP_201_CREATED)
async def register_agent(
    request: RegisterAgentRequestSchema,
    session: AsyncSession = Depends(get_session),
):
    """
    Register a minted agent under its owner.

    Registering the same agent for the same owner again is a no-op.

    **Returns:**
    - 201: Agent registered
    - 409: Agent already registered to another owner
    """
    command = RegisterAgentCommandDTO(
        agent_id=request.agent_id,
        owner_id=request.owner_id,
        name=request.name,
        token_id=request.token_id,
    )

    use_case = RegisterAgent(SqlAlchemyUnitOfWork(session), SqlAlchemyAgentRepository(session))
    result = await use_case.execute(command)

    if result.is_err():
        raise ClientError.from_error(result.error)
    return result.value


@router.get("/{agent_id}", response_model=AgentResponseDTO)
async def get_agent(
    agent_id: str,
    session: AsyncSession = Depends(get_session),
):
    use_case = GetAgent(SqlAlchemyAgentRepository(session))
    result = await use_case.execute(agent_id)

    if result.is_err():
        raise ClientError.from_error(result.error)
    return result.value
