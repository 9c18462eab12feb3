from typing import Union

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.schemas.tickets.ticket_schema import (
    EmailSearchResponse,
    TicketLookupResponse,
    TicketSearchRequest,
    TicketValidationResponse,
)
from app.services.tickets import ticket_service

router = APIRouter(prefix="/tickets", tags=["Tickets"])


@router.get("/{ticket_id}/validate", response_model=TicketValidationResponse, response_model_exclude_none=True)
async def validate_ticket(
    ticket_id: str,
    db: AsyncSession = Depends(get_db)
):
    return await ticket_service.validate_ticket(db, ticket_id)


@router.post(
    "/search",
    response_model=Union[TicketLookupResponse, EmailSearchResponse],
    response_model_exclude_unset=True
)
async def search_tickets(
    payload: TicketSearchRequest,
    db: AsyncSession = Depends(get_db)
):
    return await ticket_service.search(db, payload)
