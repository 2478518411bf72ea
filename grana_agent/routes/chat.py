from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from ..auth import current_user
from ..contracts import CommandResultV1
from ..graph import process_command
from ..session import SessionRegistry

router = APIRouter(prefix="/chat", tags=["chat"])
logger = logging.getLogger(__name__)

sessions = SessionRegistry()


class CommandRequest(BaseModel):
    message: str = Field(min_length=1, max_length=2000)


@router.post("/command", response_model=CommandResultV1)
def command(payload: CommandRequest, user=Depends(current_user)) -> CommandResultV1:
    session = sessions.get(user.get("sub", ""))
    return process_command(session, payload.message)


@router.delete("/session")
def clear_session(user=Depends(current_user)):
    cleared = sessions.drop(user.get("sub", ""))
    return {"cleared": cleared}
