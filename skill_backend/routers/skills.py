from __future__ import annotations

import re
from typing import Iterable

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import ValidationError

from skill_backend.models.skill import Skill
from skill_backend.routers.dependencies import get_skill_repository
from skill_backend.schemas.skill import SkillCreateRequest, SkillCreateResponse, SkillListResponse, SkillOut
from skill_backend.services.skill_repository import SkillRepository, SkillStoreError


router = APIRouter(prefix="/api", tags=["skills"])

# skill_id is an SQLite INTEGER.
_MIN_SKILL_ID = -(2**63)
_MAX_SKILL_ID = 2**63 - 1
_SKILL_ID_RE = re.compile(r"[+-]?[0-9]+")


def _parse_skill_id(raw: str) -> int:
    if not _SKILL_ID_RE.fullmatch(raw):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Failed to parse skill ID: {raw!r} is not an integer",
        )
    value = int(raw)
    if not _MIN_SKILL_ID <= value <= _MAX_SKILL_ID:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Failed to parse skill ID: {raw!r} is out of range",
        )
    return value


async def read_create_request(request: Request) -> SkillCreateRequest:
    # The body is decoded as JSON whatever Content-Type the client sent.
    body = await request.body()
    try:
        return SkillCreateRequest.model_validate_json(body)
    except ValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Failed to unmarshal request body: {exc.errors(include_url=False)}",
        ) from exc


def _skill_list(skills: Iterable[Skill]) -> SkillListResponse:
    return SkillListResponse(skills=[SkillOut.model_validate(s) for s in skills])


@router.api_route("/skill", methods=["GET", "HEAD"], response_model=SkillListResponse)
def list_skills(repo: SkillRepository = Depends(get_skill_repository)) -> SkillListResponse:
    try:
        skills = repo.list_skills()
    except SkillStoreError as exc:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)) from exc
    return _skill_list(skills)


@router.post("/skill", response_model=SkillCreateResponse)
def create_skill(
    payload: SkillCreateRequest = Depends(read_create_request),
    repo: SkillRepository = Depends(get_skill_repository),
) -> SkillCreateResponse:
    if payload.skill is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing skill in request body")

    try:
        created = repo.create_skill(payload.skill.name, payload.skill.description)
    except SkillStoreError as exc:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)) from exc
    return SkillCreateResponse(skill=SkillOut.model_validate(created))


@router.delete("/skill/{skill_id}", response_model=SkillListResponse)
def delete_skill(skill_id: str, repo: SkillRepository = Depends(get_skill_repository)) -> SkillListResponse:
    # Deleting an id that does not exist is not an error; the remaining list is returned either way.
    parsed_id = _parse_skill_id(skill_id)
    try:
        remaining = repo.delete_skill(parsed_id)
    except SkillStoreError as exc:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)) from exc
    return _skill_list(remaining)
