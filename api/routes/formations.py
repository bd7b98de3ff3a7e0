"""
api/routes/formations.py -- Training session (formation) REST endpoints.

Routes:
  POST   /api/formations        -- create (ADMIN)
  GET    /api/formations        -- list, ordered by scheduled date (any role)
  GET    /api/formations/{id}   -- detail (any role)
  PUT    /api/formations/{id}   -- partial update (ADMIN)
  DELETE /api/formations/{id}   -- delete (ADMIN)

Write bodies are not declared as FastAPI body parameters. FastAPI parses those
before it resolves dependencies, which would let a malformed body answer 400
ahead of the 401/403 from require_admin. The body dependencies below depend on
require_admin and only read the request once it has passed.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.exceptions import RequestValidationError
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from api.models import FormationCreate, FormationEnvelope, FormationListEnvelope, FormationOut, FormationUpdate, MessageResponse
from auth.dependencies import require_admin, require_member
from auth.models import SessionClaims
from formations.models import Formation
from formations.service import FormationService

# Auth policy:
# - reads:  require_member (any authenticated role; ADMIN included)
# - writes: require_admin (401 without a valid cookie, 403 for MEMBER)
router = APIRouter()


def _service(request: Request) -> FormationService:
    return request.app.state.formation_service


def _out(formation: Formation) -> FormationOut:
    return FormationOut(**formation.to_dict())


async def _parse(request: Request, model: type[BaseModel]) -> BaseModel:
    """Decode the JSON body into `model`, raising the same error FastAPI would."""
    try:
        data = await request.json()
    except ValueError as exc:
        raise RequestValidationError(
            [{"type": "json_invalid", "loc": ("body",), "msg": "JSON decode error", "input": {}}]
        ) from exc
    try:
        return model.model_validate(data)
    except PydanticValidationError as exc:
        raise RequestValidationError(exc.errors(include_url=False)) from exc


async def creation_fields(request: Request, claims: SessionClaims = Depends(require_admin)) -> dict[str, Any]:
    body = await _parse(request, FormationCreate)
    return body.model_dump()


async def update_fields(request: Request, claims: SessionClaims = Depends(require_admin)) -> dict[str, Any]:
    """Only the fields present in the body; sending null for location or link clears it."""
    body = await _parse(request, FormationUpdate)
    return body.model_dump(exclude_unset=True)


@router.post("/formations", response_model=FormationEnvelope, status_code=201)
def create_formation(
    request: Request,
    claims: SessionClaims = Depends(require_admin),
    fields: dict[str, Any] = Depends(creation_fields),
) -> FormationEnvelope:
    formation = _service(request).create(fields, creator_id=claims.subject)
    return FormationEnvelope(message="Formation created successfully.", formation=_out(formation))


@router.get("/formations", response_model=FormationListEnvelope)
def list_formations(
    request: Request,
    claims: SessionClaims = Depends(require_member),
) -> FormationListEnvelope:
    return FormationListEnvelope(formations=[_out(f) for f in _service(request).list_all()])


@router.get("/formations/{formation_id}", response_model=FormationEnvelope)
def get_formation(
    request: Request,
    formation_id: str,
    claims: SessionClaims = Depends(require_member),
) -> FormationEnvelope:
    return FormationEnvelope(formation=_out(_service(request).get(formation_id)))


@router.put("/formations/{formation_id}", response_model=FormationEnvelope)
def update_formation(
    request: Request,
    formation_id: str,
    claims: SessionClaims = Depends(require_admin),
    fields: dict[str, Any] = Depends(update_fields),
) -> FormationEnvelope:
    """Apply only the fields present in the body; validation runs on the merged record."""
    formation = _service(request).update(formation_id, fields)
    return FormationEnvelope(message="Formation updated successfully.", formation=_out(formation))


@router.delete("/formations/{formation_id}", response_model=MessageResponse)
def delete_formation(
    request: Request,
    formation_id: str,
    claims: SessionClaims = Depends(require_admin),
) -> MessageResponse:
    _service(request).delete(formation_id)
    return MessageResponse(message="Formation deleted successfully.")
