"""
Policy endpoints: module catalog, decode, encode and mutate.

All endpoints are stateless: the client holds the policy being edited and
sends it with every request.
"""
from typing import Annotated, List

from fastapi import APIRouter, Depends

from app.features.permissions import policy
from app.features.permissions.registry import ModuleRegistry, get_registry
from app.features.permissions.schemas import (
    MatrixInput,
    MatrixResponse,
    ModuleResponse,
    MutationRequest,
    MutationResponse,
    PolicyPayload,
)
from app.utils import get_logger


log = get_logger(__name__)

router = APIRouter(tags=["permissions"])


@router.get("/modules", response_model=List[ModuleResponse])
async def list_modules(registry: Annotated[ModuleRegistry, Depends(get_registry)]):
    """List the permission modules and the actions each one supports."""
    return [ModuleResponse.from_module(module) for module in registry]


@router.post("/decode", response_model=MatrixResponse)
async def decode_policy(
    payload: PolicyPayload,
    registry: Annotated[ModuleRegistry, Depends(get_registry)]
):
    """Expand a permission list into a capability matrix."""
    matrix = policy.decode(payload.permissions, registry)
    return MatrixResponse.from_matrix(matrix, registry)


@router.post("/encode", response_model=PolicyPayload)
async def encode_matrix(
    payload: MatrixInput,
    registry: Annotated[ModuleRegistry, Depends(get_registry)]
):
    """Collapse a capability matrix into its minimal permission list."""
    matrix = policy.matrix_from_grants(payload.grants, payload.is_super_admin, registry)
    return PolicyPayload(permissions=policy.encode(matrix))


@router.post("/mutate", response_model=MutationResponse)
async def mutate_policy(
    payload: MutationRequest,
    registry: Annotated[ModuleRegistry, Depends(get_registry)]
):
    """Apply one toggle to a permission list."""
    before = policy.decode(payload.permissions, registry)

    if payload.operation == "toggle_super_admin":
        after = policy.toggle_super_admin(before, payload.on, registry)
    elif payload.operation == "toggle_module_full":
        after = policy.toggle_module_full(before, payload.module, payload.on, registry)
    else:
        after = policy.toggle_action(before, payload.module, payload.action, payload.on, registry)

    applied = after != before
    if not applied:
        log.info("Mutation %s on %r had no effect", payload.operation, payload.module)

    return MutationResponse(
        permissions=policy.encode(after),
        applied=applied,
        matrix=MatrixResponse.from_matrix(after, registry),
    )
