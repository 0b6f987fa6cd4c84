"""
Pydantic schemas for the policy endpoints.

JSON field names are camelCase to match the role documents the front end
already exchanges (roleKey, isSystemRole, ...).
"""
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from app.features.permissions.policy import CapabilityMatrix, ModuleState, module_state
from app.features.permissions.registry import Action, Module, ModuleRegistry, sort_actions


class CamelModel(BaseModel):
    """Base schema serializing to camelCase while accepting either case."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ============================================================================
# Registry Schemas
# ============================================================================

class ModuleResponse(CamelModel):
    """One entry of the module catalog."""
    key: str
    label: str
    supported_actions: List[Action]

    @classmethod
    def from_module(cls, module: Module) -> "ModuleResponse":
        return cls(
            key=module.key,
            label=module.label,
            supported_actions=sort_actions(module.supported_actions),
        )


# ============================================================================
# Matrix Schemas
# ============================================================================

class ModuleGrants(ModuleResponse):
    """A module row of the capability matrix."""
    granted: List[str] = []
    state: ModuleState = ModuleState.EMPTY


class MatrixResponse(CamelModel):
    """Capability matrix as rendered for an editor, in registry order."""
    is_super_admin: bool
    modules: List[ModuleGrants]

    @classmethod
    def from_matrix(cls, matrix: CapabilityMatrix, registry: ModuleRegistry) -> "MatrixResponse":
        rows = []
        for module in registry:
            tokens = matrix.granted(module.key)
            actions = sort_actions(Action(t) for t in tokens if t != "*")
            granted = [a.value for a in actions] + (["*"] if "*" in tokens else [])
            rows.append(
                ModuleGrants(
                    key=module.key,
                    label=module.label,
                    supported_actions=sort_actions(module.supported_actions),
                    granted=granted,
                    state=module_state(matrix, module.key),
                )
            )
        return cls(is_super_admin=matrix.is_super_admin, modules=rows)


class MatrixInput(CamelModel):
    """Matrix submitted by a client: granted tokens keyed by module."""
    is_super_admin: bool = False
    grants: Dict[str, List[str]] = Field(default_factory=dict)


# ============================================================================
# Policy Schemas
# ============================================================================

class PolicyPayload(CamelModel):
    """A role's permission list."""
    permissions: List[str] = Field(default_factory=list, description="Permission strings, e.g. 'leads:read'")


MutationOperation = Literal["toggle_action", "toggle_module_full", "toggle_super_admin"]


class MutationRequest(PolicyPayload):
    """Apply one toggle to a policy and return the result."""
    operation: MutationOperation
    module: Optional[str] = Field(None, description="Module key (module and action toggles)")
    action: Optional[str] = Field(None, description="Action (action toggle only)")
    on: bool

    @model_validator(mode="after")
    def required_targets(self) -> "MutationRequest":
        if self.operation in ("toggle_action", "toggle_module_full") and not self.module:
            raise ValueError(f"module is required for {self.operation}")
        if self.operation == "toggle_action" and not self.action:
            raise ValueError("action is required for toggle_action")
        return self


class MutationResponse(PolicyPayload):
    """Resulting policy and matrix; applied is false for no-ops and rejections."""
    applied: bool
    matrix: MatrixResponse
