"""
Policy codec and mutator.

A policy is the compact, storable list of permission strings of a role:

    "*"                 every action on every module (super admin)
    "<module>:*"        every supported action on one module
    "<module>:<action>" one action on one module

A CapabilityMatrix is the expanded form used while editing: one set of
granted tokens per registered module, plus the super admin flag. Matrices
are immutable; every mutator returns a new matrix.

Invariants kept by every function here:
- super admin means every module holds its supported actions plus "*";
- otherwise a module holds "*" exactly when it holds all its supported actions;
- a module never holds an action it does not support.
"""
import enum
from types import MappingProxyType
from typing import Iterable, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, field_validator

from app.features.permissions.registry import (
    MODULE_REGISTRY,
    Action,
    Module,
    ModuleRegistry,
    parse_action,
    sort_actions,
)
from app.utils import get_logger


log = get_logger(__name__)

WILDCARD = "*"
SEPARATOR = ":"


class ModuleState(str, enum.Enum):
    EMPTY = "empty"
    PARTIAL = "partial"
    FULL = "full"


class CapabilityMatrix(BaseModel):
    """Granted tokens per module key, in registry order."""
    model_config = ConfigDict(frozen=True)

    grants: Mapping[str, frozenset[str]]
    is_super_admin: bool = False

    @field_validator("grants")
    @classmethod
    def read_only_grants(cls, v: Mapping[str, frozenset[str]]) -> Mapping[str, frozenset[str]]:
        """Grants are exposed read-only; mutators build a new matrix instead."""
        return MappingProxyType(dict(v))

    def granted(self, module_key: str) -> frozenset[str]:
        return self.grants.get(module_key, frozenset())


def _with_grant(matrix: CapabilityMatrix, module_key: str, tokens: frozenset[str]) -> CapabilityMatrix:
    grants = dict(matrix.grants)
    grants[module_key] = tokens
    return CapabilityMatrix(grants=grants, is_super_admin=matrix.is_super_admin)


def _full(module: Module) -> frozenset[str]:
    return frozenset(a.value for a in module.supported_actions) | {WILDCARD}


def _derive_wildcard(module: Module, tokens: Iterable[str]) -> frozenset[str]:
    """Recompute "*" membership from the module's action set."""
    actions = frozenset(t for t in tokens if t != WILDCARD)
    if actions >= {a.value for a in module.supported_actions}:
        return actions | {WILDCARD}
    return actions


def empty_matrix(registry: ModuleRegistry = MODULE_REGISTRY) -> CapabilityMatrix:
    return CapabilityMatrix(grants={m.key: frozenset() for m in registry})


def super_admin_matrix(registry: ModuleRegistry = MODULE_REGISTRY) -> CapabilityMatrix:
    return CapabilityMatrix(
        grants={m.key: _full(m) for m in registry},
        is_super_admin=True,
    )


# ============================================================================
# Codec
# ============================================================================

def decode(policy: Iterable[str], registry: ModuleRegistry = MODULE_REGISTRY) -> CapabilityMatrix:
    """
    Expand a policy into a capability matrix.

    Never raises: unknown modules, unsupported actions and malformed entries
    are skipped and the rest of the policy is still applied. Entries are
    matched exactly, so padded strings such as " * " grant nothing.
    """
    entries = [entry for entry in policy if isinstance(entry, str)]
    if WILDCARD in entries:
        return super_admin_matrix(registry)

    working: dict[str, set[str]] = {m.key: set() for m in registry}
    for entry in entries:
        module_key, sep, token = entry.partition(SEPARATOR)
        module = registry.module_by_key(module_key) if sep else None
        if module is None:
            log.debug("Ignoring policy entry %r: unknown module", entry)
            continue
        if token == WILDCARD:
            working[module.key] |= _full(module)
            continue
        action = parse_action(token)
        if action is None or not module.supports(action):
            log.debug("Ignoring policy entry %r: unsupported action", entry)
            continue
        working[module.key].add(action.value)

    return CapabilityMatrix(
        grants={m.key: _derive_wildcard(m, working[m.key]) for m in registry}
    )


def encode(matrix: CapabilityMatrix) -> list[str]:
    """
    Collapse a matrix into its minimal policy.

    Full modules become "<module>:*"; the super admin flag becomes ["*"].
    Output follows the matrix's module order and the action vocabulary order.
    """
    if matrix.is_super_admin:
        return [WILDCARD]

    policy: list[str] = []
    for module_key, tokens in matrix.grants.items():
        if WILDCARD in tokens:
            policy.append(f"{module_key}{SEPARATOR}{WILDCARD}")
            continue
        actions = [a for a in (parse_action(t) for t in tokens) if a is not None]
        policy.extend(f"{module_key}{SEPARATOR}{a.value}" for a in sort_actions(actions))
    return policy


def normalize(policy: Iterable[str], registry: ModuleRegistry = MODULE_REGISTRY) -> list[str]:
    """Minimal encoding of a policy: encode(decode(policy))."""
    return encode(decode(policy, registry))


def module_state(matrix: CapabilityMatrix, module_key: str) -> ModuleState:
    tokens = matrix.granted(module_key)
    if WILDCARD in tokens:
        return ModuleState.FULL
    if tokens:
        return ModuleState.PARTIAL
    return ModuleState.EMPTY


# ============================================================================
# Mutator
# ============================================================================

def toggle_super_admin(
    matrix: CapabilityMatrix,
    on: bool,
    registry: ModuleRegistry = MODULE_REGISTRY,
) -> CapabilityMatrix:
    """
    Switch the global wildcard on or off.

    Turning it off clears every module; the selection held before it was
    turned on is not restored.
    """
    if on:
        return super_admin_matrix(registry)
    return empty_matrix(registry)


def toggle_module_full(
    matrix: CapabilityMatrix,
    module_key: str,
    on: bool,
    registry: ModuleRegistry = MODULE_REGISTRY,
) -> CapabilityMatrix:
    """Grant or clear every action of one module in a single step."""
    if matrix.is_super_admin:
        log.warning("Rejected module toggle on %r: super admin is on", module_key)
        return matrix
    module = registry.module_by_key(module_key)
    if module is None:
        return matrix
    return _with_grant(matrix, module.key, _full(module) if on else frozenset())


def toggle_action(
    matrix: CapabilityMatrix,
    module_key: str,
    action: Union[Action, str],
    on: bool,
    registry: ModuleRegistry = MODULE_REGISTRY,
) -> CapabilityMatrix:
    """
    Grant or revoke one action on one module.

    Granting the last missing action also adds "*". Revoking any action
    always drops "*". Actions the module does not offer are a no-op.
    """
    if matrix.is_super_admin:
        log.warning("Rejected action toggle on %r: super admin is on", module_key)
        return matrix
    module = registry.module_by_key(module_key)
    parsed: Optional[Action] = action if isinstance(action, Action) else parse_action(action)
    if module is None or parsed is None or not module.supports(parsed):
        return matrix

    tokens = set(matrix.granted(module.key))
    if on:
        tokens.add(parsed.value)
        return _with_grant(matrix, module.key, _derive_wildcard(module, tokens))
    tokens.discard(parsed.value)
    tokens.discard(WILDCARD)
    return _with_grant(matrix, module.key, frozenset(tokens))


def matrix_from_grants(
    grants: Mapping[str, Iterable[str]],
    is_super_admin: bool = False,
    registry: ModuleRegistry = MODULE_REGISTRY,
) -> CapabilityMatrix:
    """
    Build a valid matrix from loosely shaped input (e.g. a client payload).

    The input is passed through encode and decode, so unknown modules and
    unsupported actions are dropped and wildcards are re-derived.
    """
    raw = CapabilityMatrix(
        grants={key: frozenset(tokens) for key, tokens in grants.items()},
        is_super_admin=is_super_admin,
    )
    return decode(encode(raw), registry)
