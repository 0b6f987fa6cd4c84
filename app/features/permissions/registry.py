"""
Module registry: the closed catalog of permission modules.

Each module declares which of the global actions it supports. The table is
compiled in; adding a module or an action is a code change and a deploy.
"""
import enum
from functools import lru_cache
from typing import Iterable, Iterator, Optional

from pydantic import BaseModel, ConfigDict, field_validator


class Action(str, enum.Enum):
    """Global action vocabulary, in canonical order."""
    READ = "read"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


ALL_ACTIONS: frozenset[Action] = frozenset(Action)

_ACTION_ORDER = {action: index for index, action in enumerate(Action)}


def sort_actions(actions: Iterable[Action]) -> list[Action]:
    """Sort actions into vocabulary order (read, create, update, delete)."""
    return sorted(actions, key=_ACTION_ORDER.__getitem__)


def parse_action(value: str) -> Optional[Action]:
    """Return the Action named by value, or None if it is not one."""
    try:
        return Action(value)
    except ValueError:
        return None


class Module(BaseModel):
    """A permission module (resource category) and the actions it offers."""
    model_config = ConfigDict(frozen=True)

    key: str
    label: str
    supported_actions: frozenset[Action]

    @field_validator("key")
    @classmethod
    def key_format(cls, v: str) -> str:
        """Keys are used inside policy strings, so they cannot hold ':' or '*'."""
        if not v or ":" in v or "*" in v:
            raise ValueError(f"Invalid module key {v!r}")
        return v

    @field_validator("supported_actions")
    @classmethod
    def at_least_one_action(cls, v: frozenset[Action]) -> frozenset[Action]:
        if not v:
            raise ValueError("Module must support at least one action")
        return v

    def supports(self, action: Action) -> bool:
        return action in self.supported_actions

    def __repr__(self) -> str:
        actions = ",".join(a.value for a in sort_actions(self.supported_actions))
        return f"<Module(key={self.key!r}, actions={actions})>"


class ModuleRegistry:
    """
    Ordered, immutable catalog of modules with lookup by key.

    Lookups for unknown keys return None; callers treat that as
    "unknown module, ignore".
    """

    def __init__(self, modules: Iterable[Module]):
        ordered = tuple(modules)
        by_key: dict[str, Module] = {}
        for module in ordered:
            if module.key in by_key:
                raise ValueError(f"Duplicate module key {module.key!r}")
            by_key[module.key] = module
        self._modules = ordered
        self._by_key = by_key

    @property
    def modules(self) -> tuple[Module, ...]:
        return self._modules

    def module_by_key(self, key: str) -> Optional[Module]:
        return self._by_key.get(key)

    def keys(self) -> list[str]:
        return [module.key for module in self._modules]

    def __iter__(self) -> Iterator[Module]:
        return iter(self._modules)

    def __len__(self) -> int:
        return len(self._modules)

    def __contains__(self, key: object) -> bool:
        return key in self._by_key

    def __repr__(self) -> str:
        return f"<ModuleRegistry(modules={self.keys()})>"


R, C, U, D = Action.READ, Action.CREATE, Action.UPDATE, Action.DELETE

# (key, label, supported actions)
DEFAULT_MODULES = [
    # Sales
    ("leads", "Leads", {R, C, U, D}),
    ("contacts", "Contacts", {R, C, U, D}),
    ("accounts", "Accounts", {R, C, U, D}),
    ("opportunities", "Opportunities", {R, C, U, D}),
    ("quotes", "Quotes", {R, C, U, D}),
    ("products", "Products", {R, C, U, D}),
    ("tasks", "Tasks", {R, C, U, D}),
    ("calendar", "Calendar", {R, C, U, D}),

    # Communications
    ("calls", "Calls", {R, C}),
    ("whatsapp", "WhatsApp", {R, C}),
    ("campaigns", "Marketing Campaigns", {R, C, U, D}),
    ("workflows", "Automation Workflows", {R, C, U, D}),

    # Insights
    ("dashboard", "Dashboard", {R}),
    ("reports", "Reports", {R, C}),
    ("audit_logs", "Audit Logs", {R}),

    # Administration
    ("users", "Users", {R, C, U, D}),
    ("roles", "Roles & Permissions", {R, C, U, D}),
    ("settings", "Settings", {R, U}),
    ("integrations", "Integrations", {R, U}),
]


def build_registry(table: Iterable[tuple[str, str, Iterable[Action]]]) -> ModuleRegistry:
    """Build a registry from (key, label, actions) rows."""
    return ModuleRegistry(
        Module(key=key, label=label, supported_actions=frozenset(actions))
        for key, label, actions in table
    )


MODULE_REGISTRY = build_registry(DEFAULT_MODULES)


@lru_cache
def get_registry() -> ModuleRegistry:
    """FastAPI dependency returning the compiled-in registry."""
    return MODULE_REGISTRY
