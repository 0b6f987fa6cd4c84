"""
Role edit session.

An edit session holds one role being created or edited: its display fields
and the capability matrix the editor toggles. Nothing is persisted until the
caller saves; validate() must come back empty before that happens.
"""
from typing import Any, Dict, Iterable, List, Optional, Union

from app.features.permissions import policy
from app.features.permissions.policy import CapabilityMatrix
from app.features.permissions.registry import MODULE_REGISTRY, Action, ModuleRegistry


def parse_permission_input(text: str) -> List[str]:
    """
    Split the comma separated permission field of the role form.

    "leads:read, leads:*,, contacts:read" -> ["leads:read", "leads:*", "contacts:read"]
    """
    return [part.strip() for part in text.split(",") if part.strip()]


class RoleEditSession:
    """
    Edits one role through the policy mutator.

    Sessions opened on a stored role keep its role_key fixed; sessions for a
    new role let the key be set until the role is saved.
    """

    def __init__(
        self,
        matrix: CapabilityMatrix,
        *,
        role_key: str = "",
        name: str = "",
        description: Optional[str] = None,
        is_system_role: bool = False,
        key_locked: bool = False,
        registry: ModuleRegistry = MODULE_REGISTRY,
    ):
        self.registry = registry
        self.matrix = matrix
        self.name = name
        self.description = description
        self.is_system_role = is_system_role
        self._role_key = role_key
        self._key_locked = key_locked
        self._initial_policy = frozenset(policy.encode(matrix))

    @classmethod
    def new(cls, registry: ModuleRegistry = MODULE_REGISTRY) -> "RoleEditSession":
        """Session for a role that does not exist yet."""
        return cls(policy.empty_matrix(registry), registry=registry)

    @classmethod
    def from_role(cls, role: Any, registry: ModuleRegistry = MODULE_REGISTRY) -> "RoleEditSession":
        """Session over a stored role (ORM object or schema with the role fields)."""
        return cls(
            policy.decode(role.permissions or [], registry),
            role_key=role.role_key,
            name=role.name,
            description=role.description,
            is_system_role=role.is_system_role,
            key_locked=True,
            registry=registry,
        )

    @classmethod
    def from_permissions(
        cls,
        permissions: Union[Iterable[str], str],
        *,
        role_key: str = "",
        name: str = "",
        description: Optional[str] = None,
        is_system_role: bool = False,
        registry: ModuleRegistry = MODULE_REGISTRY,
    ) -> "RoleEditSession":
        """
        Session for a new role whose grants arrive as a permission list, or as
        the comma separated text of the role form.
        """
        if isinstance(permissions, str):
            permissions = parse_permission_input(permissions)
        return cls(
            policy.decode(permissions, registry),
            role_key=role_key,
            name=name,
            description=description,
            is_system_role=is_system_role,
            registry=registry,
        )

    @property
    def role_key(self) -> str:
        return self._role_key

    @role_key.setter
    def role_key(self, value: str) -> None:
        if self._key_locked and value != self._role_key:
            raise ValueError(f"Role key {self._role_key!r} cannot be changed once created")
        self._role_key = value

    @property
    def is_super_admin(self) -> bool:
        return self.matrix.is_super_admin

    @property
    def policy(self) -> List[str]:
        """Encoded policy of the current matrix, as it would be saved."""
        return policy.encode(self.matrix)

    @property
    def has_changes(self) -> bool:
        return frozenset(self.policy) != self._initial_policy

    def toggle_super_admin(self, on: bool) -> CapabilityMatrix:
        self.matrix = policy.toggle_super_admin(self.matrix, on, self.registry)
        return self.matrix

    def toggle_module_full(self, module_key: str, on: bool) -> CapabilityMatrix:
        self.matrix = policy.toggle_module_full(self.matrix, module_key, on, self.registry)
        return self.matrix

    def toggle_action(self, module_key: str, action: Union[Action, str], on: bool) -> CapabilityMatrix:
        self.matrix = policy.toggle_action(self.matrix, module_key, action, on, self.registry)
        return self.matrix

    def validate(self) -> Dict[str, str]:
        """
        Checks that must pass before the role is saved.

        Returns a mapping of field name to message; empty means valid.
        """
        errors: Dict[str, str] = {}
        if not self.role_key.strip():
            errors["roleKey"] = "Key is required"
        if not self.name.strip():
            errors["name"] = "Name is required"
        if not self.policy:
            errors["permissions"] = "At least one permission is required"
        return errors

    def __repr__(self) -> str:
        return f"<RoleEditSession(role_key={self.role_key!r}, policy={self.policy})>"
