"""
Error taxonomy shared by the permission, lifecycle and repository layers.
"""


class Denied(PermissionError):
    """The acting role lacks the permission a mutation requires.

    Returned inside a TransitionResult rather than raised, so callers can
    render a locked affordance. TransitionResult.unwrap() raises it.
    """

    def __init__(self, role: str | None, permission: str) -> None:
        self.role = role
        self.permission = permission
        super().__init__(f"Permission denied: role '{role}' lacks '{permission}'")


class InvalidTransition(ValueError):
    """Target status is not a member of the entity kind's enumeration."""

    def __init__(self, kind: str, status: str) -> None:
        self.kind = kind
        self.status = status
        super().__init__(f"Invalid status for {kind}: '{status}'")


class NotFound(LookupError):
    """Referenced id or code is absent from the repository."""

    def __init__(self, kind: str, key: str) -> None:
        self.kind = kind
        self.key = key
        super().__init__(f"{kind} '{key}' not found")
