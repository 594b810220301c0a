"""
Policies - the access policy evaluator.

Given who is asking (AuthContext), what they want to do (Operation) and,
for resource-scoped operations, the resource itself, decide ALLOW or
DENY. Rules run in a fixed order:

    1. authentication required and caller anonymous   → UNAUTHENTICATED
    2. required role missing                          → FORBIDDEN
    3. state preconditions, in order                  → OPERATION_NOT_PERMITTED
    4. owner-scoped, caller not owner, no override    → OPERATION_NOT_PERMITTED
    5. the operation's resource rules, in order       → OPERATION_NOT_PERMITTED
    6. otherwise                                      → ALLOW

Preconditions are resource rules that hold regardless of who asks (an
archived book refuses the transition even to a stranger); most operations
have none.

Resource rules are named predicates built from a small fixed set of
factories (resource_available, not_owner, requires_fact); operations
compose them instead of embedding per-entity checks in services.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Mapping, Protocol

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from booknet.auth.context import AuthContext
from booknet.core.errors import (
    BookNetError,
    ForbiddenError,
    OperationNotPermittedError,
    UnauthenticatedError,
)
from booknet.core.models import Role

logger = logging.getLogger(__name__)


# =============================================================================
# Types
# =============================================================================


class OwnedResource(Protocol):
    """Anything with an owner and the availability flags."""
    
    id: str
    owner_id: str
    archived: bool
    shareable: bool


class DenyReason(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    FORBIDDEN = "forbidden"
    OPERATION_NOT_PERMITTED = "operation_not_permitted"


@dataclass(frozen=True)
class Decision:
    """Outcome of a policy evaluation."""
    
    allowed: bool
    reason: DenyReason | None = None
    message: str | None = None
    rule: str | None = None
    
    @classmethod
    def allow(cls) -> Decision:
        return cls(allowed=True)
    
    @classmethod
    def deny(cls, reason: DenyReason, message: str, rule: str | None = None) -> Decision:
        return cls(allowed=False, reason=reason, message=message, rule=rule)
    
    def to_error(self, operation: str | None = None, resource: str | None = None) -> BookNetError:
        if self.reason == DenyReason.UNAUTHENTICATED:
            return UnauthenticatedError(self.message)
        if self.reason == DenyReason.FORBIDDEN:
            return ForbiddenError(self.message)
        return OperationNotPermittedError(self.message, operation=operation, resource=resource)


@dataclass(frozen=True)
class PolicyInput:
    ctx: AuthContext
    resource: OwnedResource | None
    facts: Mapping[str, Any]


@dataclass(frozen=True)
class ResourceRule:
    """A named predicate; `check` returns True when the rule passes."""
    
    name: str
    check: Callable[[PolicyInput], bool]
    message: str


@dataclass(frozen=True)
class Operation:
    """
    A protected operation.
    
    Examples:
        Operation("book.read")
        Operation("user.lock", required_role=Role.ADMIN)
        Operation("book.archive", owner_scoped=True)
        Operation("book.borrow", rules=(resource_available(), not_owner()))
        Operation("book.approve_return", owner_scoped=True, preconditions=(resource_available(),))
    """
    
    name: str
    requires_auth: bool = True
    required_role: Role | str | None = None
    owner_scoped: bool = False
    preconditions: tuple[ResourceRule, ...] = field(default_factory=tuple)
    rules: tuple[ResourceRule, ...] = field(default_factory=tuple)
    not_owner_message: str = "You cannot modify another user's resource"


# =============================================================================
# Rule factories
# =============================================================================


def resource_available(
    message: str = "The requested resource is archived or not shareable",
) -> ResourceRule:
    """Resource must be shareable and not archived."""
    return ResourceRule(
        name="resource_available",
        check=lambda i: i.resource is not None and i.resource.shareable and not i.resource.archived,
        message=message,
    )


def not_owner(message: str = "You cannot perform this operation on your own resource") -> ResourceRule:
    """Block cross-party transitions on one's own resource (e.g. borrowing)."""
    return ResourceRule(
        name="not_owner",
        check=lambda i: i.resource is not None and i.resource.owner_id != i.ctx.user_id,
        message=message,
    )


def requires_fact(fact: str, message: str) -> ResourceRule:
    """A precondition record named `fact` must have been supplied."""
    return ResourceRule(
        name=f"requires_fact:{fact}",
        check=lambda i: i.facts.get(fact) is not None,
        message=message,
    )


def forbids_fact(fact: str, message: str) -> ResourceRule:
    """A conflicting record named `fact` must not exist."""
    return ResourceRule(
        name=f"forbids_fact:{fact}",
        check=lambda i: not i.facts.get(fact),
        message=message,
    )


# =============================================================================
# Evaluator
# =============================================================================


class AccessPolicyEvaluator:
    """Decides ALLOW/DENY for an operation."""
    
    def __init__(self, override_roles: tuple[Role | str, ...] = (Role.ADMIN,)):
        self.override_roles = override_roles
    
    def authorize(
        self,
        ctx: AuthContext | None,
        operation: Operation,
        resource: OwnedResource | None = None,
        facts: Mapping[str, Any] | None = None,
    ) -> Decision:
        ctx = ctx or AuthContext.anonymous()
        
        # 1. Authentication
        if operation.requires_auth and ctx.is_anonymous:
            return Decision.deny(DenyReason.UNAUTHENTICATED, "Authentication required")
        
        # 2. Role
        if operation.required_role is not None and not ctx.has_role(operation.required_role):
            role = operation.required_role
            role_name = role.value if isinstance(role, Role) else role
            return Decision.deny(DenyReason.FORBIDDEN, f"Requires role {role_name}")
        
        policy_input = PolicyInput(ctx=ctx, resource=resource, facts=facts or {})
        
        # 3. State preconditions
        for rule in operation.preconditions:
            if not rule.check(policy_input):
                return Decision.deny(DenyReason.OPERATION_NOT_PERMITTED, rule.message, rule=rule.name)
        
        # 4. Ownership
        if operation.owner_scoped:
            if resource is None:
                raise ValueError(f"Operation {operation.name} is owner-scoped but no resource was given")
            if resource.owner_id != ctx.user_id and not ctx.has_any_role(*self.override_roles):
                return Decision.deny(
                    DenyReason.OPERATION_NOT_PERMITTED,
                    operation.not_owner_message,
                    rule="owner",
                )
        
        # 5. Resource rules
        for rule in operation.rules:
            if not rule.check(policy_input):
                return Decision.deny(DenyReason.OPERATION_NOT_PERMITTED, rule.message, rule=rule.name)
        
        return Decision.allow()
    
    def enforce(
        self,
        ctx: AuthContext | None,
        operation: Operation,
        resource: OwnedResource | None = None,
        facts: Mapping[str, Any] | None = None,
    ) -> AuthContext:
        """Like authorize(), but raise on DENY. Returns the context for chaining."""
        decision = self.authorize(ctx, operation, resource, facts)
        if not decision.allowed:
            resource_id = getattr(resource, "id", None)
            logger.warning(
                f"Denied {operation.name} for {getattr(ctx, 'user_id', None)} "
                f"on {resource_id}: {decision.reason.value} ({decision.rule or '-'})"
            )
            raise decision.to_error(operation=operation.name, resource=resource_id)
        return ctx or AuthContext.anonymous()


# =============================================================================
# FastAPI dependencies
# =============================================================================


# Documents the bearer scheme in OpenAPI. The middleware has already
# resolved the header by the time a route runs, so this never rejects.
bearer_scheme = HTTPBearer(auto_error=False)


def get_auth_context(request: Request) -> AuthContext:
    """The context the authorization middleware attached to this request."""
    ctx = getattr(request.state, "auth", None)
    return ctx if ctx is not None else AuthContext.anonymous()


def get_policy_evaluator(request: Request) -> AccessPolicyEvaluator:
    return request.app.state.container.policies


def require(operation: Operation) -> Callable:
    """
    Route-level gate for an operation without a resource.
    
    Usage:
        @router.get("/admin/users")
        async def list_users(ctx: AuthContext = Depends(require_role(Role.ADMIN))):
            ...
    """
    
    async def dependency(
        ctx: AuthContext = Depends(get_auth_context),
        policies: AccessPolicyEvaluator = Depends(get_policy_evaluator),
        _credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    ) -> AuthContext:
        return policies.enforce(ctx, operation)
    
    return dependency


def require_auth() -> Callable:
    """Just require authentication, no specific role."""
    return require(Operation("authenticated"))


def require_role(role: Role | str) -> Callable:
    """Require a platform role (the override roles get no special pass here)."""
    name = role.value if isinstance(role, Role) else role
    return require(Operation(f"role:{name}", required_role=role))
