"""
Authentication and authorization.

Pipeline, leaves first:
1. UserStore / PasswordHasher / TokenCodec
2. Authenticator (credential pair → verified identity)
3. RequestAuthorizer (bearer token → AuthContext, once per request)
4. AccessPolicyEvaluator (AuthContext + operation + resource → allow/deny)
"""

from booknet.auth.authenticator import Authenticator, VerifiedIdentity
from booknet.auth.context import AuthContext
from booknet.auth.jwt import TokenClaims, TokenCodec
from booknet.auth.middleware import (
    AuthOutcome,
    AuthState,
    AuthorizationMiddleware,
    RequestAuthorizer,
)
from booknet.auth.passwords import PasswordHasher
from booknet.auth.policies import (
    AccessPolicyEvaluator,
    Decision,
    DenyReason,
    Operation,
    ResourceRule,
    forbids_fact,
    get_auth_context,
    not_owner,
    require,
    require_auth,
    require_role,
    requires_fact,
    resource_available,
)
from booknet.auth.users import UserStore

__all__ = [
    # Pipeline
    "Authenticator",
    "VerifiedIdentity",
    "AuthContext",
    "TokenClaims",
    "TokenCodec",
    "AuthOutcome",
    "AuthState",
    "AuthorizationMiddleware",
    "RequestAuthorizer",
    "PasswordHasher",
    "UserStore",
    # Policies
    "AccessPolicyEvaluator",
    "Decision",
    "DenyReason",
    "Operation",
    "ResourceRule",
    "forbids_fact",
    "not_owner",
    "requires_fact",
    "resource_available",
    # Route dependencies
    "get_auth_context",
    "require",
    "require_auth",
    "require_role",
]
