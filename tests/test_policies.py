"""
Tests for the access policy evaluator.

Ownership enforcement, the self-operation block, and rule ordering.
"""

import pytest

from booknet.auth.context import AuthContext
from booknet.auth.policies import (
    DenyReason,
    Operation,
    forbids_fact,
    not_owner,
    requires_fact,
    resource_available,
)
from booknet.core.errors import (
    ForbiddenError,
    OperationNotPermittedError,
    UnauthenticatedError,
)
from booknet.core.models import Book, Role


def ctx_for(user_id: str, *roles: str) -> AuthContext:
    return AuthContext(
        user_id=user_id,
        email=f"{user_id}@example.com",
        authorities=frozenset(roles or ("USER",)),
    )


@pytest.fixture
def book():
    return Book(
        id="book_1",
        title="Dune",
        author_name="Frank Herbert",
        isbn="9780441013593",
        owner_id="owner",
        shareable=True,
    )


OWNER_ONLY = Operation("book.archive", owner_scoped=True, not_owner_message="Not yours")
BORROW = Operation(
    "book.borrow",
    rules=(
        resource_available("Unavailable"),
        not_owner("Own book"),
        forbids_fact("borrowed", "Already borrowed"),
    ),
)


# =============================================================================
# Ordering
# =============================================================================


class TestRuleOrder:
    def test_anonymous_denied_first(self, policies, book):
        decision = policies.authorize(AuthContext.anonymous(), BORROW, book)
        
        assert not decision.allowed
        assert decision.reason == DenyReason.UNAUTHENTICATED

    def test_missing_role_is_forbidden(self, policies):
        decision = policies.authorize(ctx_for("u1"), Operation("admin.op", required_role=Role.ADMIN))
        
        assert decision.reason == DenyReason.FORBIDDEN

    def test_public_operation_allows_anonymous(self, policies):
        assert policies.authorize(None, Operation("health", requires_auth=False)).allowed

    def test_rules_checked_in_declared_order(self, policies, book):
        book.owner_id = "u1"
        book.archived = True
        
        decision = policies.authorize(ctx_for("u1"), BORROW, book, {"borrowed": True})
        
        # Archived wins over own-book and already-borrowed
        assert decision.rule == "resource_available"
        assert decision.message == "Unavailable"

    def test_preconditions_run_before_ownership(self, policies, book):
        operation = Operation(
            "book.approve_return",
            owner_scoped=True,
            not_owner_message="Not yours",
            preconditions=(resource_available("Unavailable"),),
        )
        book.archived = True
        
        decision = policies.authorize(ctx_for("stranger"), operation, book)
        
        assert decision.rule == "resource_available"
        assert decision.message == "Unavailable"
        
        book.archived = False
        assert policies.authorize(ctx_for("stranger"), operation, book).rule == "owner"

    def test_owner_scoped_needs_a_resource(self, policies):
        with pytest.raises(ValueError):
            policies.authorize(ctx_for("u1"), OWNER_ONLY)


# =============================================================================
# Ownership
# =============================================================================


class TestOwnership:
    def test_owner_allowed(self, policies, book):
        assert policies.authorize(ctx_for("owner"), OWNER_ONLY, book).allowed

    def test_non_owner_denied(self, policies, book):
        decision = policies.authorize(ctx_for("stranger"), OWNER_ONLY, book)
        
        assert decision.reason == DenyReason.OPERATION_NOT_PERMITTED
        assert decision.message == "Not yours"
        assert decision.rule == "owner"

    def test_admin_overrides_ownership(self, policies, book):
        assert policies.authorize(ctx_for("admin", "USER", "ADMIN"), OWNER_ONLY, book).allowed

    def test_admin_does_not_skip_resource_rules(self, policies, book):
        book.shareable = False
        
        decision = policies.authorize(ctx_for("admin", "ADMIN"), BORROW, book)
        
        assert decision.rule == "resource_available"


# =============================================================================
# Self-operation block
# =============================================================================


class TestSelfOperation:
    def test_cannot_borrow_own_book(self, policies, book):
        decision = policies.authorize(ctx_for("owner"), BORROW, book)
        
        assert not decision.allowed
        assert decision.message == "Own book"

    def test_others_may_borrow(self, policies, book):
        assert policies.authorize(ctx_for("reader"), BORROW, book, {"borrowed": False}).allowed

    def test_forbidden_fact_blocks(self, policies, book):
        decision = policies.authorize(ctx_for("reader"), BORROW, book, {"borrowed": True})
        
        assert decision.message == "Already borrowed"


class TestFacts:
    def test_required_fact_must_be_present(self, policies, book):
        op = Operation("book.return", rules=(requires_fact("open_borrow", "You did not borrow this book"),))
        
        assert not policies.authorize(ctx_for("reader"), op, book, {}).allowed
        assert not policies.authorize(ctx_for("reader"), op, book, {"open_borrow": None}).allowed
        assert policies.authorize(ctx_for("reader"), op, book, {"open_borrow": object()}).allowed


# =============================================================================
# Enforcement
# =============================================================================


class TestEnforce:
    def test_raises_matching_errors(self, policies, book):
        with pytest.raises(UnauthenticatedError):
            policies.enforce(None, BORROW, book)
        with pytest.raises(ForbiddenError):
            policies.enforce(ctx_for("u1"), Operation("admin.op", required_role="ADMIN"))
        with pytest.raises(OperationNotPermittedError) as exc:
            policies.enforce(ctx_for("stranger"), OWNER_ONLY, book)
        
        assert exc.value.status_code == 403
        assert exc.value.operation == "book.archive"
        assert exc.value.resource == "book_1"

    def test_returns_context_when_allowed(self, policies, book):
        ctx = ctx_for("owner")
        
        assert policies.enforce(ctx, OWNER_ONLY, book) is ctx
