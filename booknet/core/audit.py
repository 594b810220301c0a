"""
Audit stamping.

Resources record who created and last modified them. The auditor is the
identity on the request's AuthContext; requests without one are stamped
with the system auditor.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, TypeVar

from booknet.core.models import Audited
from booknet.core.utils import Clock, utc_now

if TYPE_CHECKING:
    from booknet.auth.context import AuthContext

logger = logging.getLogger(__name__)

SYSTEM_AUDITOR = "__system__"

A = TypeVar("A", bound=Audited)


def current_auditor(ctx: AuthContext | None) -> str:
    """Resolve the auditor id for a request context."""
    if ctx is None or not ctx.is_authenticated:
        logger.debug("Audit: no authenticated identity, using system auditor")
        return SYSTEM_AUDITOR
    return ctx.user_id


def stamp_created(entity: A, ctx: AuthContext | None, clock: Clock = utc_now) -> A:
    entity.created_at = clock()
    entity.created_by = current_auditor(ctx)
    return entity


def stamp_modified(entity: A, ctx: AuthContext | None, clock: Clock = utc_now) -> A:
    entity.modified_at = clock()
    entity.modified_by = current_auditor(ctx)
    return entity
