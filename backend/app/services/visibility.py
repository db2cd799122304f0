"""
Visibility Filter

One place decides which tasks and contracts a principal may see:

  agent    → rows they own
  manager  → rows of their team
  director → everything

Every read path goes through scope_queryset() rather than branching on the
role itself. Tasks and contracts share the ownership field names, so the same
predicate applies to both tables.
"""
import logging

from django.db.models import Q, QuerySet

from app.principal import AGENT, DIRECTOR, MANAGER, Principal

logger = logging.getLogger(__name__)


def visibility_predicate(principal: Principal) -> Q:
    if principal.role == AGENT:
        return Q(owner_id=principal.id)
    if principal.role == MANAGER:
        return Q(team_id=principal.team_id)
    if principal.role == DIRECTOR:
        return Q()
    raise ValueError(f"No visibility rule for role '{principal.role}'")


def legacy_visibility_predicate(principal: Principal) -> Q | None:
    """
    Predicate over the deprecated agent ownership field, for agents only.
    Rows that have an owner_id are never matched through it.
    """
    if principal.role == AGENT:
        return Q(owner_id="") & Q(legacy_agent_id=principal.id)
    return None


def scope_queryset(queryset: QuerySet, principal: Principal) -> QuerySet:
    """
    Restrict a Task or Contract queryset to what the principal may see.

    Records written before owner_id existed only carry legacy_agent_id; when an
    agent's scoped query comes back empty, retry against that field before
    concluding there is nothing to show.
    """
    scoped = queryset.filter(visibility_predicate(principal))
    if scoped.exists():
        return scoped

    legacy = legacy_visibility_predicate(principal)
    if legacy is None:
        return scoped

    fallback = queryset.filter(legacy)
    if fallback.exists():
        logger.info(
            "Visibility for agent %s served from legacy ownership field (%s)",
            principal.id, queryset.model._meta.db_table,
        )
        return fallback
    return scoped
