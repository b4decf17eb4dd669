"""
Module: recurring_kernel.selectors.template_selector
Responsibility: Read-only, owner-scoped access to recurring templates.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - Scope: a restricted AccessScope only ever sees its own owners'
      templates; a template outside the scope is reported as missing, never
      as forbidden, so ids of other tenants are not disclosed.
    - Ordering: list() returns newest templates first.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from recurring_kernel.domain.dtos import AccessScope, RecurringTemplateDTO
from recurring_kernel.exceptions import TemplateNotFoundError
from recurring_kernel.models.template import RecurringTemplate
from recurring_kernel.selectors.base import BaseSelector


def _apply_scope(query, scope: AccessScope | None):
    if scope is None or scope.is_unrestricted:
        return query
    return query.where(RecurringTemplate.owner_id.in_(scope.owner_ids))


class TemplateSelector(BaseSelector[RecurringTemplate]):
    """Query recurring templates."""

    def __init__(self, session: Session):
        super().__init__(session)

    def get(
        self,
        template_id: UUID,
        scope: AccessScope | None = None,
    ) -> RecurringTemplateDTO:
        """
        Get a template by id.

        Raises:
            TemplateNotFoundError: if the template does not exist or its owner
                is outside ``scope``.
        """
        template = self.session.get(RecurringTemplate, template_id)
        if template is None or (scope is not None and not scope.allows(template.owner_id)):
            raise TemplateNotFoundError(str(template_id))
        return template.to_dto()

    def find(self, template_id: UUID) -> RecurringTemplateDTO | None:
        template = self.session.get(RecurringTemplate, template_id)
        return template.to_dto() if template is not None else None

    def list(
        self,
        scope: AccessScope | None = None,
        *,
        active: bool | None = None,
    ) -> list[RecurringTemplateDTO]:
        """
        List templates visible to ``scope``, newest first.

        Args:
            scope: Owner filter; None or unrestricted lists everything.
            active: If given, only templates with that ``is_active`` value.
        """
        query = _apply_scope(select(RecurringTemplate), scope)
        if active is not None:
            query = query.where(RecurringTemplate.is_active == active)
        query = query.order_by(
            RecurringTemplate.created_at.desc(),
            RecurringTemplate.id,
        )
        templates = self.session.execute(query).scalars().all()
        return [t.to_dto() for t in templates]

    def active_template_ids(self, scope: AccessScope | None = None) -> list[UUID]:
        """Ids of active templates in scope, in a stable order.

        Returns ids rather than DTOs so that a row with a corrupt frequency
        is still handed to the batch executor and reported as a failure.
        """
        query = _apply_scope(
            select(RecurringTemplate.id).where(
                RecurringTemplate.is_active == True,  # noqa: E712
            ),
            scope,
        ).order_by(RecurringTemplate.created_at, RecurringTemplate.id)
        return list(self.session.execute(query).scalars().all())
