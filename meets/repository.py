"""Scoped persistence helpers used by the entry store and overlays.

Each repository wraps one model and a *scope*: the rows the acting user is
allowed to change. Updates and deletes outside the scope are not errors; they
simply report zero affected rows, which callers treat as an ambiguous result.
"""
from __future__ import annotations

import logging

from django.core.exceptions import ValidationError
from django.db import DatabaseError, models as db_models, transaction

from . import models
from .errors import PersistenceError

logger = logging.getLogger(__name__)


class Repository:
    model: type[db_models.Model]
    select_related: tuple[str, ...] = ()

    def __init__(self, scope: db_models.QuerySet | None = None, *, writable_parents=None):
        self.scope = scope if scope is not None else self.model._default_manager.all()
        self.writable_parents = writable_parents

    def _base(self) -> db_models.QuerySet:
        queryset = self.model._default_manager.all()
        if self.select_related:
            queryset = queryset.select_related(*self.select_related)
        return queryset

    def filter_by_parent(self, **lookup) -> list[db_models.Model]:
        return list(self._base().filter(**lookup))

    def get(self, pk) -> db_models.Model | None:
        return self._base().filter(pk=pk).first()

    def can_create(self, fields: dict[str, object]) -> bool:
        return True

    def create(self, **fields) -> db_models.Model:
        if not self.can_create(fields):
            raise PersistenceError("You do not have permission to make this change.")
        instance = self.model(**fields)
        try:
            instance.full_clean()
            with transaction.atomic():
                instance.save()
        except ValidationError as exc:
            raise PersistenceError("; ".join(exc.messages)) from exc
        except DatabaseError as exc:
            logger.exception("create failed for %s", self.model.__name__)
            raise PersistenceError() from exc
        return self.get(instance.pk) or instance

    def update(self, pk, **patch) -> int:
        try:
            return self.scope.filter(pk=pk).update(**patch)
        except DatabaseError as exc:
            logger.exception("update failed for %s %s", self.model.__name__, pk)
            raise PersistenceError() from exc

    def delete(self, pk) -> int:
        try:
            deleted, _ = self.scope.filter(pk=pk).delete()
        except DatabaseError as exc:
            logger.exception("delete failed for %s %s", self.model.__name__, pk)
            raise PersistenceError() from exc
        return deleted


class EntryRepository(Repository):
    model = models.MeetEntry
    select_related = ("athlete", "event")

    def _base(self):
        return super()._base().order_by("created_at", "pk")

    def can_create(self, fields):
        if self.writable_parents is None:
            return True
        return self.writable_parents.filter(pk=fields.get("meet_id")).exists()

    def list_for_meet(self, meet_id) -> list[models.MeetEntry]:
        return self.filter_by_parent(meet_id=meet_id)


class ActivationRepository(Repository):
    model = models.EventActivation

    def can_create(self, fields):
        if self.writable_parents is None:
            return True
        return self.writable_parents.filter(pk=fields.get("meet_id")).exists()

    def inactive_event_ids(self, meet_id) -> set:
        return set(
            self.model._default_manager.filter(meet_id=meet_id).values_list("event_id", flat=True)
        )

    def delete_override(self, meet_id, event_id) -> int:
        try:
            deleted, _ = self.scope.filter(meet_id=meet_id, event_id=event_id).delete()
        except DatabaseError as exc:
            logger.exception("delete failed for override %s/%s", meet_id, event_id)
            raise PersistenceError() from exc
        return deleted


class AthleteRepository(Repository):
    model = models.Athlete

    def can_create(self, fields):
        if self.writable_parents is None:
            return True
        return self.writable_parents.filter(pk=fields.get("team_id")).exists()
