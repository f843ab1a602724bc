"""Role, approval and billing checks for the acting user."""
from __future__ import annotations

from django.db.models import QuerySet
from rest_framework import permissions

from . import models
from .repository import ActivationRepository, AthleteRepository, EntryRepository


def profile_for(user) -> models.Profile | None:
    if not getattr(user, "is_authenticated", False):
        return None
    try:
        return user.profile
    except models.Profile.DoesNotExist:
        return None


def team_for(user) -> models.Team | None:
    profile = profile_for(user)
    if profile is None or not profile.approved:
        return None
    return profile.team


def is_coach(user) -> bool:
    profile = profile_for(user)
    return bool(profile and profile.approved and profile.is_coach)


def editable_teams(user) -> QuerySet:
    """Teams the user may mutate: approved coach/admin with billing in good standing."""

    profile = profile_for(user)
    if profile is None or not profile.approved or not profile.is_coach:
        return models.Team.objects.none()
    if profile.role == models.Profile.Role.ADMIN and getattr(user, "is_superuser", False):
        candidates = models.Team.objects.all()
    else:
        candidates = models.Team.objects.filter(pk=profile.team_id)
    allowed = [team.pk for team in candidates if team.can_edit()]
    return models.Team.objects.filter(pk__in=allowed)


def entry_repository_for(user) -> EntryRepository:
    teams = editable_teams(user)
    return EntryRepository(
        models.MeetEntry.objects.filter(meet__team__in=teams),
        writable_parents=models.Meet.objects.filter(team__in=teams),
    )


def activation_repository_for(user) -> ActivationRepository:
    teams = editable_teams(user)
    return ActivationRepository(
        models.EventActivation.objects.filter(meet__team__in=teams),
        writable_parents=models.Meet.objects.filter(team__in=teams),
    )


def athlete_repository_for(user) -> AthleteRepository:
    teams = editable_teams(user)
    return AthleteRepository(
        models.Athlete.objects.filter(team__in=teams),
        writable_parents=teams,
    )


class IsApprovedMember(permissions.BasePermission):
    message = "An approved team membership is required."

    def has_permission(self, request, view) -> bool:
        return team_for(request.user) is not None


class IsCoachOrReadOnly(permissions.BasePermission):
    message = "Only coaches can change meet entries."

    def has_permission(self, request, view) -> bool:
        if request.method in permissions.SAFE_METHODS:
            return True
        return is_coach(request.user)
