"""Shared fixtures for the meets test-suite."""
from __future__ import annotations

import datetime

from django.contrib.auth import get_user_model

from meets import models


class MeetFixtureMixin:
    """Builds a team with a coach, a meet and a few athletes."""

    def make_team(self, slug="hawks", **overrides):
        defaults = {
            "name": slug.title(),
            "subscription_status": models.Team.SubscriptionStatus.ACTIVE,
        }
        defaults.update(overrides)
        return models.Team.objects.create(slug=slug, **defaults)

    def make_user(self, username, team, role=models.Profile.Role.COACH, approved=True):
        user = get_user_model().objects.create_user(username=username, password="password")
        models.Profile.objects.create(user=user, team=team, role=role, approved=approved, full_name=username)
        return user

    def make_athlete(self, team, first, last, **extra):
        return models.Athlete.objects.create(team=team, first_name=first, last_name=last, **extra)

    def make_meet(self, team, name="Dual Meet", date=None):
        return models.Meet.objects.create(
            team=team,
            name=name,
            date=date or datetime.date.today() + datetime.timedelta(days=7),
        )

    def event(self, short_name):
        return models.TrackEvent.objects.get(short_name=short_name)

    def build_fixtures(self):
        self.team = self.make_team()
        self.coach = self.make_user("coach", self.team)
        self.meet = self.make_meet(self.team)
        self.ada = self.make_athlete(self.team, "Ada", "Lovelace", grade=11)
        self.ben = self.make_athlete(self.team, "Ben", "Okafor", grade=10)
        self.hundred = self.event("100m")
        self.two_hundred = self.event("200m")
        self.four_hundred = self.event("400m")
        self.long_jump = self.event("LJ")
        self.high_jump = self.event("HJ")
        self.relay = self.event("4x100")
        self.relay_alt = self.event("4x100 Alt")
