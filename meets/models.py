"""Database models for the meet entry application."""
from __future__ import annotations

from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.db.models import Q
from django.utils import timezone


RELAY_LEG_MIN = 1
RELAY_LEG_MAX = 4


class Team(models.Model):
    """A coaching staff and its roster; the unit of multi-tenancy."""

    class SubscriptionStatus(models.TextChoices):
        TRIALING = "trialing", "Trialing"
        ACTIVE = "active", "Active"
        PAST_DUE = "past_due", "Past due"
        CANCELED = "canceled", "Canceled"

    name = models.CharField(max_length=120)
    slug = models.SlugField(unique=True)
    subscription_status = models.CharField(
        max_length=12,
        choices=SubscriptionStatus.choices,
        default=SubscriptionStatus.TRIALING,
    )
    trial_ends_at = models.DateTimeField(blank=True, null=True)

    class Meta:
        ordering = ("name",)

    def __str__(self) -> str:
        return self.name

    def can_edit(self, now=None) -> bool:
        """Return True while the team's billing status allows mutations."""

        if self.subscription_status == self.SubscriptionStatus.ACTIVE:
            return True
        if self.subscription_status == self.SubscriptionStatus.TRIALING:
            if self.trial_ends_at is None:
                return True
            return (now or timezone.now()) < self.trial_ends_at
        return False


class Profile(models.Model):
    """Role and approval status for a signed-in user."""

    class Role(models.TextChoices):
        ADMIN = "admin", "Admin"
        COACH = "coach", "Coach"
        PARENT = "parent", "Parent"
        ATHLETE = "athlete", "Athlete"

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="profile",
    )
    team = models.ForeignKey(
        Team,
        on_delete=models.SET_NULL,
        blank=True,
        null=True,
        related_name="profiles",
    )
    full_name = models.CharField(max_length=120, blank=True)
    role = models.CharField(max_length=8, choices=Role.choices, default=Role.PARENT)
    approved = models.BooleanField(default=False)

    def __str__(self) -> str:
        return self.full_name or str(self.user)

    @property
    def is_coach(self) -> bool:
        return self.role in (self.Role.COACH, self.Role.ADMIN)


class Season(models.Model):
    team = models.ForeignKey(Team, on_delete=models.CASCADE, related_name="seasons")
    name = models.CharField(max_length=80)
    start_date = models.DateField()
    end_date = models.DateField(blank=True, null=True)
    is_active = models.BooleanField(default=False)

    class Meta:
        ordering = ("-start_date",)

    def __str__(self) -> str:
        return self.name


class Athlete(models.Model):
    """A rostered athlete. Soft-deleted through ``active``."""

    class Level(models.TextChoices):
        JV = "JV", "JV"
        VARSITY = "Varsity", "Varsity"

    class Gender(models.TextChoices):
        BOYS = "Boys", "Boys"
        GIRLS = "Girls", "Girls"

    team = models.ForeignKey(Team, on_delete=models.CASCADE, related_name="athletes")
    first_name = models.CharField(max_length=80)
    last_name = models.CharField(max_length=80)
    grade = models.PositiveSmallIntegerField(blank=True, null=True)
    level = models.CharField(max_length=8, choices=Level.choices, default=Level.JV)
    gender = models.CharField(max_length=5, choices=Gender.choices, default=Gender.BOYS)
    active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ("last_name", "first_name")

    def __str__(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def display_name(self) -> str:
        return f"{self.last_name}, {self.first_name}"


class TrackEvent(models.Model):
    """An entry in the global event catalog."""

    class Category(models.TextChoices):
        FIELD = "Field", "Field"
        SPRINT = "Sprint", "Sprint"
        DISTANCE = "Distance", "Distance"
        HURDLES = "Hurdles", "Hurdles"
        RELAY = "Relay", "Relay"
        OTHER = "Other", "Other"

    name = models.CharField(max_length=120)
    short_name = models.CharField(max_length=40)
    category = models.CharField(max_length=10, choices=Category.choices)
    max_entries = models.PositiveIntegerField(default=4)
    is_relay = models.BooleanField(default=False)

    class Meta:
        ordering = ("name",)

    def __str__(self) -> str:
        return self.name


CATEGORY_ORDER = [choice for choice, _ in TrackEvent.Category.choices]


def catalog_sort_key(event: TrackEvent) -> tuple[int, str]:
    """Sort events by category order and then by name."""

    try:
        rank = CATEGORY_ORDER.index(event.category)
    except ValueError:
        rank = len(CATEGORY_ORDER)
    return (rank, event.name.lower())


class Meet(models.Model):
    class Level(models.TextChoices):
        JV = "JV", "JV"
        VARSITY = "Varsity", "Varsity"
        BOTH = "Both", "Both"

    team = models.ForeignKey(Team, on_delete=models.CASCADE, related_name="meets")
    season = models.ForeignKey(
        Season,
        on_delete=models.SET_NULL,
        blank=True,
        null=True,
        related_name="meets",
    )
    name = models.CharField(max_length=120)
    date = models.DateField()
    location = models.CharField(max_length=120, blank=True)
    level = models.CharField(max_length=8, choices=Level.choices, default=Level.BOTH)
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ("-date", "name")

    def __str__(self) -> str:
        return self.name


class MeetEntry(models.Model):
    """One athlete's placement into one event for one meet."""

    class RelayTeam(models.TextChoices):
        A = "A", "A"
        ALT = "Alt", "Alt"

    meet = models.ForeignKey(Meet, on_delete=models.CASCADE, related_name="entries")
    athlete = models.ForeignKey(Athlete, on_delete=models.CASCADE, related_name="entries")
    event = models.ForeignKey(TrackEvent, on_delete=models.CASCADE, related_name="entries")
    relay_leg = models.PositiveSmallIntegerField(
        blank=True,
        null=True,
        validators=[MinValueValidator(RELAY_LEG_MIN), MaxValueValidator(RELAY_LEG_MAX)],
    )
    relay_team = models.CharField(max_length=3, choices=RelayTeam.choices, blank=True, null=True)
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ("created_at", "pk")
        verbose_name_plural = "meet entries"
        constraints = [
            models.CheckConstraint(
                condition=Q(relay_leg__isnull=True)
                | Q(relay_leg__gte=RELAY_LEG_MIN, relay_leg__lte=RELAY_LEG_MAX),
                name="meet_entry_relay_leg_range",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.athlete} - {self.event} ({self.meet})"


class EventActivation(models.Model):
    """Marks an event inactive for one meet.

    Only the inactive state is stored; deleting the row re-activates the
    event for that meet.
    """

    meet = models.ForeignKey(Meet, on_delete=models.CASCADE, related_name="event_overrides")
    event = models.ForeignKey(TrackEvent, on_delete=models.CASCADE, related_name="meet_overrides")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["meet", "event"], name="unique_event_override_per_meet"),
        ]

    def __str__(self) -> str:
        return f"{self.event} inactive for {self.meet}"


class Favorite(models.Model):
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="favorites",
    )
    athlete = models.ForeignKey(Athlete, on_delete=models.CASCADE, related_name="favorited_by")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ("-created_at",)
        constraints = [
            models.UniqueConstraint(fields=["user", "athlete"], name="unique_favorite_per_user"),
        ]

    def __str__(self) -> str:
        return f"{self.user} ★ {self.athlete}"
