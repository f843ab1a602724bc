"""Admin registrations for the meets application."""
from django.contrib import admin

from . import models


@admin.register(models.Team)
class TeamAdmin(admin.ModelAdmin):
    list_display = ("name", "slug", "subscription_status", "trial_ends_at")
    list_filter = ("subscription_status",)
    search_fields = ("name", "slug")
    prepopulated_fields = {"slug": ("name",)}


@admin.register(models.Profile)
class ProfileAdmin(admin.ModelAdmin):
    list_display = ("user", "full_name", "team", "role", "approved")
    list_filter = ("role", "approved", "team")
    search_fields = ("full_name", "user__username", "user__email")


@admin.register(models.Season)
class SeasonAdmin(admin.ModelAdmin):
    list_display = ("name", "team", "start_date", "end_date", "is_active")
    list_filter = ("team", "is_active")


@admin.register(models.Athlete)
class AthleteAdmin(admin.ModelAdmin):
    list_display = ("last_name", "first_name", "team", "grade", "level", "gender", "active")
    list_filter = ("team", "level", "gender", "active")
    search_fields = ("first_name", "last_name")


@admin.register(models.TrackEvent)
class TrackEventAdmin(admin.ModelAdmin):
    list_display = ("name", "short_name", "category", "max_entries", "is_relay")
    list_filter = ("category", "is_relay")
    search_fields = ("name", "short_name")


@admin.register(models.Meet)
class MeetAdmin(admin.ModelAdmin):
    list_display = ("name", "team", "date", "location", "level")
    list_filter = ("team", "level", "date")
    search_fields = ("name", "location")


@admin.register(models.MeetEntry)
class MeetEntryAdmin(admin.ModelAdmin):
    list_display = ("meet", "event", "athlete", "relay_leg", "relay_team", "created_at")
    list_filter = ("meet", "event__category", "relay_team")
    search_fields = ("athlete__first_name", "athlete__last_name", "event__name")


@admin.register(models.EventActivation)
class EventActivationAdmin(admin.ModelAdmin):
    list_display = ("meet", "event", "created_at")
    list_filter = ("meet",)


admin.site.register(models.Favorite)
