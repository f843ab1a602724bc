"""Serializers for the meet entry REST endpoints."""

from __future__ import annotations

from typing import Any, Dict

from rest_framework import serializers

from .models import (
    RELAY_LEG_MAX,
    RELAY_LEG_MIN,
    Athlete,
    Favorite,
    Meet,
    MeetEntry,
    TrackEvent,
)


class AthleteSerializer(serializers.ModelSerializer):
    class Meta:
        model = Athlete
        fields = ["id", "first_name", "last_name", "grade", "level", "gender", "active", "team"]
        read_only_fields = ["id", "team"]


class TrackEventSerializer(serializers.ModelSerializer):
    class Meta:
        model = TrackEvent
        fields = ["id", "name", "short_name", "category", "max_entries", "is_relay"]
        read_only_fields = fields


class MeetSerializer(serializers.ModelSerializer):
    class Meta:
        model = Meet
        fields = ["id", "name", "date", "location", "level", "notes", "season", "team", "created_at"]
        read_only_fields = ["id", "team", "created_at"]

    def validate_season(self, season):
        team = self.context.get("team")
        if season is not None and team is not None and season.team_id != team.pk:
            raise serializers.ValidationError("Season belongs to another team.")
        return season


class MeetEntrySerializer(serializers.ModelSerializer):
    athlete_name = serializers.CharField(source="athlete.display_name", read_only=True)
    event_name = serializers.CharField(source="event.name", read_only=True)
    is_relay = serializers.BooleanField(source="event.is_relay", read_only=True)

    class Meta:
        model = MeetEntry
        fields = [
            "id",
            "meet",
            "athlete",
            "athlete_name",
            "event",
            "event_name",
            "is_relay",
            "relay_leg",
            "relay_team",
            "created_at",
        ]
        read_only_fields = fields


class EntryPatchSerializer(serializers.Serializer):
    relay_leg = serializers.IntegerField(
        min_value=RELAY_LEG_MIN, max_value=RELAY_LEG_MAX, required=False, allow_null=True
    )
    relay_team = serializers.ChoiceField(
        choices=MeetEntry.RelayTeam.choices, required=False, allow_null=True
    )

    def validate(self, attrs: Dict[str, Any]) -> Dict[str, Any]:
        if not attrs:
            raise serializers.ValidationError("Nothing to update.")
        return attrs


class _MeetScopedSerializer(serializers.Serializer):
    relays_count_toward_limit = serializers.BooleanField(required=False, allow_null=True, default=None)

    def _meet(self) -> Meet:
        return self.context["meet"]

    def _event(self, event_id) -> TrackEvent:
        try:
            return TrackEvent.objects.get(pk=event_id)
        except TrackEvent.DoesNotExist as exc:
            raise serializers.ValidationError({"event_id": "Event not found."}) from exc

    def _athlete(self, athlete_id) -> Athlete:
        athlete = Athlete.objects.filter(pk=athlete_id, team_id=self._meet().team_id).first()
        if athlete is None:
            raise serializers.ValidationError({"athlete_id": "Athlete not found on this team."})
        return athlete


class AssignSerializer(_MeetScopedSerializer):
    athlete_id = serializers.IntegerField()
    event_id = serializers.IntegerField()
    relay_leg = serializers.IntegerField(
        min_value=RELAY_LEG_MIN, max_value=RELAY_LEG_MAX, required=False, allow_null=True
    )
    relay_team = serializers.ChoiceField(
        choices=MeetEntry.RelayTeam.choices, required=False, allow_null=True
    )

    def validate(self, attrs: Dict[str, Any]) -> Dict[str, Any]:
        attrs["athlete"] = self._athlete(attrs["athlete_id"])
        attrs["event"] = self._event(attrs["event_id"])
        return attrs


class BatchAssignSerializer(_MeetScopedSerializer):
    athlete_ids = serializers.ListField(child=serializers.IntegerField(), allow_empty=False)
    event_id = serializers.IntegerField()

    def validate(self, attrs: Dict[str, Any]) -> Dict[str, Any]:
        ids = list(dict.fromkeys(attrs["athlete_ids"]))
        athletes = {
            athlete.pk: athlete
            for athlete in Athlete.objects.filter(pk__in=ids, team_id=self._meet().team_id)
        }
        if len(athletes) != len(ids):
            raise serializers.ValidationError({"athlete_ids": "One or more athletes not found."})
        attrs["athletes"] = [athletes[pk] for pk in ids]
        attrs["event"] = self._event(attrs["event_id"])
        return attrs


class MoveSerializer(_MeetScopedSerializer):
    entry_id = serializers.IntegerField()
    source_event_id = serializers.IntegerField()
    target_event_id = serializers.IntegerField()


class CopySerializer(serializers.Serializer):
    source_meet_id = serializers.IntegerField()

    def validate_source_meet_id(self, value):
        meet = self.context["meet"]
        if value == meet.pk:
            raise serializers.ValidationError("Pick a different meet to copy from.")
        if not Meet.objects.filter(pk=value, team_id=meet.team_id).exists():
            raise serializers.ValidationError("Meet not found.")
        return value


class ImportSerializer(serializers.Serializer):
    raw_text = serializers.CharField(trim_whitespace=False, allow_blank=True)
    default_level = serializers.ChoiceField(choices=Athlete.Level.choices, default=Athlete.Level.JV)
    default_gender = serializers.ChoiceField(choices=Athlete.Gender.choices, default=Athlete.Gender.BOYS)

    def defaults(self) -> Dict[str, str]:
        return {
            "level": self.validated_data["default_level"],
            "gender": self.validated_data["default_gender"],
        }


class FavoriteSerializer(serializers.ModelSerializer):
    athlete = AthleteSerializer(read_only=True)

    class Meta:
        model = Favorite
        fields = ["id", "athlete", "created_at"]
