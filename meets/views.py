"""REST API views for rosters, meets and meet entries."""

from __future__ import annotations

from typing import Any, Dict

from django.db.models import Q
from django.utils import timezone
from rest_framework import mixins, permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import PermissionDenied
from rest_framework.response import Response

from . import importing, models, rules, services
from .access import (
    IsApprovedMember,
    IsCoachOrReadOnly,
    activation_repository_for,
    athlete_repository_for,
    editable_teams,
    entry_repository_for,
    is_coach,
    team_for,
)
from .activation import EventActivationOverlay, visible_events
from .copying import copy_all_from
from .drag import MoveIntent
from .errors import AssignmentRejected, ErrorKind, MeetEntryError, PersistenceError
from .rules import RelayLegCounter
from .serializers import (
    AssignSerializer,
    AthleteSerializer,
    BatchAssignSerializer,
    CopySerializer,
    EntryPatchSerializer,
    FavoriteSerializer,
    ImportSerializer,
    MeetEntrySerializer,
    MeetSerializer,
    MoveSerializer,
    TrackEventSerializer,
)
from .store import EntryStore

RELAY_LEG_SESSION_PREFIX = "meets.relay-leg"


def _error_response(exc: MeetEntryError) -> Response:
    if isinstance(exc, AssignmentRejected):
        code = status.HTTP_400_BAD_REQUEST
    else:
        code = status.HTTP_409_CONFLICT
    return Response({"kind": exc.kind, "detail": exc.message}, status=code)


def _require_edit(request, team: models.Team | None) -> None:
    if team is None or not editable_teams(request.user).filter(pk=team.pk).exists():
        raise PermissionDenied("Editing is unavailable for this team.")


def _leg_counter(request, meet: models.Meet, event: models.TrackEvent) -> RelayLegCounter:
    key = f"{RELAY_LEG_SESSION_PREFIX}.{meet.pk}.{event.pk}"
    return RelayLegCounter(request.session.get(key, 1))


def _save_leg_counter(request, meet, event, counter: RelayLegCounter) -> None:
    request.session[f"{RELAY_LEG_SESSION_PREFIX}.{meet.pk}.{event.pk}"] = counter.current
    request.session.modified = True


def _reset_leg_counter(request, meet, event) -> None:
    request.session.pop(f"{RELAY_LEG_SESSION_PREFIX}.{meet.pk}.{event.pk}", None)
    request.session.modified = True


class MeetViewSet(viewsets.ModelViewSet):
    serializer_class = MeetSerializer
    permission_classes = [IsApprovedMember, IsCoachOrReadOnly]

    def get_queryset(self):  # type: ignore[override]
        return models.Meet.objects.filter(team=team_for(self.request.user)).select_related("season")

    def get_serializer_context(self) -> Dict[str, Any]:
        context = super().get_serializer_context()
        context["team"] = team_for(self.request.user)
        return context

    def perform_create(self, serializer):
        team = team_for(self.request.user)
        _require_edit(self.request, team)
        serializer.save(team=team)

    def perform_update(self, serializer):
        _require_edit(self.request, serializer.instance.team)
        serializer.save()

    def perform_destroy(self, instance):
        _require_edit(self.request, instance.team)
        instance.delete()

    def _store(self, meet: models.Meet) -> EntryStore:
        return EntryStore(meet.pk, entry_repository_for(self.request.user))

    def _overlay(self, meet: models.Meet) -> EventActivationOverlay:
        return EventActivationOverlay(meet.pk, activation_repository_for(self.request.user))

    def _entries_payload(self, store: EntryStore) -> Dict[str, Any]:
        return {
            "entries": MeetEntrySerializer(store.entries, many=True).data,
            "entry_count": len(store.entries),
            "athlete_count": store.unique_athlete_count(),
        }

    @action(detail=True, methods=["get"])
    def entries(self, request, pk=None):
        meet = self.get_object()
        return Response(self._entries_payload(self._store(meet)))

    @action(detail=True, methods=["post"], url_path="can-assign")
    def can_assign(self, request, pk=None):
        meet = self.get_object()
        serializer = AssignSerializer(data=request.data, context={"meet": meet})
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        options = services.build_options(
            self._overlay(meet),
            relays_count_toward_limit=data.get("relays_count_toward_limit"),
            relay_leg=data.get("relay_leg"),
            relay_team=data.get("relay_team"),
        )
        decision = rules.can_assign(data["athlete"], data["event"], meet, self._store(meet).entries, options)
        return Response(
            {
                "allowed": decision.allowed,
                "kind": decision.reason,
                "detail": decision.reason.label if decision.reason else None,
                "payload": decision.payload.as_fields() if decision.payload else None,
            }
        )

    @action(detail=True, methods=["post"])
    def assign(self, request, pk=None):
        meet = self.get_object()
        serializer = AssignSerializer(data=request.data, context={"meet": meet})
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        athlete, event = data["athlete"], data["event"]

        counter = _leg_counter(request, meet, event)
        if data.get("relay_leg"):
            counter.set(data["relay_leg"])
        options = services.build_options(
            self._overlay(meet),
            relays_count_toward_limit=data.get("relays_count_toward_limit"),
            relay_team=data.get("relay_team"),
        )
        store = self._store(meet)
        try:
            entry = services.assign_single(store, athlete, event, meet, options, leg_counter=counter)
        except MeetEntryError as exc:
            return _error_response(exc)
        if event.is_relay:
            _save_leg_counter(request, meet, event, counter)
        payload = MeetEntrySerializer(entry).data
        payload["next_relay_leg"] = counter.current if event.is_relay else None
        return Response(payload, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["get", "delete"], url_path=r"relay-leg/(?P<event_id>\d+)")
    def relay_leg(self, request, pk=None, event_id=None):
        """Next relay leg for the single-assign flow; DELETE starts again from leg 1."""

        meet = self.get_object()
        event = models.TrackEvent.objects.filter(pk=event_id, is_relay=True).first()
        if event is None:
            return Response({"detail": "Relay event not found."}, status=status.HTTP_404_NOT_FOUND)
        if request.method == "DELETE":
            _reset_leg_counter(request, meet, event)
        counter = _leg_counter(request, meet, event)
        return Response({"event": event.pk, "next_relay_leg": counter.current})

    @action(detail=True, methods=["post"], url_path="assign-batch")
    def assign_batch(self, request, pk=None):
        meet = self.get_object()
        serializer = BatchAssignSerializer(data=request.data, context={"meet": meet})
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        options = services.build_options(
            self._overlay(meet),
            relays_count_toward_limit=data.get("relays_count_toward_limit"),
        )
        result = services.assign_batch(self._store(meet), data["athletes"], data["event"], meet, options)
        return Response(
            {
                "created": MeetEntrySerializer(result.created, many=True).data,
                "rejected": [
                    {"athlete": athlete.pk, "kind": kind, "detail": kind.label}
                    for athlete, kind in result.rejected
                ],
                "errors": result.errors,
            },
            status=status.HTTP_201_CREATED if result.created else status.HTTP_200_OK,
        )

    @action(detail=True, methods=["patch", "delete"], url_path=r"entries/(?P<entry_id>\d+)")
    def entry_detail(self, request, pk=None, entry_id=None):
        meet = self.get_object()
        store = self._store(meet)
        entry_id = int(entry_id)
        if store.get(entry_id) is None:
            return Response({"detail": "Entry not found."}, status=status.HTTP_404_NOT_FOUND)

        try:
            if request.method == "DELETE":
                outcome = store.remove(entry_id)
            else:
                serializer = EntryPatchSerializer(data=request.data)
                serializer.is_valid(raise_exception=True)
                outcome = store.update(entry_id, **serializer.validated_data)
        except PersistenceError as exc:
            return _error_response(exc)

        if outcome is ErrorKind.AMBIGUOUS_DENIAL:
            store.reconcile()
            payload = self._entries_payload(store)
            payload.update({"kind": outcome, "detail": outcome.label})
            return Response(payload, status=status.HTTP_202_ACCEPTED)
        if request.method == "DELETE":
            return Response(status=status.HTTP_204_NO_CONTENT)
        return Response(MeetEntrySerializer(store.get(entry_id)).data)

    @action(detail=True, methods=["post"])
    def move(self, request, pk=None):
        meet = self.get_object()
        serializer = MoveSerializer(data=request.data, context={"meet": meet})
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        store = self._store(meet)
        entry = store.get(data["entry_id"])
        if entry is None or entry.event_id != data["source_event_id"]:
            return Response({"detail": "Entry not found."}, status=status.HTTP_404_NOT_FOUND)
        options = services.build_options(
            self._overlay(meet),
            relays_count_toward_limit=data.get("relays_count_toward_limit"),
        )
        intent = MoveIntent(entry, data["source_event_id"], data["target_event_id"])
        try:
            result = services.execute_move(store, intent, meet, options)
        except PersistenceError as exc:
            return _error_response(exc)
        if result.reason is not None:
            code = (
                status.HTTP_409_CONFLICT
                if result.reason in (ErrorKind.PERSISTENCE_ERROR, ErrorKind.AMBIGUOUS_DENIAL)
                else status.HTTP_400_BAD_REQUEST
            )
            return Response({"kind": result.reason, "detail": result.reason.label}, status=code)
        payload = self._entries_payload(store)
        payload["moved"] = result.moved
        payload["added"] = MeetEntrySerializer(result.added).data if result.added else None
        return Response(payload)

    @action(detail=True, methods=["post"], url_path="copy-from")
    def copy_from(self, request, pk=None):
        meet = self.get_object()
        serializer = CopySerializer(data=request.data, context={"meet": meet})
        serializer.is_valid(raise_exception=True)

        result = copy_all_from(serializer.validated_data["source_meet_id"], self._store(meet))
        if result.is_noop:
            detail = "All entries already exist in this meet."
        else:
            detail = f"Copied {result.added} entr{'y' if result.added == 1 else 'ies'}."
        return Response(
            {
                "added": result.added,
                "skipped": result.skipped,
                "errors": result.errors,
                "noop": result.is_noop,
                "detail": detail,
            }
        )

    @action(detail=True, methods=["get"])
    def events(self, request, pk=None):
        meet = self.get_object()
        overlay = self._overlay(meet)
        store = self._store(meet)
        catalog = sorted(models.TrackEvent.objects.all(), key=models.catalog_sort_key)
        rows = []
        for event in visible_events(catalog, overlay, is_coach=is_coach(request.user)):
            row = TrackEventSerializer(event).data
            row["is_active"] = overlay.is_active(event.pk)
            row["entry_count"] = len(store.by_event(event.pk))
            rows.append(row)
        return Response(rows)

    @action(detail=True, methods=["post"], url_path=r"events/(?P<event_id>\d+)/toggle")
    def toggle_event(self, request, pk=None, event_id=None):
        meet = self.get_object()
        event = models.TrackEvent.objects.filter(pk=event_id).first()
        if event is None:
            return Response({"detail": "Event not found."}, status=status.HTTP_404_NOT_FOUND)
        try:
            is_active = self._overlay(meet).toggle(event.pk)
        except PersistenceError as exc:
            return _error_response(exc)
        return Response({"event": event.pk, "is_active": is_active})


class AthleteViewSet(viewsets.ModelViewSet):
    serializer_class = AthleteSerializer
    permission_classes = [IsApprovedMember, IsCoachOrReadOnly]

    def get_queryset(self):  # type: ignore[override]
        queryset = models.Athlete.objects.filter(team=team_for(self.request.user))
        if self.request.query_params.get("active") == "1":
            queryset = queryset.filter(active=True)
        search = (self.request.query_params.get("q") or "").strip()
        for term in search.split():
            queryset = queryset.filter(Q(first_name__icontains=term) | Q(last_name__icontains=term))
        return queryset.order_by("last_name", "first_name")

    def perform_create(self, serializer):
        team = team_for(self.request.user)
        _require_edit(self.request, team)
        serializer.save(team=team)

    def perform_update(self, serializer):
        _require_edit(self.request, serializer.instance.team)
        serializer.save()

    def perform_destroy(self, instance):
        _require_edit(self.request, instance.team)
        if self.request.query_params.get("hard") == "1":
            instance.delete()
            return
        instance.active = False
        instance.save(update_fields=["active"])

    @action(detail=False, methods=["post"], url_path="import-preview")
    def import_preview(self, request):
        serializer = ImportSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        rows = importing.parse(serializer.validated_data["raw_text"])
        return Response(
            {
                "rows": [row.as_dict() for row in rows],
                "valid": len(importing.valid_rows(rows)),
                "invalid": len(rows) - len(importing.valid_rows(rows)),
            }
        )

    @action(detail=False, methods=["post"], url_path="import")
    def import_rows(self, request):
        team = team_for(request.user)
        _require_edit(request, team)
        serializer = ImportSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        rows = importing.parse(serializer.validated_data["raw_text"])
        result = importing.submit(
            rows, team, athlete_repository_for(request.user), defaults=serializer.defaults()
        )
        return Response(
            {
                "added": AthleteSerializer(result.added, many=True).data,
                "skipped": [row.as_dict() for row in rows if not row.is_valid],
                "errors": result.errors,
            },
            status=status.HTTP_201_CREATED if result.added else status.HTTP_200_OK,
        )


class TrackEventViewSet(viewsets.ReadOnlyModelViewSet):
    serializer_class = TrackEventSerializer
    permission_classes = [permissions.IsAuthenticated]

    def get_queryset(self):  # type: ignore[override]
        return models.TrackEvent.objects.all()

    def list(self, request, *args, **kwargs):
        events = sorted(self.get_queryset(), key=models.catalog_sort_key)
        return Response(self.get_serializer(events, many=True).data)


class FavoriteViewSet(mixins.ListModelMixin, viewsets.GenericViewSet):
    serializer_class = FavoriteSerializer
    permission_classes = [IsApprovedMember]

    def get_queryset(self):  # type: ignore[override]
        return models.Favorite.objects.filter(user=self.request.user).select_related("athlete")

    @action(detail=False, methods=["post"])
    def toggle(self, request):
        athlete = models.Athlete.objects.filter(
            pk=request.data.get("athlete_id"), team=team_for(request.user)
        ).first()
        if athlete is None:
            return Response({"detail": "Athlete not found."}, status=status.HTTP_404_NOT_FOUND)
        deleted, _ = models.Favorite.objects.filter(user=request.user, athlete=athlete).delete()
        if deleted:
            return Response({"athlete": athlete.pk, "favorite": False})
        models.Favorite.objects.create(user=request.user, athlete=athlete)
        return Response({"athlete": athlete.pk, "favorite": True}, status=status.HTTP_201_CREATED)

    @action(detail=False, methods=["get"])
    def upcoming(self, request):
        """Upcoming meets where a favorited athlete is entered."""

        athlete_ids = list(self.get_queryset().values_list("athlete_id", flat=True))
        entries = (
            models.MeetEntry.objects.filter(
                athlete_id__in=athlete_ids,
                meet__date__gte=timezone.localdate(),
            )
            .select_related("meet", "athlete", "event")
            .order_by("meet__date", "meet__name", "athlete__last_name", "event__name")
        )
        overrides = set(
            models.EventActivation.objects.filter(
                meet_id__in={entry.meet_id for entry in entries}
            ).values_list("meet_id", "event_id")
        )
        schedule: Dict[int, Dict[str, Any]] = {}
        for entry in entries:
            if (entry.meet_id, entry.event_id) in overrides:
                continue
            meet_row = schedule.setdefault(
                entry.meet_id,
                {
                    "meet": MeetSerializer(entry.meet).data,
                    "athletes": {},
                },
            )
            athlete_row = meet_row["athletes"].setdefault(
                entry.athlete_id,
                {"athlete": entry.athlete_id, "name": str(entry.athlete), "events": []},
            )
            athlete_row["events"].append(entry.event.name)
        return Response(
            [
                {"meet": row["meet"], "athletes": list(row["athletes"].values())}
                for row in schedule.values()
            ]
        )
