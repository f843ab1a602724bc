import os

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "team_platform.settings")

import django

django.setup()

from django.test import TestCase

from meets import models, services
from meets.activation import EventActivationOverlay
from meets.drag import MoveIntent
from meets.errors import AssignmentRejected, ErrorKind, PersistenceError
from meets.repository import EntryRepository
from meets.rules import AssignmentOptions, RelayLegCounter
from meets.store import EntryStore

from .helpers import MeetFixtureMixin


class AssignServiceTests(MeetFixtureMixin, TestCase):
    def setUp(self):
        self.build_fixtures()
        self.store = EntryStore(self.meet.pk)

    def test_assign_athlete_persists(self):
        entry = services.assign_athlete(self.store, self.ada, self.hundred, self.meet)
        self.assertEqual(entry.event_id, self.hundred.pk)
        self.assertIsNone(entry.relay_leg)

    def test_assign_athlete_raises_with_kind(self):
        services.assign_athlete(self.store, self.ada, self.hundred, self.meet)
        with self.assertRaises(AssignmentRejected) as ctx:
            services.assign_athlete(self.store, self.ada, self.hundred, self.meet)
        self.assertEqual(ctx.exception.kind, ErrorKind.DUPLICATE_ENTRY)

    def test_inactive_event_from_overlay(self):
        overlay = EventActivationOverlay(self.meet.pk)
        overlay.toggle(self.long_jump.pk)
        options = services.build_options(overlay)
        with self.assertRaises(AssignmentRejected) as ctx:
            services.assign_athlete(self.store, self.ada, self.long_jump, self.meet, options)
        self.assertEqual(ctx.exception.kind, ErrorKind.EVENT_INACTIVE)

    def test_single_relay_assignments_advance_leg(self):
        counter = RelayLegCounter()
        first = services.assign_single(self.store, self.ada, self.relay, self.meet, leg_counter=counter)
        second = services.assign_single(self.store, self.ben, self.relay, self.meet, leg_counter=counter)
        self.assertEqual((first.relay_leg, second.relay_leg), (1, 2))
        self.assertEqual(first.relay_team, "A")
        self.assertEqual(counter.current, 3)

    def test_single_relay_legs_cap_at_four(self):
        counter = RelayLegCounter()
        athletes = [self.ada, self.ben] + [
            self.make_athlete(self.team, "Runner", str(number)) for number in range(3)
        ]
        legs = [
            services.assign_single(self.store, athlete, self.relay, self.meet, leg_counter=counter).relay_leg
            for athlete in athletes
        ]
        self.assertEqual(legs, [1, 2, 3, 4, 4])

    def test_alt_relay_gets_alt_team(self):
        entry = services.assign_single(
            self.store, self.ada, self.relay_alt, self.meet, leg_counter=RelayLegCounter()
        )
        self.assertEqual(entry.relay_team, "Alt")

    def test_batch_leaves_legs_unset_and_reports_rejections(self):
        for event in (self.two_hundred, self.four_hundred, self.long_jump, self.high_jump):
            services.assign_athlete(self.store, self.ada, event, self.meet)

        result = services.assign_batch(self.store, [self.ada, self.ben], self.hundred, self.meet)
        self.assertEqual([entry.athlete_id for entry in result.created], [self.ben.pk])
        self.assertEqual(result.rejected, [(self.ada, ErrorKind.ATHLETE_OVER_LIMIT)])

        relay_result = services.assign_batch(self.store, [self.ada, self.ben], self.relay, self.meet)
        self.assertEqual(len(relay_result.created), 2)
        self.assertTrue(all(entry.relay_leg is None for entry in relay_result.created))


class ExecuteMoveTests(MeetFixtureMixin, TestCase):
    def setUp(self):
        self.build_fixtures()
        self.store = EntryStore(self.meet.pk)
        self.entry = services.assign_athlete(self.store, self.ada, self.hundred, self.meet)

    def test_move_replaces_entry(self):
        intent = MoveIntent(self.entry, self.hundred.pk, self.two_hundred.pk)
        result = services.execute_move(self.store, intent, self.meet)
        self.assertTrue(result.moved)
        self.assertEqual(result.added.event_id, self.two_hundred.pk)
        self.assertEqual(
            list(models.MeetEntry.objects.values_list("event_id", flat=True)), [self.two_hundred.pk]
        )
        self.assertEqual([e.event_id for e in self.store.entries], [self.two_hundred.pk])

    def test_same_event_is_noop(self):
        intent = MoveIntent(self.entry, self.hundred.pk, self.hundred.pk)
        result = services.execute_move(self.store, intent, self.meet)
        self.assertFalse(result.moved)
        self.assertIsNone(result.reason)
        self.assertEqual(models.MeetEntry.objects.count(), 1)

    def test_drop_back_on_own_event_with_stale_source_is_noop(self):
        intent = MoveIntent(self.entry.pk, self.two_hundred.pk, self.hundred.pk)
        result = services.execute_move(self.store, intent, self.meet)
        self.assertFalse(result.moved)
        self.assertIsNone(result.reason)
        self.assertEqual(
            list(models.MeetEntry.objects.values_list("pk", flat=True)), [self.entry.pk]
        )
        self.assertEqual([e.pk for e in self.store.entries], [self.entry.pk])

    def test_rejected_move_leaves_entry(self):
        services.assign_athlete(self.store, self.ada, self.two_hundred, self.meet)
        intent = MoveIntent(self.entry, self.hundred.pk, self.two_hundred.pk)
        result = services.execute_move(self.store, intent, self.meet)
        self.assertEqual(result.reason, ErrorKind.DUPLICATE_ENTRY)
        self.assertTrue(models.MeetEntry.objects.filter(pk=self.entry.pk).exists())

    def test_move_into_inactive_event_is_rejected(self):
        options = AssignmentOptions(inactive_event_ids=frozenset({self.two_hundred.pk}))
        intent = MoveIntent(self.entry, self.hundred.pk, self.two_hundred.pk)
        result = services.execute_move(self.store, intent, self.meet, options)
        self.assertEqual(result.reason, ErrorKind.EVENT_INACTIVE)

    def test_capped_athlete_can_move_between_individual_events(self):
        for event in (self.four_hundred, self.long_jump, self.high_jump):
            services.assign_athlete(self.store, self.ada, event, self.meet)
        intent = MoveIntent(self.entry, self.hundred.pk, self.two_hundred.pk)
        self.assertTrue(services.execute_move(self.store, intent, self.meet).moved)

    def test_failed_add_restores_entry(self):
        repository = EntryRepository(
            models.MeetEntry.objects.all(),
            writable_parents=models.Meet.objects.none(),
        )
        store = EntryStore(self.meet.pk, repository)
        intent = MoveIntent(self.entry, self.hundred.pk, self.two_hundred.pk)

        result = services.execute_move(store, intent, self.meet)

        self.assertFalse(result.moved)
        self.assertEqual(result.reason, ErrorKind.PERSISTENCE_ERROR)
        self.assertTrue(models.MeetEntry.objects.filter(pk=self.entry.pk).exists())
        self.assertEqual([e.pk for e in store.entries], [self.entry.pk])

    def test_ambiguous_remove_aborts_move(self):
        store = EntryStore(self.meet.pk, EntryRepository(models.MeetEntry.objects.none()))
        intent = MoveIntent(self.entry, self.hundred.pk, self.two_hundred.pk)

        result = services.execute_move(store, intent, self.meet)

        self.assertEqual(result.reason, ErrorKind.AMBIGUOUS_DENIAL)
        self.assertEqual(models.MeetEntry.objects.count(), 1)
        self.assertFalse(store.pending_reconcile)

    def test_relay_to_relay_keeps_leg(self):
        relay_entry = services.assign_single(
            self.store, self.ben, self.relay, self.meet, leg_counter=RelayLegCounter(3)
        )
        intent = MoveIntent(relay_entry, self.relay.pk, self.relay_alt.pk)
        result = services.execute_move(self.store, intent, self.meet)
        self.assertEqual((result.added.relay_leg, result.added.relay_team), (3, "Alt"))

    def test_missing_entry_raises(self):
        intent = MoveIntent(999999, self.hundred.pk, self.two_hundred.pk)
        with self.assertRaises(PersistenceError):
            services.execute_move(self.store, intent, self.meet)
