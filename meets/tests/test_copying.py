import os

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "team_platform.settings")

import django

django.setup()

from django.test import TestCase

from meets import models, services
from meets.copying import copy_all_from
from meets.repository import EntryRepository
from meets.rules import RelayLegCounter
from meets.store import EntryStore

from .helpers import MeetFixtureMixin


class CopyAllFromTests(MeetFixtureMixin, TestCase):
    def setUp(self):
        self.build_fixtures()
        self.source = self.make_meet(self.team, name="League Opener")
        source_store = EntryStore(self.source.pk)
        services.assign_athlete(source_store, self.ada, self.hundred, self.source)
        services.assign_athlete(source_store, self.ben, self.hundred, self.source)
        services.assign_single(
            source_store, self.ada, self.relay, self.source, leg_counter=RelayLegCounter(2)
        )

    def test_copies_every_entry_with_relay_fields(self):
        store = EntryStore(self.meet.pk)
        result = copy_all_from(self.source.pk, store)

        self.assertEqual((result.added, result.skipped, result.errors), (3, 0, []))
        relay = models.MeetEntry.objects.get(meet=self.meet, event=self.relay)
        self.assertEqual((relay.relay_leg, relay.relay_team), (2, "A"))
        self.assertEqual(len(store.entries), 3)

    def test_second_copy_is_noop(self):
        copy_all_from(self.source.pk, EntryStore(self.meet.pk))
        result = copy_all_from(self.source.pk, EntryStore(self.meet.pk))
        self.assertTrue(result.is_noop)
        self.assertEqual(result.skipped, 3)
        self.assertEqual(models.MeetEntry.objects.filter(meet=self.meet).count(), 3)

    def test_existing_pairs_are_skipped(self):
        store = EntryStore(self.meet.pk)
        services.assign_athlete(store, self.ada, self.hundred, self.meet)
        result = copy_all_from(self.source.pk, store)
        self.assertEqual((result.added, result.skipped), (2, 1))

    def test_same_meet_copies_nothing(self):
        result = copy_all_from(self.source.pk, EntryStore(self.source.pk))
        self.assertTrue(result.is_noop)
        self.assertEqual(models.MeetEntry.objects.filter(meet=self.source).count(), 3)

    def test_failures_are_reported_and_earlier_adds_kept(self):
        repository = EntryRepository(writable_parents=models.Meet.objects.none())
        result = copy_all_from(self.source.pk, EntryStore(self.meet.pk, repository))
        self.assertEqual(result.added, 0)
        self.assertEqual(len(result.errors), 3)
        self.assertFalse(result.is_noop)
