import os
from types import SimpleNamespace

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "team_platform.settings")

import django

django.setup()

from django.test import SimpleTestCase, override_settings

from meets.errors import ErrorKind
from meets.rules import (
    AssignmentOptions,
    RelayLegCounter,
    can_assign,
    count_counted_entries,
    relay_team_for,
)


def make_event(pk, short_name, is_relay=False):
    return SimpleNamespace(pk=pk, short_name=short_name, is_relay=is_relay)


def make_entry(athlete, event, relay_team=None):
    return SimpleNamespace(athlete_id=athlete.pk, event_id=event.pk, event=event, relay_team=relay_team)


class CanAssignTests(SimpleTestCase):
    def setUp(self):
        self.meet = SimpleNamespace(pk=1)
        self.athlete = SimpleNamespace(pk=10)
        self.other = SimpleNamespace(pk=11)
        self.individual = [make_event(pk, f"E{pk}") for pk in range(1, 7)]
        self.relay = make_event(50, "4x100", is_relay=True)
        self.relay_alt = make_event(51, "4x100 Alt", is_relay=True)

    def test_allows_first_entry_with_payload(self):
        decision = can_assign(self.athlete, self.individual[0], self.meet, [])
        self.assertTrue(decision)
        self.assertEqual(
            decision.payload.as_fields(),
            {"meet_id": 1, "athlete_id": 10, "event_id": 1, "relay_leg": None, "relay_team": None},
        )

    def test_inactive_event_is_rejected_for_everyone(self):
        options = AssignmentOptions(inactive_event_ids=frozenset({1, 50}))
        for event in (self.individual[0], self.relay):
            decision = can_assign(self.athlete, event, self.meet, [], options)
            self.assertFalse(decision.allowed)
            self.assertEqual(decision.reason, ErrorKind.EVENT_INACTIVE)
            self.assertIsNone(decision.payload)

    def test_individual_cap_rejects_fifth_event(self):
        entries = [make_entry(self.athlete, event) for event in self.individual[:4]]
        decision = can_assign(self.athlete, self.individual[4], self.meet, entries)
        self.assertEqual(decision.reason, ErrorKind.ATHLETE_OVER_LIMIT)

    def test_cap_is_per_athlete(self):
        entries = [make_entry(self.other, event) for event in self.individual[:4]]
        self.assertTrue(can_assign(self.athlete, self.individual[4], self.meet, entries))

    def test_relays_do_not_count_by_default(self):
        entries = [make_entry(self.athlete, event) for event in self.individual[:3]]
        entries.append(make_entry(self.athlete, self.relay, "A"))
        self.assertTrue(can_assign(self.athlete, self.individual[3], self.meet, entries))

    def test_relays_count_when_enabled(self):
        entries = [make_entry(self.athlete, event) for event in self.individual[:3]]
        entries.append(make_entry(self.athlete, self.relay, "A"))
        options = AssignmentOptions(relays_count_toward_limit=True)
        decision = can_assign(self.athlete, self.individual[3], self.meet, entries, options)
        self.assertEqual(decision.reason, ErrorKind.ATHLETE_OVER_LIMIT)

    def test_relay_bypasses_cap(self):
        entries = [make_entry(self.athlete, event) for event in self.individual[:4]]
        options = AssignmentOptions(relays_count_toward_limit=True)
        decision = can_assign(self.athlete, self.relay, self.meet, entries, options)
        self.assertTrue(decision.allowed)
        self.assertEqual(decision.payload.relay_team, "A")

    def test_duplicate_individual_entry_is_rejected(self):
        entries = [make_entry(self.athlete, self.individual[0])]
        decision = can_assign(self.athlete, self.individual[0], self.meet, entries)
        self.assertEqual(decision.reason, ErrorKind.DUPLICATE_ENTRY)

    def test_relay_payload_carries_leg_and_alt_team(self):
        options = AssignmentOptions(relay_leg=3)
        decision = can_assign(self.athlete, self.relay_alt, self.meet, [], options)
        self.assertEqual(decision.payload.relay_leg, 3)
        self.assertEqual(decision.payload.relay_team, "Alt")

    def test_relay_leg_out_of_range_raises(self):
        with self.assertRaises(ValueError):
            can_assign(self.athlete, self.relay, self.meet, [], AssignmentOptions(relay_leg=5))

    def test_missing_meet_or_event_raises(self):
        with self.assertRaises(ValueError):
            can_assign(self.athlete, self.individual[0], None, [])
        with self.assertRaises(ValueError):
            can_assign(self.athlete, None, self.meet, [])

    @override_settings(MEETS_INDIVIDUAL_EVENT_LIMIT=2)
    def test_limit_comes_from_settings(self):
        entries = [make_entry(self.athlete, event) for event in self.individual[:2]]
        decision = can_assign(self.athlete, self.individual[2], self.meet, entries)
        self.assertEqual(decision.reason, ErrorKind.ATHLETE_OVER_LIMIT)


class CountingTests(SimpleTestCase):
    def test_duplicate_pairs_count_once(self):
        athlete = SimpleNamespace(pk=1)
        event = make_event(2, "100m")
        entries = [make_entry(athlete, event), make_entry(athlete, event)]
        self.assertEqual(count_counted_entries(entries, 1, relays_count=False), 1)

    def test_relay_squads_count_separately(self):
        athlete = SimpleNamespace(pk=1)
        relay = make_event(3, "4x100", is_relay=True)
        entries = [make_entry(athlete, relay, "A"), make_entry(athlete, relay, "Alt")]
        self.assertEqual(count_counted_entries(entries, 1, relays_count=True), 2)
        self.assertEqual(count_counted_entries(entries, 1, relays_count=False), 0)

    def test_relay_team_from_short_name(self):
        self.assertEqual(relay_team_for(make_event(1, "4x400 Alt", True)), "Alt")
        self.assertEqual(relay_team_for(make_event(1, "4x400", True)), "A")


class RelayLegCounterTests(SimpleTestCase):
    def test_advances_and_caps_at_four(self):
        counter = RelayLegCounter()
        self.assertEqual([counter.advance() for _ in range(4)], [2, 3, 4, 4])

    def test_set_validates_range(self):
        counter = RelayLegCounter()
        counter.set(3)
        self.assertEqual(counter.current, 3)
        with self.assertRaises(ValueError):
            counter.set(0)
