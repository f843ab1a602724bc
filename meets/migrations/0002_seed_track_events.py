from django.db import migrations


CATALOG = [
    # category, name, short_name, max_entries, is_relay
    ("Field", "High Jump", "HJ", 4, False),
    ("Field", "Long Jump", "LJ", 4, False),
    ("Field", "Triple Jump", "TJ", 4, False),
    ("Field", "Pole Vault", "PV", 4, False),
    ("Field", "Shot Put", "SP", 4, False),
    ("Field", "Discus", "DT", 4, False),
    ("Sprint", "100 Meters", "100m", 4, False),
    ("Sprint", "200 Meters", "200m", 4, False),
    ("Sprint", "400 Meters", "400m", 4, False),
    ("Distance", "800 Meters", "800m", 4, False),
    ("Distance", "1600 Meters", "1600m", 4, False),
    ("Distance", "3200 Meters", "3200m", 4, False),
    ("Hurdles", "110 Meter Hurdles", "110H", 4, False),
    ("Hurdles", "100 Meter Hurdles", "100H", 4, False),
    ("Hurdles", "300 Meter Hurdles", "300H", 4, False),
    ("Relay", "4x100 Relay", "4x100", 4, True),
    ("Relay", "4x100 Relay (Alt)", "4x100 Alt", 4, True),
    ("Relay", "4x200 Relay", "4x200", 4, True),
    ("Relay", "4x400 Relay", "4x400", 4, True),
    ("Relay", "4x400 Relay (Alt)", "4x400 Alt", 4, True),
    ("Relay", "4x800 Relay", "4x800", 4, True),
]


def seed_track_events(apps, schema_editor):
    TrackEvent = apps.get_model("meets", "TrackEvent")

    for category, name, short_name, max_entries, is_relay in CATALOG:
        TrackEvent.objects.update_or_create(
            short_name=short_name,
            defaults=dict(
                name=name,
                category=category,
                max_entries=max_entries,
                is_relay=is_relay,
            ),
        )


def unseed_track_events(apps, schema_editor):
    TrackEvent = apps.get_model("meets", "TrackEvent")
    TrackEvent.objects.filter(short_name__in=[row[2] for row in CATALOG]).delete()


class Migration(migrations.Migration):

    dependencies = [
        ("meets", "0001_initial"),
    ]

    operations = [
        migrations.RunPython(seed_track_events, unseed_track_events),
    ]
