from __future__ import annotations

from django.core.management.base import BaseCommand, CommandError

from meets import models
from meets.copying import copy_all_from
from meets.store import EntryStore


class Command(BaseCommand):
    """Copy every entry from one meet into another."""

    help = "Copy entries between meets, skipping athlete/event pairs the target already has."

    def add_arguments(self, parser):
        parser.add_argument("--source", required=True, type=int, help="ID of the meet to copy from")
        parser.add_argument("--target", required=True, type=int, help="ID of the meet to copy into")

    def handle(self, *args, **options):
        source = models.Meet.objects.filter(pk=options["source"]).first()
        target = models.Meet.objects.filter(pk=options["target"]).first()
        if not source:
            raise CommandError(f"No meet found with id {options['source']}.")
        if not target:
            raise CommandError(f"No meet found with id {options['target']}.")
        if source.pk == target.pk:
            raise CommandError("Source and target must be different meets.")

        result = copy_all_from(source.pk, EntryStore(target.pk))
        if result.is_noop:
            self.stdout.write("All entries already exist in the target meet.")
        else:
            self.stdout.write(
                self.style.SUCCESS(
                    f"Copied {result.added} entries into {target.name}; skipped {result.skipped}."
                )
            )
        if result.errors:
            for error in result.errors:
                self.stderr.write(f"ERROR: {error}")
            raise CommandError(f"Completed with {len(result.errors)} errors.")
