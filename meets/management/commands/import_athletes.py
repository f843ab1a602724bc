from __future__ import annotations

from pathlib import Path

from django.core.management.base import BaseCommand, CommandError

from meets import importing, models


class Command(BaseCommand):
    """Import a pasted roster file into a team."""

    help = "Parse a tab, comma or whitespace separated roster file and add its athletes to a team."

    def add_arguments(self, parser):
        parser.add_argument("--team", required=True, help="Slug of the team to add athletes to")
        parser.add_argument("--path", required=True, help="Path to the roster text file")
        parser.add_argument(
            "--level",
            choices=models.Athlete.Level.values,
            default=models.Athlete.Level.JV,
            help="Level for rows that do not give one",
        )
        parser.add_argument(
            "--gender",
            choices=models.Athlete.Gender.values,
            default=models.Athlete.Gender.BOYS,
            help="Gender for rows that do not give one",
        )
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Only report how each row was read",
        )

    def handle(self, *args, **options):
        slug = options["team"]
        team = models.Team.objects.filter(slug=slug).first()
        if not team:
            raise CommandError(f"No team found with slug '{slug}'.")

        path = Path(options["path"])
        if not path.exists():
            raise CommandError(f"Roster file not found at {path}.")

        rows = importing.parse(path.read_text(encoding="utf-8"))
        for number, row in enumerate(rows, start=1):
            if not row.is_valid:
                self.stderr.write(f"Row {number} skipped: {row.error}")

        if options["dry_run"]:
            valid = len(importing.valid_rows(rows))
            self.stdout.write(f"{valid} of {len(rows)} rows are ready to import.")
            return

        result = importing.submit(
            rows, team, defaults={"level": options["level"], "gender": options["gender"]}
        )
        self.stdout.write(self.style.SUCCESS(f"Added {len(result.added)} athletes to {team.name}."))
        if result.errors:
            for error in result.errors:
                self.stderr.write(f"ERROR: {error}")
            raise CommandError(f"Completed with {len(result.errors)} errors.")
