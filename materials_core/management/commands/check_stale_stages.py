from datetime import timedelta

from django.core.management.base import BaseCommand

from materials_core.workflows.divergence import detect_stale_stages


class Command(BaseCommand):
    help = "Flag materials whose stage-leaving evidence exists but whose stage never moved"

    def add_arguments(self, parser):
        parser.add_argument(
            "--grace-minutes",
            type=int,
            default=None,
            help="Override STALE_STAGE_GRACE_MINUTES for this run.",
        )

    def handle(self, *args, **options):
        grace = None
        if options["grace_minutes"] is not None:
            grace = timedelta(minutes=options["grace_minutes"])

        created = detect_stale_stages(grace=grace)
        self.stdout.write(f"{created} new stale-stage alert(s)")
