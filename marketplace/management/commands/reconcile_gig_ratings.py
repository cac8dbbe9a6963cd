"""
Django management command to compare each gig's rating aggregate with its reviews.

Usage:
    python manage.py reconcile_gig_ratings
    python manage.py reconcile_gig_ratings --fix
"""

from django.core.management.base import BaseCommand

from infrastructure.container import container


class Command(BaseCommand):
    help = "Detect (and optionally repair) gigs whose total_stars/star_number drifted from their reviews"

    def add_arguments(self, parser):
        parser.add_argument(
            "--fix",
            action="store_true",
            help="Overwrite drifted aggregates with the rescanned values",
        )

    def handle(self, *args, **options):
        fix = options["fix"]
        service = container.review_service()

        self.stdout.write(self.style.SUCCESS("=== RECONCILING GIG RATINGS ==="))

        drifted = list(service.find_drift())
        if not drifted:
            self.stdout.write(self.style.SUCCESS("  All gig aggregates match their reviews"))
            return

        for gig, total, count in drifted:
            self.stdout.write(
                self.style.WARNING(
                    f"  {gig.id} '{gig.title}': stored ({gig.total_stars}, {gig.star_number}), "
                    f"rescan ({total}, {count})"
                )
            )
            if fix:
                service.repair_aggregate(gig)

        if fix:
            self.stdout.write(self.style.SUCCESS(f"Repaired {len(drifted)} gig(s)"))
        else:
            self.stdout.write(self.style.WARNING(f"Found {len(drifted)} drifted gig(s); rerun with --fix to repair"))
