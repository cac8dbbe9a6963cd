"""
Django management command to apply captures the webhook never delivered.

Polls the payment processor for every order that is still waiting for
payment and completes those whose intent has succeeded.

Usage:
    python manage.py reconcile_payments
    python manage.py reconcile_payments --older-than-minutes 30
    python manage.py reconcile_payments --dry-run
"""

from datetime import timedelta

from django.core.management.base import BaseCommand
from django.utils import timezone

from infrastructure.container import container


class Command(BaseCommand):
    help = "Complete orders whose payment intent succeeded but whose confirmation was missed"

    def add_arguments(self, parser):
        parser.add_argument(
            "--older-than-minutes",
            type=int,
            default=10,
            help="Only check orders created at least this many minutes ago (default: 10)",
        )
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="List the orders that would be checked without calling the processor",
        )

    def handle(self, *args, **options):
        service = container.order_service()
        cutoff = timezone.now() - timedelta(minutes=options["older_than_minutes"])

        orders = list(service.incomplete_orders(older_than=cutoff))
        self.stdout.write(f"Found {len(orders)} order(s) waiting for payment")

        if options["dry_run"]:
            for order in orders:
                self.stdout.write(f"  {order.id} ({order.title}, {order.price})")
            return

        completed = 0
        for order in orders:
            if service.reconcile_payment(order):
                completed += 1
                self.stdout.write(f"  Completed {order.id}")

        self.stdout.write(self.style.SUCCESS(f"Completed {completed} of {len(orders)} order(s)"))
