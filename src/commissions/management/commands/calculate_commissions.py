"""Calculate commissions for one sale or for every pending sale."""
from django.core.management.base import BaseCommand, CommandError

from commissions.exceptions import CommissionError


class Command(BaseCommand):
    help = "Calculate commission distributions (one sale with --sale, otherwise every pending sale)"

    def add_arguments(self, parser):
        parser.add_argument("--sale", help="Sale id to calculate")
        parser.add_argument("--recalculate", action="store_true", help="Replace an existing row set")
        parser.add_argument("--limit", type=int, default=None, help="Maximum pending sales to process")

    def handle(self, *args, **options):
        if options["sale"]:
            from commissions.services import calculate_commission

            try:
                sale, rows = calculate_commission(options["sale"], recalculate=options["recalculate"])
            except CommissionError as exc:
                raise CommandError(str(exc)) from exc
            self.stdout.write(self.style.SUCCESS(
                f"Sale {sale.pk}: {len(rows)} rows, total {sale.commission_total}"
            ))
            return

        from commissions.tasks import calculate_pending_sales

        result = calculate_pending_sales(limit=options["limit"])
        self.stdout.write(self.style.SUCCESS(
            f"{result['calculated']} sales calculated, {result['failed']} failed"
        ))
