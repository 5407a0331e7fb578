"""Seed global role percentages and a demo development for development/demo."""
from decimal import Decimal

from django.core.management.base import BaseCommand


class Command(BaseCommand):
    help = "Seed global role configuration and an example development configuration"

    GLOBAL_ROLES = [
        ("operations_coordinator_percent", Decimal("0.250"), "Coordinacion de Operaciones"),
        ("marketing_percent", Decimal("0.250"), "Marketing"),
        ("legal_manager_percent", Decimal("0.200"), "Juridico"),
        ("post_sale_coordinator_percent", Decimal("0.200"), "Postventa"),
    ]

    def add_arguments(self, parser):
        parser.add_argument("--with-demo", action="store_true", help="Also create a demo development config")

    def handle(self, *args, **options):
        from commissions.services import save_development_config, save_global_config

        for key, value, payee in self.GLOBAL_ROLES:
            save_global_config(key, value, payee_name=payee)
        self.stdout.write(f"{len(self.GLOBAL_ROLES)} global roles configured")

        if options["with_demo"]:
            config = save_development_config({
                "development": "P. Quintana Roo",
                "phase_sale_percent": Decimal("3.000"),
                "phase_post_sale_percent": Decimal("2.000"),
                "sale_manager_percent": Decimal("1.200"),
                "deal_owner_percent": Decimal("1.000"),
                "external_advisor_percent": Decimal("0.500"),
            })
            self.stdout.write(f"Demo development {config.development} configured")

        self.stdout.write(self.style.SUCCESS("Seed complete"))
