"""
Management command to seed detection scenarios.

Usage:
    python manage.py run_scenario shrinkage
    python manage.py run_scenario --cleanup
"""

from django.core.management.base import BaseCommand, CommandError

from stockwatch.exceptions import StockwatchError
from stockwatch.scenarios import ScenarioHarness


class Command(BaseCommand):
    """Run a scenario or remove scenario fixtures."""

    help = 'Seeds a known stock history and runs detection against it'

    def add_arguments(self, parser):
        parser.add_argument('name', nargs='?', help=f'One of: {", ".join(ScenarioHarness.SCENARIOS)}')
        parser.add_argument(
            '--cleanup',
            action='store_true',
            help='Remove all scenario fixture products',
        )

    def handle(self, *args, **options):
        if options['cleanup']:
            count = ScenarioHarness.cleanup()
            self.stdout.write(self.style.SUCCESS(f'{count} fixture product(s) removed'))
            return

        if not options['name']:
            raise CommandError('Give a scenario name or --cleanup')

        try:
            result = ScenarioHarness.run_scenario(options['name'])
        except StockwatchError as exc:
            raise CommandError(exc.message) from exc

        self.stdout.write(self.style.SUCCESS(
            f'{result.scenario}: {result.anomalies_detected} anomaly(ies), '
            f'{result.alerts_generated} alert(s) (product {result.product_id or "-"})'
        ))
