"""
Management command to run detection passes.

Usage:
    python manage.py detect_anomalies
    python manage.py detect_anomalies --pass theft
    python manage.py detect_anomalies --dry-run
"""

from django.core.management.base import BaseCommand, CommandError

from stockwatch.exceptions import StockwatchError
from stockwatch.models.enums import DetectionPass
from stockwatch.services.detection import DetectionTrigger
from stockwatch.services.triage import AnomalyRegistry


class Command(BaseCommand):
    """Run detection passes and merge the results."""

    help = 'Runs anomaly detection and stores new anomalies'

    def add_arguments(self, parser):
        parser.add_argument(
            '--pass',
            dest='passes',
            action='append',
            choices=DetectionPass.values,
            help='Detection pass to run (repeatable; default: all)',
        )
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Report what was detected without storing anomalies',
        )

    def handle(self, *args, **options):
        trigger = DetectionTrigger()
        failed = []

        for detection_pass in options['passes'] or DetectionPass.values:
            try:
                result = trigger.run_detection(detection_pass)
            except StockwatchError as exc:
                failed.append(detection_pass)
                self.stderr.write(f'{detection_pass}: {exc.message}')
                continue

            line = (f'{detection_pass}: {result.anomalies_detected} anomaly(ies), '
                    f'{result.alerts_generated} alert(s)')
            if not options['dry_run']:
                merged = AnomalyRegistry.merge(result)
                line += f', {len(merged.created)} new, {merged.duplicates} duplicate(s)'
            self.stdout.write(self.style.SUCCESS(line))

        if failed:
            raise CommandError(f'Detection failed for: {", ".join(failed)}')
