"""
Anomaly model — irregularity awaiting operator triage.

Usage:
    # Open anomalies, newest first
    Anomaly.objects.open()

    # Triage goes through the registry, never through save()
    from stockwatch.services.triage import AnomalyRegistry
    AnomalyRegistry.resolve(anomaly.pk)
"""

from datetime import timedelta

from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from stockwatch.models.enums import AnomalyType, DetectionPass, Severity


class AnomalyQuerySet(models.QuerySet):

    def open(self):
        """Unresolved anomalies."""
        return self.filter(resolved=False)

    def recent(self, hours: int):
        """Created within the last `hours` hours."""
        return self.filter(created_at__gte=timezone.now() - timedelta(hours=hours))


class Anomaly(models.Model):
    """
    Irregularity flagged by a detection pass.

    LIFECYCLE:

        open ──acknowledge()──► acknowledged ──resolve()──► resolved
          └──────────────────resolve()───────────────────────┘

    Both transitions are one-way. Resolved anomalies are kept, not deleted.
    """

    product = models.ForeignKey(
        'stockwatch.Product',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='anomalies',
        verbose_name=_('Product'),
        help_text=_('Empty = not tied to a single product'),
    )
    type = models.CharField(max_length=30, choices=AnomalyType.choices, verbose_name=_('Type'))
    severity = models.CharField(
        max_length=10,
        choices=Severity.choices,
        default=Severity.MEDIUM,
        verbose_name=_('Severity'),
    )
    ai_confidence = models.FloatField(
        null=True,
        blank=True,
        validators=[MinValueValidator(0.0), MaxValueValidator(1.0)],
        verbose_name=_('AI confidence'),
    )
    description = models.TextField(blank=True, default='', verbose_name=_('Description'))
    metadata = models.JSONField(default=dict, blank=True, verbose_name=_('Metadata'))
    detection_pass = models.CharField(
        max_length=20,
        choices=DetectionPass.choices,
        blank=True,
        default='',
        verbose_name=_('Detected by'),
    )

    resolved = models.BooleanField(default=False, db_index=True, verbose_name=_('Resolved'))
    resolved_at = models.DateTimeField(null=True, blank=True, verbose_name=_('Resolved at'))
    acknowledged_at = models.DateTimeField(null=True, blank=True, verbose_name=_('Acknowledged at'))
    created_at = models.DateTimeField(default=timezone.now, db_index=True, verbose_name=_('Detected at'))

    objects = AnomalyQuerySet.as_manager()

    class Meta:
        verbose_name = _('Anomaly')
        verbose_name_plural = _('Anomalies')
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['product', 'type', 'resolved'], name='stockwatch_anomaly_triage'),
            models.Index(fields=['severity'], name='stockwatch_anomaly_severity'),
        ]

    @property
    def is_acknowledged(self) -> bool:
        return self.acknowledged_at is not None

    def __str__(self) -> str:
        target = f" @ {self.product}" if self.product_id else ""
        return f"{self.get_type_display()} [{self.severity}]{target}"
