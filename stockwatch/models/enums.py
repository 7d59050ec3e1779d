"""
Enums for Stockwatch models.
"""

from django.db import models
from django.utils.translation import gettext_lazy as _


class TransactionType(models.TextChoices):
    """
    Kind of stock-changing event.

    SALE, EXPIRY, DAMAGE:   always reduce stock by the given amount.
    RESTOCK, PURCHASE:      always increase stock by the given amount.
    ADJUSTMENT:             sets stock to an absolute counted quantity.
    """
    SALE = 'sale', _('Sale')
    RESTOCK = 'restock', _('Restock')
    PURCHASE = 'purchase', _('Purchase')
    ADJUSTMENT = 'adjustment', _('Adjustment')
    EXPIRY = 'expiry', _('Expiry')
    DAMAGE = 'damage', _('Damage')

    @classmethod
    def decreasing(cls):
        return (cls.SALE, cls.EXPIRY, cls.DAMAGE)

    @classmethod
    def increasing(cls):
        return (cls.RESTOCK, cls.PURCHASE)


class AnomalyType(models.TextChoices):
    """Irregularity flagged by a detection pass."""
    LOW_STOCK = 'low_stock', _('Low stock')
    THEFT = 'theft', _('Theft')
    SHRINKAGE = 'shrinkage', _('Shrinkage')
    UNAUTHORIZED_ACCESS = 'unauthorized_access', _('Unauthorized access')
    UNUSUAL_SALES = 'unusual_sales', _('Unusual sales')
    EXPIRY = 'expiry', _('Expiry')
    OTHER = 'other', _('Other')


class Severity(models.TextChoices):
    LOW = 'low', _('Low')
    MEDIUM = 'medium', _('Medium')
    HIGH = 'high', _('High')
    CRITICAL = 'critical', _('Critical')


class DetectionPass(models.TextChoices):
    """External detection capability to invoke."""
    GENERAL = 'general', _('General anomaly scan')
    THEFT = 'theft', _('Theft-focused scan')


class MutationState(models.TextChoices):
    """
    Mutation request lifecycle.

    REQUESTED → VALIDATED → APPLIED → RECORDED → DETECTING → COMPLETED

    Failure exits:
    REJECTED_AT_VALIDATION: nothing written
    FAILED_AFTER_APPLY:     quantity changed, transaction missing
    FAILED_AFTER_RECORD:    mutation committed, anomaly merge failed
    """
    REQUESTED = 'requested', _('Requested')
    VALIDATED = 'validated', _('Validated')
    APPLIED = 'applied', _('Applied')
    RECORDED = 'recorded', _('Recorded')
    DETECTING = 'detecting', _('Detecting')
    COMPLETED = 'completed', _('Completed')
    REJECTED_AT_VALIDATION = 'rejected_at_validation', _('Rejected at validation')
    FAILED_AFTER_APPLY = 'failed_after_apply', _('Failed after apply')
    FAILED_AFTER_RECORD = 'failed_after_record', _('Failed after record')
