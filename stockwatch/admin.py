"""
Stockwatch Admin.

- Product: catalog fields editable, quantity read-only
- StockTransaction: read-only audit trail
- Anomaly: read-only with "acknowledge" and "resolve" actions
"""

import logging

from django.contrib import admin
from django.utils.translation import gettext_lazy as _

from stockwatch.exceptions import StockwatchError
from stockwatch.models import Anomaly, Product, StockTransaction
from stockwatch.services.triage import AnomalyRegistry

logger = logging.getLogger(__name__)


# =========================================================================
# PRODUCT ADMIN
# =========================================================================

@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    """Product admin. Stock only changes via the inventory service."""

    list_display = ['name', 'category', 'quantity', 'minimum_stock', 'price',
                    'is_low_stock_display', 'expiry_date']
    list_filter = ['category', 'is_fixture']
    search_fields = ['name', 'category']
    readonly_fields = ['quantity', 'is_fixture', 'created_at', 'updated_at']

    @admin.display(description=_('Low stock?'), boolean=True)
    def is_low_stock_display(self, obj):
        return obj.is_low_stock

    def has_delete_permission(self, request, obj=None):
        # Products with history are protected; deletion goes through the catalog
        return False


# =========================================================================
# TRANSACTION ADMIN (read-only audit trail)
# =========================================================================

@admin.register(StockTransaction)
class StockTransactionAdmin(admin.ModelAdmin):
    """Transaction admin — read-only. Immutable ledger."""

    list_display = ['created_at', 'product', 'type', 'quantity',
                    'previous_quantity', 'new_quantity', 'actor', 'reason']
    list_filter = ['type', 'created_at']
    search_fields = ['product__name', 'reason', 'actor']
    readonly_fields = ['product', 'type', 'quantity', 'previous_quantity',
                       'new_quantity', 'reason', 'actor', 'created_at']
    date_hierarchy = 'created_at'

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


# =========================================================================
# ANOMALY ADMIN (read-only with triage actions)
# =========================================================================

@admin.register(Anomaly)
class AnomalyAdmin(admin.ModelAdmin):
    """Anomaly admin — triage only through the registry."""

    list_display = ['created_at', 'type', 'severity', 'product', 'ai_confidence',
                    'detection_pass', 'is_acknowledged_display', 'resolved']
    list_filter = ['resolved', 'severity', 'type', 'detection_pass']
    search_fields = ['product__name', 'description']
    readonly_fields = ['product', 'type', 'severity', 'ai_confidence', 'description',
                       'metadata', 'detection_pass', 'resolved', 'resolved_at',
                       'acknowledged_at', 'created_at']
    actions = ['acknowledge_anomalies', 'resolve_anomalies']

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False

    @admin.display(description=_('Acknowledged?'), boolean=True)
    def is_acknowledged_display(self, obj):
        return obj.is_acknowledged

    @admin.action(description=_('Acknowledge selected anomalies'))
    def acknowledge_anomalies(self, request, queryset):
        count = self._apply(queryset.filter(acknowledged_at__isnull=True), AnomalyRegistry.acknowledge)
        self.message_user(request, _('{count} anomaly(ies) acknowledged.').format(count=count))

    @admin.action(description=_('Resolve selected anomalies'))
    def resolve_anomalies(self, request, queryset):
        count = self._apply(queryset.filter(resolved=False), AnomalyRegistry.resolve)
        self.message_user(request, _('{count} anomaly(ies) resolved.').format(count=count))

    def _apply(self, queryset, transition) -> int:
        count = 0
        for anomaly_id in queryset.values_list('pk', flat=True):
            try:
                transition(anomaly_id)
                count += 1
            except StockwatchError as exc:
                logger.warning("admin triage: failed on anomaly %s: %s", anomaly_id, exc)
        return count
