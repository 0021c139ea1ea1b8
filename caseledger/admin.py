"""
Case ledger Admin.

Read-only views for production debugging. Quantities only change through
the ledger service, so nothing here edits cases or history:
- Item: read-only with "recalculate totals" action
- Lot: read-only, usage history inline
- UsageEvent: read-only audit trail
- CountSnapshot: read-only count history
- Order: read-only, lines inline
"""

from django.contrib import admin
from django.utils.translation import gettext_lazy as _

from caseledger.models import CountSnapshot, Item, Lot, Order, OrderLine, UsageEvent


class ReadOnlyAdminMixin:
    def has_add_permission(self, request, obj=None):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


# =========================================================================
# ITEM ADMIN (read-only with recalculate action)
# =========================================================================

@admin.register(Item)
class ItemAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    """Item admin — read-only with recalculate action."""

    list_display = ['item_code', 'description', 'unit', 'unit_price',
                    'total_cases', 'total_weight', 'inventory_value_display']
    search_fields = ['item_code', 'description', 'barcode']
    readonly_fields = ['item_code', 'description', 'barcode', 'unit', 'unit_price',
                       'total_cases', 'total_weight', 'created_at', 'updated_at']
    actions = ['recalculate_totals']

    @admin.display(description=_('Inventory value'))
    def inventory_value_display(self, obj):
        return obj.inventory_value

    @admin.action(description=_('Recalculate totals from cases'))
    def recalculate_totals(self, request, queryset):
        from caseledger import ledger

        drifted = 0
        for item in queryset:
            before = (item.total_cases, item.total_weight)
            after = ledger.recalculate(item.item_code)
            if (after.total_cases, after.total_weight) != before:
                drifted += 1

        self.message_user(
            request,
            _('{count} item(s) checked, {drifted} corrected.').format(
                count=queryset.count(), drifted=drifted,
            ),
        )


# =========================================================================
# LOT ADMIN (read-only, usage inline)
# =========================================================================

class UsageEventInline(ReadOnlyAdminMixin, admin.TabularInline):
    model = UsageEvent
    extra = 0
    fields = ['date', 'amount_used', 'remaining_after', 'reason', 'kind']
    readonly_fields = fields


@admin.register(Lot)
class LotAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    """Lot admin — read-only. Cases only change via the ledger service."""

    list_display = ['case_id', 'item', 'received_date', 'weight',
                    'remaining_quantity', 'status', 'source_invoice']
    list_filter = ['status', 'received_date']
    search_fields = ['case_id', 'item__item_code', 'source_invoice']
    readonly_fields = ['item', 'case_id', 'weight', 'remaining_quantity', 'received_date',
                       'source_invoice', 'status', 'last_physical_count',
                       'count_exclusions', 'created_at']
    date_hierarchy = 'received_date'
    list_select_related = ['item']
    inlines = [UsageEventInline]


# =========================================================================
# USAGE EVENT ADMIN (read-only audit trail)
# =========================================================================

@admin.register(UsageEvent)
class UsageEventAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    """UsageEvent admin — read-only. Immutable audit trail."""

    list_display = ['date', 'lot', 'amount_used', 'remaining_after', 'kind', 'reason']
    list_filter = ['kind', 'date']
    search_fields = ['reason', 'lot__case_id', 'lot__item__item_code']
    readonly_fields = ['lot', 'date', 'amount_used', 'remaining_after', 'reason',
                       'kind', 'metadata', 'recorded_at']
    date_hierarchy = 'date'


# =========================================================================
# COUNT SNAPSHOT ADMIN
# =========================================================================

@admin.register(CountSnapshot)
class CountSnapshotAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    list_display = ['item', 'count_date', 'cutoff_date', 'cases_counted',
                    'cases_marked_used', 'total_cases', 'total_weight', 'performed_at']
    list_filter = ['count_date']
    search_fields = ['item__item_code', 'notes']
    readonly_fields = ['item', 'count_date', 'cutoff_date', 'people_on_site', 'notes',
                       'cases_counted', 'eligible_lot_count', 'excluded_lot_count',
                       'cases_marked_used', 'total_cases', 'total_weight', 'performed_at']


# =========================================================================
# ORDER ADMIN (read-only, lines inline)
# =========================================================================

class OrderLineInline(ReadOnlyAdminMixin, admin.TabularInline):
    model = OrderLine
    extra = 0
    fields = ['item_code', 'description', 'quantity', 'unit_price', 'line_total',
              'fulfilled', 'fulfilled_at']
    readonly_fields = fields


@admin.register(Order)
class OrderAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    """Order admin — read-only. Fulfillment only changes via the ledger service."""

    list_display = ['order_id', 'order_date', 'total_value', 'fulfilled_value',
                    'fulfillment_status', 'is_credit_memo']
    list_filter = ['fulfillment_status', 'is_credit_memo']
    search_fields = ['order_id', 'lines__item_code']
    readonly_fields = ['order_id', 'order_date', 'total_value', 'is_credit_memo',
                       'fulfillment_status', 'fulfilled_value', 'created_at', 'completed_at']
    inlines = [OrderLineInline]
