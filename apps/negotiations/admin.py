from django.contrib import admin
from django.utils.html import format_html

from apps.negotiations.models import Negotiation, NegotiationHistory


class NegotiationHistoryInline(admin.TabularInline):
    """
    Inline admin for the negotiation audit trail
    """

    model = NegotiationHistory
    extra = 0
    readonly_fields = (
        "action",
        "from_status",
        "to_status",
        "price",
        "actor_id",
        "created_at",
        "notes",
    )
    fields = readonly_fields
    ordering = ("-created_at",)
    can_delete = False
    max_num = 0

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Negotiation)
class NegotiationAdmin(admin.ModelAdmin):
    """
    Read-only admin: every change must go through the service layer so the
    version guard and history stay consistent.
    """

    list_display = (
        "id",
        "order_id",
        "status_badge",
        "farmer_id",
        "buyer_id",
        "original_price",
        "proposed_price",
        "final_price",
        "counter_offer_count",
        "expires_at",
        "created_at",
    )
    list_filter = ("status",)
    search_fields = ("order_id", "farmer_id", "buyer_id", "product_id")
    readonly_fields = [field.name for field in Negotiation._meta.fields]
    inlines = [NegotiationHistoryInline]
    date_hierarchy = "created_at"

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False

    def status_badge(self, obj):
        """Display status as a colored badge"""
        status_colors = {
            "pending": "#ffc107",  # Yellow
            "counter_offered": "#17a2b8",  # Cyan
            "accepted": "#28a745",  # Green
            "rejected": "#dc3545",  # Red
            "expired": "#6c757d",  # Gray
        }
        color = status_colors.get(obj.status, "#6c757d")
        return format_html(
            '<span style="background-color: {}; color: white; padding: 3px 8px; '
            'border-radius: 4px;">{}</span>',
            color,
            obj.get_status_display(),
        )

    status_badge.short_description = "Status"
