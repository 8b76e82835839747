"""Admin registration for finances."""

from __future__ import annotations

from django.contrib import admin

from .models import Account, AccountingPeriod, Invoice, LedgerLine, LedgerTransaction, Payment, PaymentMethod


@admin.register(AccountingPeriod)
class AccountingPeriodAdmin(admin.ModelAdmin):
    list_display = ("name", "start_date", "end_date", "status", "closed_at")
    list_filter = ("status",)


@admin.register(Account)
class AccountAdmin(admin.ModelAdmin):
    list_display = ("code", "name", "role")
    search_fields = ("code", "name")


@admin.register(PaymentMethod)
class PaymentMethodAdmin(admin.ModelAdmin):
    list_display = ("name", "code", "account", "is_active")
    list_filter = ("is_active",)


@admin.register(Invoice)
class InvoiceAdmin(admin.ModelAdmin):
    list_display = ("invoice_number", "booking", "kind", "status", "total_amount", "paid_amount")
    list_filter = ("kind", "status")
    search_fields = ("invoice_number", "booking__booking_number")
    readonly_fields = ("paid_amount", "voided_at", "created_at", "updated_at")


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = ("id", "booking", "invoice", "method", "amount", "payment_date", "status")
    list_filter = ("status", "method")
    readonly_fields = ("ledger_transaction_id", "voided_at", "created_at")


class LedgerLineInline(admin.TabularInline):
    model = LedgerLine
    extra = 0
    can_delete = False
    readonly_fields = ("account", "debit", "credit", "description")

    def has_add_permission(self, request, obj=None):  # type: ignore
        return False


@admin.register(LedgerTransaction)
class LedgerTransactionAdmin(admin.ModelAdmin):
    list_display = ("id", "transaction_type", "amount", "transaction_date", "booking", "archived_at")
    list_filter = ("transaction_type", "source_type")
    inlines = [LedgerLineInline]

    def has_change_permission(self, request, obj=None):  # type: ignore
        return False

    def has_delete_permission(self, request, obj=None):  # type: ignore
        return False
