"""Serializers for invoices, payments, periods and the ledger."""

from __future__ import annotations

from rest_framework import serializers  # type: ignore

from .models import AccountingPeriod, Invoice, LedgerLine, LedgerTransaction, Payment


class InvoiceSerializer(serializers.ModelSerializer):
    class Meta:
        model = Invoice
        fields = [
            "id",
            "booking",
            "invoice_number",
            "kind",
            "status",
            "subtotal",
            "tax_amount",
            "total_amount",
            "paid_amount",
            "period_start",
            "period_end",
            "issue_date",
            "voided_at",
            "created_at",
        ]
        read_only_fields = fields


class PaymentSerializer(serializers.ModelSerializer):
    method_name = serializers.ReadOnlyField(source="method.name")

    class Meta:
        model = Payment
        fields = [
            "id",
            "booking",
            "invoice",
            "customer_id",
            "method",
            "method_name",
            "amount",
            "payment_date",
            "reference",
            "ledger_transaction_id",
            "status",
            "voided_at",
            "created_at",
        ]
        read_only_fields = fields


class LedgerLineSerializer(serializers.ModelSerializer):
    account_code = serializers.ReadOnlyField(source="account.code")
    account_name = serializers.ReadOnlyField(source="account.name")

    class Meta:
        model = LedgerLine
        fields = ["id", "account", "account_code", "account_name", "debit", "credit", "description"]
        read_only_fields = fields


class LedgerTransactionSerializer(serializers.ModelSerializer):
    lines = LedgerLineSerializer(many=True, read_only=True)

    class Meta:
        model = LedgerTransaction
        fields = [
            "id",
            "transaction_type",
            "source_type",
            "source_id",
            "booking",
            "amount",
            "tax_amount",
            "customer_id",
            "method",
            "transaction_date",
            "description",
            "reverses",
            "lines",
            "created_at",
        ]
        read_only_fields = fields


class AccountingPeriodSerializer(serializers.ModelSerializer):
    allow_overlap = serializers.BooleanField(write_only=True, required=False, default=False)

    class Meta:
        model = AccountingPeriod
        fields = ["id", "name", "start_date", "end_date", "status", "closed_at", "created_at", "allow_overlap"]
        read_only_fields = ["id", "status", "closed_at", "created_at"]
        extra_kwargs = {"name": {"required": False, "allow_blank": True}}


class TrialBalanceQuerySerializer(serializers.Serializer):
    as_of = serializers.DateField(required=False)


class StatementQuerySerializer(serializers.Serializer):
    customer_id = serializers.IntegerField()
    start = serializers.DateField(required=False)
    end = serializers.DateField(required=False)
