from django.db import migrations

ROLE_ACCOUNTS = [
    {"code": "1000", "name": "Cash on hand", "role": "cash"},
    {"code": "1100", "name": "Accounts receivable", "role": "receivable"},
    {"code": "2100", "name": "Customer deposits", "role": "customer_deposits"},
    {"code": "2200", "name": "VAT payable", "role": "vat_payable"},
    {"code": "4000", "name": "Rental revenue", "role": "revenue"},
]


def seed_chart_of_accounts(apps, schema_editor):
    Account = apps.get_model("finances", "Account")
    PaymentMethod = apps.get_model("finances", "PaymentMethod")

    for data in ROLE_ACCOUNTS:
        Account.objects.update_or_create(code=data["code"], defaults=data)

    cash = Account.objects.get(role="cash")
    PaymentMethod.objects.get_or_create(
        code="cash",
        defaults={"name": "Cash desk", "account": cash, "is_active": True},
    )


def remove_chart_of_accounts(apps, schema_editor):
    Account = apps.get_model("finances", "Account")
    PaymentMethod = apps.get_model("finances", "PaymentMethod")

    PaymentMethod.objects.filter(code="cash").delete()
    Account.objects.filter(code__in=[data["code"] for data in ROLE_ACCOUNTS]).delete()


class Migration(migrations.Migration):

    dependencies = [
        ("finances", "0001_initial"),
    ]

    operations = [
        migrations.RunPython(seed_chart_of_accounts, remove_chart_of_accounts),
    ]
