import uuid

import django.db.models.deletion
import django.utils.timezone
from django.db import migrations, models

ORDER_STATUS_CHOICES = [
    ("pending_payment", "Pending Payment"),
    ("paid", "Paid"),
    ("canceled", "Canceled"),
    ("expired", "Expired"),
    ("failed", "Failed"),
]


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Event",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("title", models.CharField(max_length=255)),
                ("venue", models.CharField(blank=True, max_length=255)),
                ("city", models.CharField(blank=True, max_length=255)),
                ("pricing", models.JSONField(blank=True, default=dict, help_text="Zone id -> price in major units")),
                ("pricing_cents", models.JSONField(blank=True, default=dict, help_text="Zone id -> price in minor units")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="Order",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("user_id", models.CharField(db_index=True, max_length=255)),
                ("session_date", models.DateTimeField(blank=True, null=True)),
                ("items", models.JSONField(default=list)),
                ("currency", models.CharField(default="MXN", max_length=8)),
                ("service_fee_pct", models.PositiveSmallIntegerField(default=0)),
                ("subtotal_cents", models.PositiveIntegerField(default=0)),
                ("fees_cents", models.PositiveIntegerField(default=0)),
                ("tax_cents", models.PositiveIntegerField(default=0)),
                ("discount_cents", models.PositiveIntegerField(default=0)),
                ("total_cents", models.PositiveIntegerField(default=0)),
                ("status", models.CharField(choices=ORDER_STATUS_CHOICES, db_index=True, default="pending_payment", max_length=20)),
                ("checkout_session_id", models.CharField(blank=True, db_index=True, max_length=255)),
                ("payment_intent_id", models.CharField(blank=True, max_length=255)),
                ("expires_at", models.DateTimeField(blank=True, null=True)),
                ("paid_at", models.DateTimeField(blank=True, null=True)),
                ("canceled_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("event", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="orders", to="ticketing.event")),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["status", "expires_at"], name="order_status_expiry_idx"),
                    models.Index(fields=["event", "status"], name="order_event_status_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="OrderStatusEntry",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("status", models.CharField(choices=ORDER_STATUS_CHOICES, max_length=20)),
                ("note", models.CharField(blank=True, max_length=255)),
                ("at", models.DateTimeField(default=django.utils.timezone.now)),
                ("order", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="timeline", to="ticketing.order")),
            ],
            options={
                "ordering": ["id"],
            },
        ),
        migrations.CreateModel(
            name="Ticket",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("ticket_id", models.CharField(max_length=64, unique=True)),
                ("seat_id", models.CharField(max_length=64)),
                ("table_id", models.CharField(blank=True, max_length=64, null=True)),
                ("zone_id", models.CharField(blank=True, max_length=64)),
                ("status", models.CharField(choices=[("issued", "Issued"), ("checked_in", "Checked In"), ("void", "Void")], default="issued", max_length=20)),
                ("issued_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("checked_in_at", models.DateTimeField(blank=True, null=True)),
                ("order", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="tickets", to="ticketing.order")),
            ],
            options={
                "ordering": ["id"],
                "constraints": [
                    models.UniqueConstraint(fields=("order", "seat_id"), name="uniq_ticket_per_order_seat"),
                ],
            },
        ),
        migrations.CreateModel(
            name="SeatHold",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("table_id", models.CharField(blank=True, max_length=64, null=True)),
                ("seat_id", models.CharField(blank=True, max_length=64, null=True)),
                ("zone_id", models.CharField(blank=True, max_length=64)),
                ("user_id", models.CharField(max_length=255)),
                ("status", models.CharField(choices=[("active", "Active"), ("attached_to_order", "Attached To Order"), ("released", "Released"), ("sold", "Sold")], default="active", max_length=20)),
                ("expires_at", models.DateTimeField(blank=True, db_index=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("event", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="seat_holds", to="ticketing.event")),
                ("order", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="holds", to="ticketing.order")),
            ],
            options={
                "indexes": [
                    models.Index(fields=["order", "status"], name="hold_order_status_idx"),
                    models.Index(fields=["event", "status"], name="hold_event_status_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(condition=models.Q(("status", "active")), fields=("event", "seat_id"), name="uniq_active_hold_per_seat"),
                    models.UniqueConstraint(condition=models.Q(("status", "sold")), fields=("event", "seat_id"), name="uniq_sold_hold_per_seat"),
                ],
            },
        ),
    ]
