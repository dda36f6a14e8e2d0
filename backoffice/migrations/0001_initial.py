import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="StaffProfile",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("staff_role", models.CharField(choices=[("superadmin", "Super admin"), ("moderator", "Moderator"), ("support", "Support")], db_index=True, default="moderator", max_length=12)),
                ("nic", models.CharField(max_length=20, unique=True)),
                ("street", models.CharField(blank=True, max_length=200)),
                ("city", models.CharField(blank=True, max_length=100)),
                ("state", models.CharField(blank=True, max_length=100)),
                ("created_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("user", models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name="staff_profile", to=settings.AUTH_USER_MODEL)),
            ],
        ),
        migrations.CreateModel(
            name="Approval",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("target_type", models.CharField(choices=[("USER", "Donor"), ("ORGANIZER", "Organizer"), ("CAMP", "Camp")], max_length=10)),
                ("target_id", models.PositiveBigIntegerField()),
                ("approved_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("staff", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="approvals_given", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "ordering": ["-approved_at"],
                "constraints": [models.UniqueConstraint(fields=("staff", "target_type", "target_id"), name="uniq_staff_approval")],
            },
        ),
    ]
