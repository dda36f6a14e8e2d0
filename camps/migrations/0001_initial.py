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
            name="Camp",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=200)),
                ("description", models.TextField(blank=True)),
                ("operating_hours", models.CharField(max_length=100)),
                ("latitude", models.FloatField()),
                ("longitude", models.FloatField()),
                ("street", models.CharField(max_length=200)),
                ("city", models.CharField(db_index=True, max_length=100)),
                ("postal_code", models.CharField(max_length=20)),
                ("status", models.CharField(choices=[("Upcoming", "Upcoming"), ("Open", "Open"), ("Full", "Full"), ("Closed", "Closed")], db_index=True, default="Upcoming", max_length=10)),
                ("contact_phone", models.CharField(max_length=20)),
                ("contact_email", models.EmailField(max_length=254)),
                ("created_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("organizer", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="created_camps", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "ordering": ["-created_at", "-id"],
                "indexes": [models.Index(fields=["latitude", "longitude"], name="camp_lat_lng_idx")],
            },
        ),
        migrations.CreateModel(
            name="CampDate",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("date", models.DateField(db_index=True)),
                ("camp", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="dates", to="camps.camp")),
            ],
            options={
                "ordering": ["date"],
                "constraints": [models.UniqueConstraint(fields=("camp", "date"), name="uniq_camp_date")],
            },
        ),
    ]
