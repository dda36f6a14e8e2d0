import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ("camps", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="DonationRecord",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("donation_date", models.DateField()),
                ("donation_type", models.CharField(choices=[("Whole Blood", "Whole Blood"), ("Plasma", "Plasma"), ("Platelets", "Platelets"), ("Double Red Cells", "Double Red Cells")], default="Whole Blood", max_length=20)),
                ("donation_center", models.CharField(blank=True, max_length=200)),
                ("pints_donated", models.PositiveSmallIntegerField(default=1)),
                ("notes", models.TextField(blank=True)),
                ("post_donation_issues", models.TextField(blank=True)),
                ("created_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("camp", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="donation_records", to="camps.camp")),
                ("donor", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="donation_records", to=settings.AUTH_USER_MODEL)),
                ("recorded_by", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="recorded_donations", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "ordering": ["created_at", "id"],
            },
        ),
    ]
