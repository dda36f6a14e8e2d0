from django.apps import AppConfig


class BloodConfig(AppConfig):
    name = "blood"
    verbose_name = "Donations"

    def ready(self):
        import blood.signals  # noqa
