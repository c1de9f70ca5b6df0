from django.apps import AppConfig


class SchedulingConfig(AppConfig):
    name = "scheduling"
    default_auto_field = "django.db.models.BigAutoField"

    def ready(self):
        """Initialize the Firebase Admin SDK once the app registry is ready."""
        from scheduling.services.fcm_service import FCMService

        FCMService.initialize()
