from django.apps import AppConfig


class ApiConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "api"
    verbose_name = "Faculty Allocation"

    def ready(self):
        """Register the role-profile post_save receiver."""
        import api.api_models.user_type  # noqa: F401
