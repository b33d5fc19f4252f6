from django.apps import AppConfig


class SocialgraphConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "socialgraph"
    verbose_name = "Social graph"
