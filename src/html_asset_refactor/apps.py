"""Django app configuration for html-asset-refactor."""

from django.apps import AppConfig


class HtmlAssetRefactorConfig(AppConfig):
    name = "html_asset_refactor"
    default_auto_field = "django.db.models.BigAutoField"
    verbose_name = "HTML Asset Refactor"
