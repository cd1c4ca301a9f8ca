"""Django app configuration for django-website-storage."""

from django.apps import AppConfig


class WebsiteStorageConfig(AppConfig):
    name = "website_storage"
    verbose_name = "Website Storage"
