"""App configuration for djbundles."""

from django.apps import AppConfig


class DjbundlesAppConfig(AppConfig):
    """App configuration for djbundles."""

    name = 'djbundles'
    label = 'djbundles'
    verbose_name = 'Djbundles'

    def ready(self) -> None:
        """Connect signal handlers once the app registry is ready."""
        # Importing registers the settings change handler.
        import djbundles.environment  # noqa: F401
