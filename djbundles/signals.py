"""Bundle-related signals."""

from django.dispatch import Signal


#: A signal fired when a bundle is registered.
#:
#: This is not fired when a bundle creation is ignored because a bundle with
#: the same name already exists.
#:
#: Args:
#:     bundle (djbundles.models.Bundle):
#:         The bundle that was registered.
bundle_created = Signal()
