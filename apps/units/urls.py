"""URL routing for units."""

from __future__ import annotations

from django.urls import include, path  # type: ignore
from rest_framework.routers import SimpleRouter  # type: ignore

from .views import UnitViewSet

router = SimpleRouter()
router.register(r"", UnitViewSet, basename="unit")

urlpatterns = [
    path("", include(router.urls)),
]
