from django.urls import include, path
from rest_framework import routers

from reservations.views import ReservationViewSet

app_name = "reservations"

router = routers.DefaultRouter()
router.register("", ReservationViewSet, basename="reservations")

urlpatterns = [
    path("", include(router.urls)),
]
