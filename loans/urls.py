from django.urls import include, path
from rest_framework import routers

from loans.views import LoanViewSet

app_name = "loans"

router = routers.DefaultRouter()
router.register("", LoanViewSet, basename="loans")

urlpatterns = [
    path("", include(router.urls)),
]
