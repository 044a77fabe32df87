from django.contrib import admin
from django.urls import include, path

urlpatterns = [
    path("admin/", admin.site.urls),
    path("api/books/", include("books.urls", namespace="books")),
    path("api/loans/", include("loans.urls", namespace="loans")),
    path("api/reservations/", include("reservations.urls", namespace="reservations")),
    path("api/users/", include("users.urls", namespace="users")),
]
