from django.contrib import admin

from reservations.models import Reservation


@admin.register(Reservation)
class ReservationAdmin(admin.ModelAdmin):
    list_display = ["id", "user", "book", "reserved_at", "status"]
    list_filter = ["status", "reserved_at"]
    search_fields = ["user__email", "book__title", "book__isbn"]
    readonly_fields = ["reserved_at"]
