from django.contrib import admin

from books.models import Book
from circulation.engine import CirculationEngine


@admin.register(Book)
class BookAdmin(admin.ModelAdmin):
    list_display = ["id", "title", "author", "isbn", "total_copies", "available_copies"]
    search_fields = ["title", "author", "isbn"]
    readonly_fields = ["available_copies"]

    def save_model(self, request, obj, form, change):
        if not change:
            obj.available_copies = obj.total_copies
            super().save_model(request, obj, form, change)
            return

        # Copy counts are never written from the form row
        fields = [
            name
            for name in form.changed_data
            if name not in ("total_copies", "available_copies")
        ]
        if fields:
            obj.save(update_fields=fields)
        if "total_copies" in form.changed_data:
            CirculationEngine().change_total_copies(obj.pk, obj.total_copies)
        obj.refresh_from_db(fields=["total_copies", "available_copies"])
