from django.contrib import admin

from loans.models import Loan


@admin.register(Loan)
class LoanAdmin(admin.ModelAdmin):
    list_display = [
        "id",
        "user",
        "book",
        "borrow_date",
        "due_date",
        "return_date",
        "status",
        "fine_amount",
    ]
    list_filter = ["status", "borrow_date", "due_date"]
    search_fields = ["user__email", "book__title", "book__isbn"]
    readonly_fields = ["status", "fine_amount", "return_date"]

    def has_add_permission(self, request):
        # Loans are created by the circulation engine only
        return False
