from django.utils import timezone
from rest_framework import serializers

from loans.models import Loan


class LoanCreateSerializer(serializers.Serializer):
    book_id = serializers.IntegerField(min_value=1)


class LoanSerializer(serializers.ModelSerializer):
    """Loan with status and overdue days computed for today"""

    book_title = serializers.CharField(source="book.title", read_only=True)
    isbn = serializers.CharField(source="book.isbn", read_only=True)
    user_email = serializers.CharField(source="user.email", read_only=True)
    status = serializers.SerializerMethodField()
    days_overdue = serializers.SerializerMethodField()

    class Meta:
        model = Loan
        fields = [
            "id",
            "user_id",
            "user_email",
            "book_id",
            "book_title",
            "isbn",
            "borrow_date",
            "due_date",
            "return_date",
            "status",
            "fine_amount",
            "days_overdue",
        ]

    def _today(self):
        return self.context.get("today") or timezone.localdate()

    def get_status(self, obj):
        return obj.effective_status(self._today())

    def get_days_overdue(self, obj):
        return obj.days_overdue(self._today())


class ReturnReceiptSerializer(serializers.Serializer):
    loan_id = serializers.IntegerField()
    fine_amount = serializers.DecimalField(max_digits=8, decimal_places=2)
    days_late = serializers.IntegerField()
