from django.db import transaction
from django.db.models import ProtectedError
from rest_framework import viewsets

from books.models import Book
from books.permissions import IsLibrarianOrReadOnly
from books.serializers import BookSerializer
from circulation.engine import CirculationEngine
from circulation.exceptions import Conflict


class BookViewSet(viewsets.ModelViewSet):
    queryset = Book.objects.all()
    serializer_class = BookSerializer
    permission_classes = [IsLibrarianOrReadOnly]

    @transaction.atomic
    def perform_update(self, serializer):
        """Copy counts go through the engine so copies on loan are preserved"""
        total_copies = serializer.validated_data.pop("total_copies", None)
        book = serializer.save()
        book.refresh_from_db(fields=["total_copies", "available_copies"])
        if total_copies is not None and total_copies != book.total_copies:
            serializer.instance = CirculationEngine().change_total_copies(
                book.pk, total_copies
            )

    def perform_destroy(self, instance):
        try:
            instance.delete()
        except ProtectedError:
            raise Conflict("book has loan or reservation history", code="book_in_use")
