from rest_framework import serializers

from reservations.models import Reservation


class ReservationCreateSerializer(serializers.Serializer):
    book_id = serializers.IntegerField(min_value=1)


class ReservationSerializer(serializers.ModelSerializer):
    book_title = serializers.CharField(source="book.title", read_only=True)
    isbn = serializers.CharField(source="book.isbn", read_only=True)
    user_email = serializers.CharField(source="user.email", read_only=True)
    queue_position = serializers.SerializerMethodField()

    class Meta:
        model = Reservation
        fields = [
            "id",
            "user_id",
            "user_email",
            "book_id",
            "book_title",
            "isbn",
            "reserved_at",
            "status",
            "queue_position",
        ]

    def get_queue_position(self, obj):
        # Only queued reservations have a place in line
        if not obj.is_active:
            return None
        return getattr(obj, "queue_position", None)


class ReservationTicketSerializer(serializers.Serializer):
    reservation_id = serializers.IntegerField()
    queue_position = serializers.IntegerField()
