from rest_framework import serializers

from books.models import Book


class BookSerializer(serializers.ModelSerializer):
    copies_in_circulation = serializers.IntegerField(read_only=True)

    class Meta:
        model = Book
        fields = [
            "id",
            "title",
            "author",
            "isbn",
            "total_copies",
            "available_copies",
            "copies_in_circulation",
        ]
        read_only_fields = ["available_copies"]

    def create(self, validated_data):
        # A new title starts with every copy on the shelf
        validated_data["available_copies"] = validated_data.get("total_copies", 1)
        return super().create(validated_data)

    def update(self, instance, validated_data):
        # Only the submitted columns; available_copies belongs to the engine
        for attr, value in validated_data.items():
            setattr(instance, attr, value)
        if validated_data:
            instance.save(update_fields=list(validated_data))
        return instance
