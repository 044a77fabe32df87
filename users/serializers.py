from django.contrib.auth import get_user_model
from rest_framework import serializers


class ActorSerializer(serializers.ModelSerializer):
    """Identity and role the circulation endpoints act on behalf of"""

    full_name = serializers.CharField(read_only=True)

    class Meta:
        model = get_user_model()
        fields = ["id", "username", "email", "full_name", "role", "is_staff"]
        read_only_fields = fields
