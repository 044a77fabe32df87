from rest_framework import generics
from rest_framework.permissions import IsAuthenticated

from users.authentication import AuthorizeHeaderJWTAuthentication
from users.serializers import ActorSerializer


class ManageUserView(generics.RetrieveAPIView):
    serializer_class = ActorSerializer
    authentication_classes = (AuthorizeHeaderJWTAuthentication,)
    permission_classes = (IsAuthenticated,)

    def get_object(self):
        return self.request.user
