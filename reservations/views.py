from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from circulation.engine import Actor, CirculationEngine
from circulation.queries import ReservationFilter
from reservations.models import Reservation
from reservations.permissions import IsOwnerOrStaff, IsStaffForFullList
from reservations.serializers import (
    ReservationCreateSerializer,
    ReservationSerializer,
    ReservationTicketSerializer,
)
from users.authentication import AuthorizeHeaderJWTAuthentication


class ReservationViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    authentication_classes = [AuthorizeHeaderJWTAuthentication]
    permission_classes = [IsAuthenticated, IsOwnerOrStaff, IsStaffForFullList]
    serializer_class = ReservationSerializer

    def get_engine(self):
        return CirculationEngine()

    def get_queryset(self):
        queryset = Reservation.objects.select_related("book", "user").with_queue_position()

        if not self.request.user.is_staff:
            queryset = queryset.filter(user=self.request.user)

        if self.action == "list":
            queryset = ReservationFilter.from_query_params(
                self.request.query_params
            ).apply(queryset)
        return queryset.order_by("book_id", "reserved_at", "id")

    def create(self, request, *args, **kwargs):
        serializer = ReservationCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        ticket = self.get_engine().reserve(
            user_id=request.user.id,
            book_id=serializer.validated_data["book_id"],
        )
        return Response(
            ReservationTicketSerializer(ticket).data, status=status.HTTP_201_CREATED
        )

    def destroy(self, request, pk=None):
        """Cancel a reservation; the row is kept with status `cancelled`."""
        reservation = self.get_object()
        cancelled = self.get_engine().cancel_reservation(
            reservation.pk, actor=Actor.from_user(request.user)
        )
        return Response(
            {"id": cancelled.id, "status": cancelled.status}, status=status.HTTP_200_OK
        )

    @action(detail=False, methods=["get"], url_path="my-reservations")
    def my_reservations(self, request):
        queryset = (
            Reservation.objects.select_related("book", "user")
            .with_queue_position()
            .filter(user=request.user)
            .order_by("-reserved_at", "-id")
        )
        return Response(ReservationSerializer(queryset, many=True).data)
