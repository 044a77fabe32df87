from dataclasses import replace

from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from circulation.engine import Actor, CirculationEngine
from circulation.queries import LoanFilter
from loans.models import Loan
from loans.permissions import IsOwnerOrStaff
from loans.serializers import (
    LoanCreateSerializer,
    LoanSerializer,
    ReturnReceiptSerializer,
)
from users.authentication import AuthorizeHeaderJWTAuthentication


class LoanViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    """Borrow and return books; loans are never edited or deleted directly."""

    authentication_classes = [AuthorizeHeaderJWTAuthentication]
    permission_classes = [IsAuthenticated, IsOwnerOrStaff]
    serializer_class = LoanSerializer

    def get_engine(self):
        return CirculationEngine()

    def get_queryset(self):
        queryset = Loan.objects.select_related("book", "user")

        # Members only ever see their own loans
        if not self.request.user.is_staff:
            queryset = queryset.filter(user=self.request.user)

        if self.action == "list":
            queryset = LoanFilter.from_query_params(self.request.query_params).apply(
                queryset
            )
        return queryset.order_by("-borrow_date", "-id")

    def create(self, request, *args, **kwargs):
        serializer = LoanCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        loan = self.get_engine().borrow(
            user_id=request.user.id,
            book_id=serializer.validated_data["book_id"],
        )
        loan = Loan.objects.select_related("book", "user").get(pk=loan.pk)
        return Response(LoanSerializer(loan).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["post"], url_path="return")
    def return_book(self, request, pk=None):
        # 404 for loans the member cannot see, before touching the engine
        loan = self.get_object()

        receipt = self.get_engine().return_loan(
            loan.pk, actor=Actor.from_user(request.user)
        )
        return Response(ReturnReceiptSerializer(receipt).data, status=status.HTTP_200_OK)

    @action(detail=False, methods=["get"], url_path="my-loans")
    def my_loans(self, request):
        queryset = Loan.objects.select_related("book", "user").filter(user=request.user)
        # user_id is always the caller here
        loan_filter = replace(
            LoanFilter.from_query_params(request.query_params), user_id=None
        )
        queryset = loan_filter.apply(queryset)
        return Response(LoanSerializer(queryset, many=True).data)
