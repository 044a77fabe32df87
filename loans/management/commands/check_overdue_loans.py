import logging

from django.core.management.base import BaseCommand
from django.utils import timezone

from circulation.conf import CirculationPolicy
from circulation.engine import compute_fine
from loans.models import Loan

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = "List unreturned loans past their due date with the fine accrued so far"

    def add_arguments(self, parser):
        parser.add_argument(
            "--user-id",
            type=int,
            help="Only report loans of this user",
        )

    def handle(self, *args, **options):
        today = timezone.localdate()
        policy = CirculationPolicy.from_settings()

        overdue_loans = (
            Loan.objects.overdue(today)
            .select_related("book", "user")
            .order_by("due_date", "user__email")
        )
        if options["user_id"]:
            overdue_loans = overdue_loans.for_user(options["user_id"])

        overdue_count = overdue_loans.count()
        logger.info(f"Checking overdue loans for {today}. Found {overdue_count}.")

        if overdue_count == 0:
            self.stdout.write(self.style.SUCCESS("✅ No overdue loans found!"))
            return

        for loan in overdue_loans:
            days = loan.days_overdue(today)
            self.stdout.write(
                f"Loan {loan.id}: {loan.book.title} ({loan.book.isbn}) "
                f"borrowed by {loan.user.email}, due {loan.due_date:%Y-%m-%d}, "
                f"{days} day{'s' if days != 1 else ''} overdue, "
                f"fine so far {compute_fine(days, policy.fine_per_day)}"
            )

        self.stdout.write(
            self.style.WARNING(f"⚠️  {overdue_count} overdue loan(s) found.")
        )
