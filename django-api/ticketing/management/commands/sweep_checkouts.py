from django.core.management.base import BaseCommand

from ticketing import wiring


class Command(BaseCommand):
    help = "Expire overdue pending orders and release lapsed seat holds."

    def handle(self, *args, **options):
        result = wiring.settlement_service().expire_stale_orders()
        self.stdout.write(
            f"Expired {result.expired_orders} order(s), "
            f"released {result.released_holds} lapsed hold(s)."
        )
