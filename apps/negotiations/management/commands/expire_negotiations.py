from django.core.management.base import BaseCommand, CommandError

from apps.negotiations.services import build_negotiation_service


class Command(BaseCommand):
    help = "Expire pending and counter-offered negotiations whose expiry has passed."

    def handle(self, *args, **options):
        self.stdout.write("Expiring stale negotiations…")
        result = build_negotiation_service().auto_expire_negotiations()
        if not result.success:
            raise CommandError(f"Expiry sweep failed: {result.error.detail}")
        self.stdout.write(
            self.style.SUCCESS(f"Expired {result.data['expired_count']} negotiations.")
        )
