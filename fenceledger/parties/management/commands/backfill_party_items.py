from decimal import Decimal
from django.core.management.base import BaseCommand
from django.db import transaction
from fenceledger.parties.models import Party, PartyItem


class Command(BaseCommand):
    help = 'Gives every party without catalog items a default item so it satisfies the non-empty items rule'

    def add_arguments(self, parser):
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Perform a dry run without saving changes',
        )
        parser.add_argument(
            '--item-name',
            default='Default Item',
            help='Name of the placeholder item (default: "Default Item")',
        )

    def handle(self, *args, **options):
        dry_run = options['dry_run']
        item_name = options['item_name']
        if dry_run:
            self.stdout.write(self.style.WARNING("DRY RUN MODE: No changes will be saved."))

        parties = Party.objects.filter(items__isnull=True).order_by('id')
        count = parties.count()
        self.stdout.write(f"Found {count} parties without items")
        if count == 0:
            self.stdout.write(self.style.SUCCESS("No parties need migration. All parties have items."))
            return

        with transaction.atomic():
            for party in parties:
                PartyItem.objects.create(party=party, item_name=item_name, item_price=Decimal('0.00'))
                self.stdout.write(f"  - Added '{item_name}' to: {party.name} (ID: {party.id})")

            if dry_run:
                self.stdout.write(self.style.WARNING("\nDry run complete. Rolling back changes."))
                transaction.set_rollback(True)
            else:
                self.stdout.write(self.style.SUCCESS("\nBackfill complete. Update these parties with their real items."))
