from django.core.management.base import BaseCommand, CommandError
from django.db import transaction
from fenceledger.core.cache_signals import suspend_cache_signals
from fenceledger.ledger.models import Transaction
from fenceledger.ledger.services import rebuild_party_balances


class Command(BaseCommand):
    help = 'Recomputes the running total of every transaction, per owner and party, in (date, id) order'

    def add_arguments(self, parser):
        parser.add_argument(
            '--party',
            type=int,
            help='Only rebuild ledgers of this party ID',
        )
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Perform a dry run without saving changes',
        )

    def handle(self, *args, **options):
        dry_run = options['dry_run']
        if dry_run:
            self.stdout.write(self.style.WARNING("DRY RUN MODE: No changes will be saved."))

        ledgers = Transaction.objects.filter(party__isnull=False)
        if options['party'] is not None:
            ledgers = ledgers.filter(party_id=options['party'])
            if not ledgers.exists():
                raise CommandError(f"No transactions found for party {options['party']}")
        pairs = list(ledgers.values_list('owner_id', 'party_id').distinct().order_by('party_id', 'owner_id'))
        self.stdout.write(f"Starting balance rebuild for {len(pairs)} ledgers...")

        fixed = 0
        with suspend_cache_signals(), transaction.atomic():
            for owner_id, party_id in pairs:
                before = dict(
                    Transaction.objects.filter(owner_id=owner_id, party_id=party_id).values_list('id', 'total')
                )
                closing = rebuild_party_balances(owner_id, party_id)
                after = dict(
                    Transaction.objects.filter(owner_id=owner_id, party_id=party_id).values_list('id', 'total')
                )
                changed = [pk for pk, total in after.items() if before.get(pk) != total]
                if changed:
                    fixed += len(changed)
                    self.stdout.write(self.style.SUCCESS(
                        f"  - Party {party_id} / owner {owner_id}: {len(changed)} totals corrected, closing {closing}"
                    ))
                else:
                    self.stdout.write(f"  - Party {party_id} / owner {owner_id}: balances correct, closing {closing}")

            if dry_run:
                self.stdout.write(self.style.WARNING(f"\nDry run complete. {fixed} totals would change. Rolling back changes."))
                transaction.set_rollback(True)
            else:
                self.stdout.write(self.style.SUCCESS(f"\nBalance rebuild complete: {fixed} totals corrected."))
