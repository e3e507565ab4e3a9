from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand, CommandError

from core.repository import repository_for_username
from profit.aggregation import daily_profits


class Command(BaseCommand):
    help = 'Print a user\'s daily profit history (newest first) with the per-item breakdown.'

    def add_arguments(self, parser):
        parser.add_argument('username')
        parser.add_argument('--days', type=int, default=0, help='Only the N most recent days with sales')

    def handle(self, *args, **options):
        try:
            repo = repository_for_username(options['username'])
        except get_user_model().DoesNotExist:
            raise CommandError(f'User "{options["username"]}" does not exist')

        days = daily_profits(repo.get_bills())
        if options['days'] > 0:
            days = days[:options['days']]
        if not days:
            self.stdout.write('No profit data available yet.')
            return

        self.stdout.write('*** Daily Profit ***')
        for day in days:
            self.stdout.write(f'\n{day.date}: Rs {day.total_profit} (Cash Rs {day.cash_profit}, QR Rs {day.qr_profit})')
            for it in day.items_by_profit():
                self.stdout.write(f'  {it.name} x{it.quantity}: Rs {it.total_profit} (Cash Rs {it.cash_profit}, QR Rs {it.qr_profit})')
        total = sum(d.total_profit for d in days)
        self.stdout.write(f'\nTotal profit: Rs {total}')
