import random

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand, CommandError

from stock.sample_data import seed_sample_data


class Command(BaseCommand):
    help = 'Give a user the demo stock catalogue (only if they have no stock) and optional random bills from the last five days.'

    def add_arguments(self, parser):
        parser.add_argument('username')
        parser.add_argument('--bills', type=int, default=0, help='Number of random bills to create')
        parser.add_argument('--seed', type=int, help='Random seed for reproducible bills')

    def handle(self, *args, **options):
        User = get_user_model()
        try:
            user = User.objects.get(username=options['username'])
        except User.DoesNotExist:
            raise CommandError(f'User "{options["username"]}" does not exist')
        if options['bills'] < 0:
            raise CommandError('--bills must not be negative')

        rng = random.Random(options.get('seed'))
        items, bills = seed_sample_data(user, bills=options['bills'], rng=rng)
        self.stdout.write(f'Seeded {items} stock items and {bills} bills.')
