import json

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand, CommandError

from core.backup import export_data, export_filename, write_backup
from core.repository import repository_for_username


class Command(BaseCommand):
    help = 'Export a user\'s stock and bills as a JSON backup document. Use --output - to print it.'

    def add_arguments(self, parser):
        parser.add_argument('username')
        parser.add_argument('--output', help='File to write (default: inventory_backup_<date>.json)')

    def handle(self, *args, **options):
        try:
            repo = repository_for_username(options['username'])
        except get_user_model().DoesNotExist:
            raise CommandError(f'User "{options["username"]}" does not exist')

        data = export_data(repo)
        output = options.get('output') or export_filename()
        if output == '-':
            self.stdout.write(json.dumps(data, indent=2, ensure_ascii=False))
            return
        write_backup(data, output)
        self.stdout.write(f'Exported {len(data["stock"])} stock items and {len(data["bills"])} bills to {output}')
