from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand, CommandError
from django.db import transaction

from core.backup import BackupError, import_data, read_backup
from core.repository import repository_for_username


class Command(BaseCommand):
    help = ('Import a JSON backup into a user\'s stock and bills for manual reconciliation. '
            'Stock rows are upserted by id, bills already present are skipped.')

    def add_arguments(self, parser):
        parser.add_argument('username')
        parser.add_argument('path')
        parser.add_argument('--replace', action='store_true', help='Delete the user\'s stock and bills first')
        parser.add_argument('--dry-run', action='store_true', help='Report what would be imported and roll back')

    def handle(self, *args, **options):
        try:
            repo = repository_for_username(options['username'])
        except get_user_model().DoesNotExist:
            raise CommandError(f'User "{options["username"]}" does not exist')

        try:
            data = read_backup(options['path'])
        except OSError as exc:
            raise CommandError(f'Cannot read {options["path"]}: {exc}')
        except BackupError as exc:
            raise CommandError(str(exc))

        dry_run = options.get('dry_run')
        try:
            with transaction.atomic():
                stock_count, bill_count = import_data(repo, data, replace=options.get('replace'))
                if dry_run:
                    transaction.set_rollback(True)
        except BackupError as exc:
            raise CommandError(str(exc))

        if dry_run:
            self.stdout.write(f'Dry-run: would write {stock_count} stock items and add {bill_count} bills.')
            return
        self.stdout.write(f'Imported {stock_count} stock items and {bill_count} new bills.')
