import os
import tempfile
import uuid
from datetime import datetime, timezone as dt_timezone
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.test import TestCase

from billing.models import Bill, BillItem
from stock.models import StockItem
from .backup import BackupError, export_data, export_filename, import_data, read_backup, write_backup
from .repository import ShopRepository, repository_for_username
from .serializers import as_number, to_millis


def add_item(repo, name, quantity=5, **prices):
    prices.setdefault('buying_price', Decimal('8'))
    prices.setdefault('profit', Decimal('2'))
    prices.setdefault('mrp', Decimal('10'))
    return repo.add_stock_item(name=name, quantity=quantity, **prices)


def add_bill(repo, item, qty=1, method='cash', when=None):
    line = BillItem(item_id=str(item.pk), name=item.name, mrp=item.mrp, quantity=qty, profit=item.profit)
    bill = Bill(total_amount=item.mrp * qty, total_profit=item.profit * qty,
                created_at=when or datetime(2024, 1, 1, 6, 30, tzinfo=dt_timezone.utc), payment_method=method)
    return repo.save_bill(bill, [line])


class RepositoryTests(TestCase):
    def setUp(self):
        User = get_user_model()
        self.alice = ShopRepository(User.objects.create_user(username='alice', password='p'))
        self.bob = ShopRepository(User.objects.create_user(username='bob', password='p'))
        self.apples = add_item(self.alice, 'Apples')
        self.bread = add_item(self.bob, 'Bread')

    def test_users_only_see_their_own_stock(self):
        self.assertEqual([i.name for i in self.alice.get_stock_items()], ['Apples'])
        self.assertEqual([i.name for i in self.bob.get_stock_items()], ['Bread'])
        with self.assertRaises(StockItem.DoesNotExist):
            self.alice.get_stock_item(self.bread.pk)
        with self.assertRaises(StockItem.DoesNotExist):
            self.alice.get_stock_item('not-an-id')

    def test_new_items_start_unsold(self):
        item = self.alice.add_stock_item(name='Tea', buying_price=Decimal('1'), profit=Decimal('1'),
                                         mrp=Decimal('2'), sales_count=40)
        self.assertEqual(item.sales_count, 0)

    def test_update_and_delete_are_scoped(self):
        self.bread.quantity = 99
        self.alice.update_stock_item(self.bread)
        self.alice.delete_stock_item(self.bread.pk)
        self.bread.refresh_from_db()
        self.assertEqual(self.bread.quantity, 5)

        self.apples.quantity = 7
        self.alice.update_stock_item(self.apples)
        self.apples.refresh_from_db()
        self.assertEqual(self.apples.quantity, 7)
        self.alice.delete_stock_item(self.apples.pk)
        self.assertEqual(self.alice.get_stock_items(), [])

    def test_stock_items_by_id(self):
        found = self.alice.stock_items_by_id([str(self.apples.pk), str(self.bread.pk), 'junk'])
        self.assertEqual(list(found), [str(self.apples.pk)])

    def test_bills_are_scoped_and_newest_first(self):
        old = add_bill(self.alice, self.apples, when=datetime(2024, 1, 1, tzinfo=dt_timezone.utc))
        new = add_bill(self.alice, self.apples, when=datetime(2024, 1, 2, tzinfo=dt_timezone.utc))
        theirs = add_bill(self.bob, self.bread)
        self.assertEqual([b.pk for b in self.alice.get_bills()], [new.pk, old.pk])
        self.assertEqual(self.alice.get_bill(old.pk).items.count(), 1)
        with self.assertRaises(Bill.DoesNotExist):
            self.alice.get_bill(theirs.pk)
        self.assertTrue(self.alice.bill_id_taken(theirs.pk))
        self.assertFalse(self.alice.bill_id_taken(uuid.uuid4()))

    def test_bills_between(self):
        add_bill(self.alice, self.apples, when=datetime(2024, 1, 1, tzinfo=dt_timezone.utc))
        inside = add_bill(self.alice, self.apples, when=datetime(2024, 1, 5, tzinfo=dt_timezone.utc))
        found = self.alice.get_bills_between(datetime(2024, 1, 3, tzinfo=dt_timezone.utc),
                                             datetime(2024, 1, 6, tzinfo=dt_timezone.utc))
        self.assertEqual([b.pk for b in found], [inside.pk])

    def test_clear_only_touches_own_rows(self):
        add_bill(self.alice, self.apples)
        add_bill(self.bob, self.bread)
        self.alice.clear()
        self.assertEqual(self.alice.get_stock_items(), [])
        self.assertEqual(self.alice.get_bills(), [])
        self.assertEqual(len(self.bob.get_stock_items()), 1)
        self.assertEqual(len(self.bob.get_bills()), 1)

    def test_repository_for_username(self):
        self.assertEqual(repository_for_username('bob').user, self.bob.user)
        with self.assertRaises(get_user_model().DoesNotExist):
            repository_for_username('carol')


class SerializerTests(TestCase):
    def test_as_number(self):
        self.assertEqual(as_number(Decimal('80.00')), 80)
        self.assertIsInstance(as_number(Decimal('80.00')), int)
        self.assertEqual(as_number(Decimal('12.50')), 12.5)
        self.assertEqual(as_number(None), 0)

    def test_to_millis(self):
        self.assertEqual(to_millis(datetime(2024, 1, 1, tzinfo=dt_timezone.utc)), 1704067200000)


class BackupTests(TestCase):
    def setUp(self):
        User = get_user_model()
        self.user = User.objects.create_user(username='shop', password='p')
        self.repo = ShopRepository(self.user)

    def test_export_shape(self):
        item = add_item(self.repo, 'Apples', category='Fruits')
        bill = add_bill(self.repo, item, qty=2, method='qr')
        now = datetime(2024, 2, 1, 10, 0, tzinfo=dt_timezone.utc)
        data = export_data(self.repo, now=now)

        self.assertEqual(data['user'], 'shop')
        self.assertEqual(data['exportedAt'], now.isoformat())
        self.assertEqual(data['stock'], [{
            'id': str(item.pk), 'name': 'Apples', 'category': 'Fruits', 'buyingPrice': 8, 'profit': 2, 'mrp': 10,
            'imageUrl': '', 'salesCount': 0, 'quantity': 5,
        }])
        self.assertEqual(data['bills'], [{
            'id': str(bill.pk),
            'items': [{'itemId': str(item.pk), 'name': 'Apples', 'mrp': 10, 'quantity': 2, 'profit': 2}],
            'totalAmount': 20,
            'totalProfit': 4,
            'createdAt': to_millis(bill.created_at),
            'paymentMethod': 'qr',
        }])

    def test_export_filename_uses_local_date(self):
        # 20:00 UTC is past midnight in the default time zone
        self.assertEqual(export_filename(datetime(2024, 3, 9, 20, 0, tzinfo=dt_timezone.utc)),
                         'inventory_backup_2024-03-10.json')

    def test_import_document_with_plain_ids(self):
        doc = {
            'user': 'someone',
            'stock': [
                {'id': '1', 'name': 'Organic Apples', 'category': 'Fruits', 'buyingPrice': 80, 'profit': 20,
                 'mrp': 100, 'imageUrl': '', 'salesCount': 3, 'quantity': 47},
            ],
            'bills': [
                {'id': 'bill-1', 'items': [{'itemId': '1', 'name': 'Organic Apples', 'mrp': 100, 'quantity': 3, 'profit': 20}],
                 'totalAmount': 300, 'totalProfit': 60, 'createdAt': 1704067200000, 'paymentMethod': 'cash'},
            ],
            'exportedAt': '2024-01-02T00:00:00Z',
        }
        self.assertEqual(import_data(self.repo, doc), (1, 1))
        item = self.repo.get_stock_items()[0]
        self.assertEqual(item.sales_count, 3)
        self.assertEqual(item.mrp, Decimal('100'))
        bill = self.repo.get_bills()[0]
        self.assertEqual(bill.total_profit, Decimal('60'))
        self.assertEqual(bill.created_at, datetime(2024, 1, 1, tzinfo=dt_timezone.utc))
        self.assertEqual(bill.items.get().item_id, str(item.pk))

        # importing again updates stock and skips known bills
        doc['stock'][0]['quantity'] = 40
        self.assertEqual(import_data(self.repo, doc), (1, 0))
        item.refresh_from_db()
        self.assertEqual(item.quantity, 40)
        self.assertEqual(Bill.objects.count(), 1)

    def test_import_computes_missing_totals(self):
        doc = {'stock': [], 'bills': [{
            'id': 'b', 'items': [{'itemId': 'x', 'name': 'X', 'mrp': '2.50', 'quantity': 4, 'profit': '0.50'}],
            'createdAt': '2024-01-01T10:00:00+00:00', 'paymentMethod': 'qr',
        }]}
        import_data(self.repo, doc)
        bill = self.repo.get_bills()[0]
        self.assertEqual(bill.total_amount, Decimal('10'))
        self.assertEqual(bill.total_profit, Decimal('2'))

    def test_import_replace(self):
        add_item(self.repo, 'Old stock')
        import_data(self.repo, {'stock': [{'id': 'n', 'name': 'New stock'}], 'bills': []}, replace=True)
        self.assertEqual([i.name for i in self.repo.get_stock_items()], ['New stock'])

    def test_bad_documents(self):
        with self.assertRaises(BackupError):
            import_data(self.repo, ['not', 'a', 'dict'])
        with self.assertRaises(BackupError):
            import_data(self.repo, {'stock': {}, 'bills': []})
        with self.assertRaises(BackupError):
            import_data(self.repo, {'stock': [{'id': '1'}], 'bills': []})
        with self.assertRaises(BackupError):
            import_data(self.repo, {'stock': [{'id': '1', 'name': 'A', 'mrp': 'lots'}], 'bills': []})
        for quantity in ('lots', -2, 1.5, True):
            with self.assertRaises(BackupError):
                import_data(self.repo, {'stock': [{'id': '1', 'name': 'A', 'quantity': quantity}], 'bills': []})
        with self.assertRaises(BackupError):
            import_data(self.repo, {'stock': [{'id': '1', 'name': 'A', 'salesCount': 'many'}], 'bills': []})
        with self.assertRaises(BackupError):
            import_data(self.repo, {'stock': [{'id': '1', 'name': 'A', 'mrp': 1e20}], 'bills': []})
        bad_line = {'itemId': '1', 'name': 'A', 'mrp': 1, 'quantity': -3, 'profit': 1}
        with self.assertRaises(BackupError):
            import_data(self.repo, {'stock': [], 'bills': [
                {'id': 'b', 'items': [bad_line], 'createdAt': 0, 'paymentMethod': 'cash'},
            ]})
        with self.assertRaises(BackupError):
            import_data(self.repo, {'stock': [], 'bills': [
                {'id': 'b', 'items': [], 'createdAt': 1e30, 'paymentMethod': 'cash'},
            ]})
        self.assertEqual(StockItem.objects.count(), 0)
        self.assertEqual(Bill.objects.count(), 0)

    def test_bad_bill_rolls_back_whole_import(self):
        doc = {
            'stock': [{'id': '1', 'name': 'A', 'mrp': 1}],
            'bills': [{'id': 'b', 'items': [], 'createdAt': 0, 'paymentMethod': 'card'}],
        }
        with self.assertRaises(BackupError):
            import_data(self.repo, doc)
        self.assertEqual(StockItem.objects.count(), 0)

    def test_write_and_read_backup(self):
        add_item(self.repo, 'Apples')
        data = export_data(self.repo)
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, 'nested', 'backup.json')
            write_backup(data, path)
            self.assertFalse(os.path.exists(path + '.tmp'))
            self.assertEqual(read_backup(path), data)

            broken = os.path.join(tmp, 'broken.json')
            with open(broken, 'w') as f:
                f.write('{')
            with self.assertRaises(BackupError):
                read_backup(broken)
