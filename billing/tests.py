import json
import os
import tempfile
import uuid
from decimal import Decimal
from io import StringIO
from unittest import mock

from django.contrib.auth import get_user_model
from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import TestCase
from django.urls import reverse

from core.repository import ShopRepository
from stock.models import StockItem
from . import cart as cart_ops
from .models import Bill, BillItem
from .utils import cart_totals, commit_bill


class CommitBillTests(TestCase):
    def setUp(self):
        User = get_user_model()
        self.user = User.objects.create_user(username='u', password='p')
        self.repo = ShopRepository(self.user)
        self.soap = self.repo.add_stock_item(name='Soap', buying_price=Decimal('8'), profit=Decimal('2'), mrp=Decimal('10'), quantity=5)
        self.rice = self.repo.add_stock_item(name='Rice', buying_price=Decimal('45'), profit=Decimal('5.50'), mrp=Decimal('50.50'), quantity=2)

    def _cart(self, *pairs):
        return {str(item.id): cart_ops.snapshot(item, qty) for item, qty in pairs}

    def test_creates_bill_and_reduces_stock(self):
        bill = commit_bill(self.user, self._cart((self.soap, 3)), 'cash')
        self.assertIsInstance(bill, Bill)
        self.assertEqual(bill.owner, self.user)
        self.assertEqual(bill.items.count(), 1)
        self.assertEqual(bill.total_amount, Decimal('30'))
        self.assertEqual(bill.total_profit, Decimal('6'))
        self.soap.refresh_from_db()
        self.assertEqual(self.soap.quantity, 2)
        self.assertEqual(self.soap.sales_count, 3)

    def test_oversell_clamps_to_zero(self):
        commit_bill(self.user, self._cart((self.rice, 3)), 'qr')
        self.rice.refresh_from_db()
        self.assertEqual(self.rice.quantity, 0)
        self.assertEqual(self.rice.sales_count, 3)

    def test_totals_over_several_lines(self):
        bill = commit_bill(self.user, self._cart((self.soap, 2), (self.rice, 1)), 'qr')
        self.assertEqual(bill.total_amount, Decimal('70.50'))
        self.assertEqual(bill.total_profit, Decimal('9.50'))
        self.assertEqual(bill.payment_method, Bill.QR)

    def test_accepts_list_of_lines(self):
        bill = commit_bill(self.user, [cart_ops.snapshot(self.soap, 1)], 'cash')
        self.assertEqual(bill.total_amount, Decimal('10'))

    def test_empty_cart_raises(self):
        with self.assertRaises(ValueError):
            commit_bill(self.user, {}, 'cash')
        with self.assertRaises(ValueError):
            commit_bill(self.user, [], 'cash')
        self.assertEqual(Bill.objects.count(), 0)

    def test_unknown_payment_method_raises(self):
        with self.assertRaises(ValueError):
            commit_bill(self.user, self._cart((self.soap, 1)), 'card')
        self.soap.refresh_from_db()
        self.assertEqual(self.soap.quantity, 5)

    def test_missing_item_is_billed_without_stock_change(self):
        gone = {'itemId': str(uuid.uuid4()), 'name': 'Ghost', 'mrp': '5', 'quantity': 1, 'profit': '1'}
        bill = commit_bill(self.user, [gone, cart_ops.snapshot(self.soap, 1)], 'cash')
        self.assertEqual(bill.items.count(), 2)
        self.soap.refresh_from_db()
        self.assertEqual(self.soap.quantity, 4)

    def test_other_users_stock_is_untouched(self):
        other = get_user_model().objects.create_user(username='other', password='x')
        theirs = ShopRepository(other).add_stock_item(name='Soap', buying_price=Decimal('8'), profit=Decimal('2'), mrp=Decimal('10'), quantity=5)
        commit_bill(self.user, [cart_ops.snapshot(theirs, 2)], 'cash')
        theirs.refresh_from_db()
        self.assertEqual(theirs.quantity, 5)
        self.assertEqual(theirs.sales_count, 0)

    def test_bill_lines_are_snapshots(self):
        bill = commit_bill(self.user, self._cart((self.soap, 1)), 'cash')
        self.soap.mrp = Decimal('99')
        self.soap.name = 'Fancy Soap'
        self.soap.save()
        line = BillItem.objects.get(bill=bill)
        self.assertEqual(line.mrp, Decimal('10'))
        self.assertEqual(line.name, 'Soap')
        self.assertEqual(line.item_id, str(self.soap.id))

    def test_created_at_is_kept(self):
        when = self.soap.created_at.replace(year=2023)
        bill = commit_bill(self.user, self._cart((self.soap, 1)), 'cash', created_at=when)
        bill.refresh_from_db()
        self.assertEqual(bill.created_at, when)

    def test_failed_stock_update_rolls_back_bill(self):
        with mock.patch.object(ShopRepository, 'update_stock_item', side_effect=RuntimeError('disk full')):
            with self.assertRaises(RuntimeError):
                commit_bill(self.user, self._cart((self.soap, 1)), 'cash')
        self.assertEqual(Bill.objects.count(), 0)
        self.assertEqual(BillItem.objects.count(), 0)

    def test_cart_totals_round_unit_prices_first(self):
        lines = [{'mrp': '0.335', 'profit': '0.105', 'quantity': 3}]
        self.assertEqual(cart_totals(lines), (Decimal('1.02'), Decimal('0.33')))

    def test_bill_totals_match_stored_lines(self):
        line = {'itemId': 'x', 'name': 'Loose sugar', 'mrp': '1.005', 'quantity': 3, 'profit': '1.005'}
        bill = commit_bill(self.user, [line], 'cash')
        bill.refresh_from_db()
        stored = list(bill.items.all())
        self.assertEqual(bill.total_amount, sum(l.line_total for l in stored))
        self.assertEqual(bill.total_profit, sum(l.line_profit for l in stored))
        self.assertEqual(bill.total_profit, Decimal('3.03'))


class CartTests(TestCase):
    def setUp(self):
        User = get_user_model()
        self.user = User.objects.create_user(username='u', password='p')
        self.item = ShopRepository(self.user).add_stock_item(
            name='Soap', buying_price=Decimal('8'), profit=Decimal('2'), mrp=Decimal('10'), quantity=5)

    def test_add_accumulates(self):
        cart = {}
        cart_ops.add_item(cart, self.item, 2)
        cart_ops.add_item(cart, self.item, 1)
        self.assertEqual(cart[str(self.item.id)]['quantity'], 3)
        self.assertEqual(Decimal(cart[str(self.item.id)]['mrp']), Decimal('10'))

    def test_add_beyond_stock_raises(self):
        cart = {}
        cart_ops.add_item(cart, self.item, 4)
        with self.assertRaisesMessage(ValueError, 'Only 5 in stock'):
            cart_ops.add_item(cart, self.item, 2)
        self.assertEqual(cart[str(self.item.id)]['quantity'], 4)

    def test_add_non_positive_raises(self):
        with self.assertRaises(ValueError):
            cart_ops.add_item({}, self.item, 0)

    def test_set_quantity_zero_removes(self):
        cart = {}
        cart_ops.add_item(cart, self.item, 2)
        cart_ops.set_quantity(cart, self.item, 0)
        self.assertEqual(cart, {})

    def test_remove_item(self):
        cart = {}
        cart_ops.add_item(cart, self.item, 1)
        self.assertTrue(cart_ops.remove_item(cart, self.item.id))
        self.assertFalse(cart_ops.remove_item(cart, self.item.id))


class BillingViewTests(TestCase):
    def setUp(self):
        User = get_user_model()
        self.user = User.objects.create_user(username='tester', password='pass1234')
        self.client.login(username='tester', password='pass1234')
        self.repo = ShopRepository(self.user)
        self.item = self.repo.add_stock_item(name='Tyre', buying_price=Decimal('800'), profit=Decimal('200'), mrp=Decimal('1000'), quantity=5)

    def _add(self, item, qty):
        return self.client.post(reverse('billing:add_to_cart', args=[item.id]), {'quantity': qty})

    def test_add_to_cart(self):
        resp = self._add(self.item, 2)
        self.assertEqual(resp.status_code, 200)
        data = resp.json()
        self.assertEqual(data['totalAmount'], 2000)
        self.assertEqual(data['totalProfit'], 400)
        self.assertEqual(data['items'][0]['itemId'], str(self.item.id))

    def test_add_more_than_stock(self):
        resp = self._add(self.item, 9)
        self.assertEqual(resp.status_code, 400)
        self.assertIn('Only 5 in stock', resp.json()['error'])

    def test_add_bad_quantity(self):
        resp = self._add(self.item, 'two')
        self.assertEqual(resp.status_code, 400)

    def test_add_rejects_fractional_and_boolean_quantities(self):
        url = reverse('billing:add_to_cart', args=[self.item.id])
        for qty in (1.5, True):
            resp = self.client.post(url, data=json.dumps({'quantity': qty}), content_type='application/json')
            self.assertEqual(resp.status_code, 400, qty)
        self.assertEqual(self.client.get(reverse('billing:cart_view')).json()['items'], [])
        resp = self.client.post(url, data=json.dumps({'quantity': 2.0}), content_type='application/json')
        self.assertEqual(resp.json()['items'][0]['quantity'], 2)

    def test_add_other_users_item(self):
        other = get_user_model().objects.create_user(username='other', password='x')
        theirs = ShopRepository(other).add_stock_item(name='X', buying_price=Decimal('1'), profit=Decimal('1'), mrp=Decimal('2'), quantity=3)
        self.assertEqual(self._add(theirs, 1).status_code, 404)

    def test_update_and_remove(self):
        self._add(self.item, 2)
        resp = self.client.post(reverse('billing:update_cart'), {f'qty_{self.item.id}': '4'})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()['items'][0]['quantity'], 4)

        resp = self.client.post(reverse('billing:update_cart'), {f'qty_{self.item.id}': '6'})
        self.assertEqual(resp.status_code, 400)
        self.assertIn(str(self.item.id), resp.json()['errors'])

        resp = self.client.post(reverse('billing:remove_from_cart', args=[self.item.id]))
        self.assertEqual(resp.json()['items'], [])
        resp = self.client.post(reverse('billing:remove_from_cart', args=[self.item.id]))
        self.assertEqual(resp.status_code, 404)

    def test_checkout(self):
        self._add(self.item, 2)
        resp = self.client.post(reverse('billing:checkout'), {'payment_method': 'qr'})
        self.assertEqual(resp.status_code, 201)
        bill = resp.json()
        self.assertEqual(bill['totalAmount'], 2000)
        self.assertEqual(bill['paymentMethod'], 'qr')
        self.assertIsInstance(bill['createdAt'], int)

        self.item.refresh_from_db()
        self.assertEqual(self.item.quantity, 3)
        self.assertEqual(self.item.sales_count, 2)
        self.assertEqual(self.client.get(reverse('billing:cart_view')).json()['items'], [])

    def test_checkout_json_body(self):
        self._add(self.item, 1)
        resp = self.client.post(reverse('billing:checkout'), data=json.dumps({'payment_method': 'cash'}),
                                content_type='application/json')
        self.assertEqual(resp.status_code, 201)

    def test_checkout_empty_cart(self):
        resp = self.client.post(reverse('billing:checkout'), {'payment_method': 'cash'})
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(Bill.objects.count(), 0)

    def test_checkout_bad_method_keeps_cart(self):
        self._add(self.item, 1)
        resp = self.client.post(reverse('billing:checkout'), {'payment_method': 'card'})
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(len(self.client.get(reverse('billing:cart_view')).json()['items']), 1)

    def test_bill_list_and_detail(self):
        cash = commit_bill(self.user, [cart_ops.snapshot(self.item, 1)], 'cash')
        commit_bill(self.user, [cart_ops.snapshot(self.item, 1)], 'qr')
        other = get_user_model().objects.create_user(username='other', password='x')
        theirs = commit_bill(other, [{'itemId': 'x', 'name': 'X', 'mrp': '1', 'quantity': 1, 'profit': '1'}], 'cash')

        data = self.client.get(reverse('billing:bill_list')).json()
        self.assertEqual(data['count'], 2)
        data = self.client.get(reverse('billing:bill_list') + '?payment=cash').json()
        self.assertEqual([b['id'] for b in data['bills']], [str(cash.id)])

        resp = self.client.get(reverse('billing:bill_detail', args=[cash.id]))
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()['items'][0]['name'], 'Tyre')
        resp = self.client.get(reverse('billing:bill_detail', args=[theirs.id]))
        self.assertEqual(resp.status_code, 404)

    def test_export(self):
        commit_bill(self.user, [cart_ops.snapshot(self.item, 1)], 'cash')
        resp = self.client.get(reverse('billing:export'))
        self.assertEqual(resp.status_code, 200)
        self.assertIn('attachment; filename="inventory_backup_', resp['Content-Disposition'])
        data = json.loads(resp.content)
        self.assertEqual(set(data), {'user', 'stock', 'bills', 'exportedAt'})
        self.assertEqual(data['user'], 'tester')
        self.assertEqual(data['stock'][0]['quantity'], 4)
        self.assertEqual(len(data['bills']), 1)


class BackupCommandTests(TestCase):
    def setUp(self):
        User = get_user_model()
        self.user = User.objects.create_user(username='shop', password='p')
        self.other = User.objects.create_user(username='branch', password='p')
        repo = ShopRepository(self.user)
        self.item = repo.add_stock_item(name='Tea', buying_price=Decimal('90'), profit=Decimal('10'), mrp=Decimal('100'), quantity=8)
        commit_bill(self.user, [cart_ops.snapshot(self.item, 2)], 'qr')
        self.tmp = tempfile.TemporaryDirectory()
        self.path = os.path.join(self.tmp.name, 'backup.json')

    def tearDown(self):
        self.tmp.cleanup()

    def test_export_to_stdout(self):
        out = StringIO()
        call_command('export_shop_data', 'shop', '--output', '-', stdout=out)
        data = json.loads(out.getvalue())
        self.assertEqual(data['user'], 'shop')
        self.assertEqual(data['stock'][0]['name'], 'Tea')

    def test_export_then_import_into_another_user(self):
        call_command('export_shop_data', 'shop', '--output', self.path, stdout=StringIO())
        out = StringIO()
        call_command('import_shop_data', 'branch', self.path, stdout=out)
        self.assertIn('Imported 1 stock items and 1 new bills.', out.getvalue())

        repo = ShopRepository(self.other)
        copied = repo.get_stock_items()[0]
        self.assertNotEqual(copied.pk, self.item.pk)
        self.assertEqual(copied.quantity, 6)
        bill = repo.get_bills()[0]
        self.assertEqual(bill.items.all()[0].item_id, str(copied.pk))
        # the source user's rows are untouched
        self.assertEqual(StockItem.objects.filter(owner=self.user).count(), 1)

        out = StringIO()
        call_command('import_shop_data', 'branch', self.path, stdout=out)
        self.assertIn('Imported 1 stock items and 0 new bills.', out.getvalue())
        self.assertEqual(Bill.objects.filter(owner=self.other).count(), 1)

    def test_dry_run_writes_nothing(self):
        call_command('export_shop_data', 'shop', '--output', self.path, stdout=StringIO())
        out = StringIO()
        call_command('import_shop_data', 'branch', self.path, '--dry-run', stdout=out)
        self.assertIn('Dry-run', out.getvalue())
        self.assertEqual(StockItem.objects.filter(owner=self.other).count(), 0)
        self.assertEqual(Bill.objects.filter(owner=self.other).count(), 0)

    def test_import_invalid_file(self):
        with open(self.path, 'w') as f:
            f.write('{not json')
        with self.assertRaises(CommandError):
            call_command('import_shop_data', 'branch', self.path)

    def test_import_bad_quantity_is_a_command_error(self):
        with open(self.path, 'w') as f:
            json.dump({'stock': [{'id': '1', 'name': 'Tea', 'quantity': 'lots'}], 'bills': []}, f)
        with self.assertRaisesMessage(CommandError, 'quantity'):
            call_command('import_shop_data', 'branch', self.path)
        self.assertEqual(StockItem.objects.filter(owner=self.other).count(), 0)

    def test_unknown_user(self):
        with self.assertRaises(CommandError):
            call_command('export_shop_data', 'nobody', '--output', self.path)
