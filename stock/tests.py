import json
import random
from decimal import Decimal
from io import StringIO

from django.contrib.auth import get_user_model
from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import TestCase
from django.urls import reverse

from billing.models import Bill
from core.repository import ShopRepository
from .forms import StockItemForm
from .models import StockItem
from .sample_data import SAMPLE_STOCK, seed_sample_data
from .utils import filter_stock


class StockItemFormTests(TestCase):
    def _form(self, **data):
        base = {'name': 'Apples', 'category': 'Fruits', 'buying_price': '80', 'quantity': '10'}
        base.update(data)
        return StockItemForm(base)

    def test_mrp_from_profit(self):
        form = self._form(profit='20')
        self.assertTrue(form.is_valid(), form.errors)
        self.assertEqual(form.cleaned_data['mrp'], Decimal('100'))

    def test_profit_from_mrp(self):
        form = self._form(mrp='95.50')
        self.assertTrue(form.is_valid(), form.errors)
        self.assertEqual(form.cleaned_data['profit'], Decimal('15.50'))

    def test_mrp_below_buying_price(self):
        form = self._form(mrp='50')
        self.assertFalse(form.is_valid())
        self.assertIn('mrp', form.errors)

    def test_needs_profit_or_mrp(self):
        self.assertFalse(self._form().is_valid())

    def test_inconsistent_prices(self):
        form = self._form(profit='20', mrp='120')
        self.assertFalse(form.is_valid())
        self.assertIn('MRP must equal buying price plus profit.', form.errors['mrp'])

    def test_blank_name(self):
        form = self._form(name='   ', profit='1')
        self.assertFalse(form.is_valid())
        self.assertIn('name', form.errors)

    def test_defaults(self):
        form = self._form(profit='5', quantity='')
        self.assertTrue(form.is_valid(), form.errors)
        self.assertEqual(form.cleaned_data['quantity'], 0)
        self.assertEqual(form.cleaned_data['image_url'], 'https://picsum.photos/seed/Apples/200')

    def test_negative_quantity(self):
        self.assertFalse(self._form(profit='5', quantity='-1').is_valid())


class FilterStockTests(TestCase):
    def setUp(self):
        User = get_user_model()
        self.user = User.objects.create_user(username='u', password='p')
        repo = ShopRepository(self.user)
        repo.add_stock_item(name='Apples', category='Fruits', buying_price=Decimal('80'), profit=Decimal('20'), mrp=Decimal('100'), quantity=10)
        repo.add_stock_item(name='Bread', category='Bakery', buying_price=Decimal('30'), profit=Decimal('10'), mrp=Decimal('40'), quantity=1)
        repo.add_stock_item(name='Cheese', category='Dairy', buying_price=Decimal('150'), profit=Decimal('50'), mrp=Decimal('200'), quantity=0)
        self.qs = repo.stock_queryset()

    def names(self, **kwargs):
        return sorted(filter_stock(self.qs, **kwargs).values_list('name', flat=True))

    def test_status(self):
        self.assertEqual(self.names(status='all'), ['Apples', 'Bread', 'Cheese'])
        self.assertEqual(self.names(status='inStock'), ['Apples'])
        self.assertEqual(self.names(status='lowStock'), ['Bread'])
        self.assertEqual(self.names(status='outOfStock'), ['Cheese'])

    def test_search_matches_name_or_category(self):
        self.assertEqual(self.names(q='bak'), ['Bread'])
        self.assertEqual(self.names(q='APP'), ['Apples'])

    def test_price_window(self):
        self.assertEqual(self.names(min_price='50'), ['Apples', 'Cheese'])
        self.assertEqual(self.names(price_type='buying', max_price='100'), ['Apples', 'Bread'])
        self.assertEqual(self.names(min_price='abc', max_price=''), ['Apples', 'Bread', 'Cheese'])


class StockViewTests(TestCase):
    def setUp(self):
        User = get_user_model()
        self.user = User.objects.create_user(username='tester', password='pass1234')
        self.client.login(username='tester', password='pass1234')
        self.repo = ShopRepository(self.user)
        self.item = self.repo.add_stock_item(name='Apples', category='Fruits', buying_price=Decimal('80'),
                                             profit=Decimal('20'), mrp=Decimal('100'), quantity=10)

    def test_list(self):
        resp = self.client.get(reverse('stock:stock_list'))
        self.assertEqual(resp.status_code, 200)
        data = resp.json()
        self.assertEqual(data['count'], 1)
        self.assertEqual(data['items'][0]['buyingPrice'], 80)
        self.assertEqual(data['items'][0]['salesCount'], 0)

        resp = self.client.get(reverse('stock:stock_list') + '?status=outOfStock')
        self.assertEqual(resp.json()['count'], 0)
        resp = self.client.get(reverse('stock:stock_list') + '?status=gone')
        self.assertEqual(resp.status_code, 400)

    def test_list_hides_other_users_items(self):
        other = get_user_model().objects.create_user(username='other', password='x')
        ShopRepository(other).add_stock_item(name='Secret', buying_price=Decimal('1'), profit=Decimal('1'), mrp=Decimal('2'))
        names = [i['name'] for i in self.client.get(reverse('stock:stock_list')).json()['items']]
        self.assertEqual(names, ['Apples'])

    def test_create(self):
        resp = self.client.post(reverse('stock:stock_list'),
                                data=json.dumps({'name': 'Milk', 'buyingPrice': 150, 'profit': 50, 'quantity': 20}),
                                content_type='application/json')
        self.assertEqual(resp.status_code, 201)
        data = resp.json()
        self.assertEqual(data['mrp'], 200)
        self.assertEqual(data['salesCount'], 0)
        self.assertTrue(StockItem.objects.filter(owner=self.user, name='Milk').exists())

    def test_create_invalid(self):
        resp = self.client.post(reverse('stock:stock_list'), {'name': '', 'buying_price': '10'})
        self.assertEqual(resp.status_code, 400)
        self.assertIn('errors', resp.json())

    def test_bulk_create(self):
        rows = [
            {'name': 'Tea', 'buyingPrice': '90', 'mrp': '100', 'quantity': 5},
            {'name': 'Rice', 'buyingPrice': '40', 'profit': '5'},
        ]
        resp = self.client.post(reverse('stock:stock_bulk_create'), data=json.dumps({'items': rows}),
                                content_type='application/json')
        self.assertEqual(resp.status_code, 201)
        self.assertEqual(resp.json()['count'], 2)
        self.assertEqual(StockItem.objects.filter(owner=self.user).count(), 3)

    def test_bulk_create_is_all_or_nothing(self):
        rows = [{'name': 'Tea', 'buyingPrice': '90', 'mrp': '100'}, {'name': 'Bad', 'buyingPrice': '40'}]
        resp = self.client.post(reverse('stock:stock_bulk_create'), data=json.dumps({'items': rows}),
                                content_type='application/json')
        self.assertEqual(resp.status_code, 400)
        self.assertIn('1', resp.json()['errors'])
        self.assertEqual(StockItem.objects.filter(owner=self.user).count(), 1)

    def test_update_mrp_rederives_profit(self):
        resp = self.client.post(reverse('stock:stock_detail', args=[self.item.id]), {'mrp': '120'})
        self.assertEqual(resp.status_code, 200)
        self.item.refresh_from_db()
        self.assertEqual(self.item.profit, Decimal('40'))
        self.assertEqual(self.item.mrp, Decimal('120'))

    def test_update_quantity_only(self):
        self.client.post(reverse('stock:stock_detail', args=[self.item.id]), {'quantity': '3'})
        self.item.refresh_from_db()
        self.assertEqual(self.item.quantity, 3)
        self.assertEqual(self.item.mrp, Decimal('100'))

    def test_update_keeps_sales_count(self):
        StockItem.objects.filter(pk=self.item.pk).update(sales_count=7)
        self.client.post(reverse('stock:stock_detail', args=[self.item.id]), {'name': 'Green Apples'})
        self.item.refresh_from_db()
        self.assertEqual(self.item.name, 'Green Apples')
        self.assertEqual(self.item.sales_count, 7)

    def test_other_users_item_is_404(self):
        other = get_user_model().objects.create_user(username='other', password='x')
        theirs = ShopRepository(other).add_stock_item(name='Secret', buying_price=Decimal('1'), profit=Decimal('1'), mrp=Decimal('2'))
        self.assertEqual(self.client.get(reverse('stock:stock_detail', args=[theirs.id])).status_code, 404)
        self.assertEqual(self.client.post(reverse('stock:stock_delete', args=[theirs.id])).status_code, 404)
        self.assertTrue(StockItem.objects.filter(pk=theirs.pk).exists())

    def test_delete(self):
        resp = self.client.post(reverse('stock:stock_delete', args=[self.item.id]))
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()['name'], 'Apples')
        self.assertFalse(StockItem.objects.filter(pk=self.item.pk).exists())

    def test_delete_requires_post(self):
        self.assertEqual(self.client.get(reverse('stock:stock_delete', args=[self.item.id])).status_code, 405)


class SampleDataTests(TestCase):
    def setUp(self):
        User = get_user_model()
        self.user = User.objects.create_user(username='shop', password='p')

    def test_seed_stock_once(self):
        items, bills = seed_sample_data(self.user)
        self.assertEqual((items, bills), (len(SAMPLE_STOCK), 0))
        self.assertEqual(seed_sample_data(self.user), (0, 0))
        self.assertEqual(StockItem.objects.filter(owner=self.user).count(), len(SAMPLE_STOCK))

    def test_seed_bills_go_through_checkout(self):
        seed_sample_data(self.user, bills=4, rng=random.Random(7))
        bills = Bill.objects.filter(owner=self.user)
        self.assertEqual(bills.count(), 4)
        sold = sum(line.quantity for b in bills for line in b.items.all())
        self.assertEqual(sum(StockItem.objects.filter(owner=self.user).values_list('sales_count', flat=True)), sold)

    def test_command(self):
        out = StringIO()
        call_command('seed_sample_data', 'shop', '--bills', '2', '--seed', '1', stdout=out)
        self.assertIn('Seeded 6 stock items and 2 bills.', out.getvalue())

    def test_command_errors(self):
        with self.assertRaises(CommandError):
            call_command('seed_sample_data', 'nobody')
        with self.assertRaises(CommandError):
            call_command('seed_sample_data', 'shop', '--bills', '-1')
