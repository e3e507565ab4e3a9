from datetime import datetime, date, timezone as dt_timezone
from decimal import Decimal
from io import StringIO

from django.contrib.auth import get_user_model
from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import TestCase
from django.urls import reverse
from django.utils import timezone

from billing.models import Bill, BillItem
from core.repository import ShopRepository
from stock.models import StockItem
from .aggregation import daily_profits, profit_for_day
from .reports import date_range, home_summary, sales_report


def local(*args):
    return timezone.make_aware(datetime(*args))


def make_bill(repo, when, method, lines):
    """lines: (item_id, name, mrp, quantity, profit) tuples."""
    items = [
        BillItem(item_id=item_id, name=name, mrp=Decimal(mrp), quantity=qty, profit=Decimal(profit))
        for item_id, name, mrp, qty, profit in lines
    ]
    bill = Bill(
        total_amount=sum((i.mrp * i.quantity for i in items), Decimal('0')),
        total_profit=sum((i.profit * i.quantity for i in items), Decimal('0')),
        created_at=when,
        payment_method=method,
    )
    return repo.save_bill(bill, items)


class DailyProfitTests(TestCase):
    def setUp(self):
        User = get_user_model()
        self.user = User.objects.create_user(username='shop', password='p')
        self.repo = ShopRepository(self.user)

    def _two_days(self):
        make_bill(self.repo, local(2024, 1, 1, 12), 'cash', [('a', 'Apples', '100', 2, '25')])
        make_bill(self.repo, local(2024, 1, 1, 13), 'qr', [('a', 'Apples', '100', 1, '30')])
        make_bill(self.repo, local(2024, 1, 2, 12), 'cash', [('b', 'Bread', '40', 2, '5')])

    def test_groups_by_day_newest_first(self):
        self._two_days()
        days = daily_profits(self.repo.get_bills())
        self.assertEqual([d.date for d in days], ['2024-01-02', '2024-01-01'])

        jan2, jan1 = days
        self.assertEqual((jan2.total_profit, jan2.cash_profit, jan2.qr_profit),
                         (Decimal('10'), Decimal('10'), Decimal('0')))
        self.assertEqual((jan1.total_profit, jan1.cash_profit, jan1.qr_profit),
                         (Decimal('80'), Decimal('50'), Decimal('30')))

    def test_item_sold_by_both_methods_is_split(self):
        self._two_days()
        jan1 = daily_profits(self.repo.get_bills())[1]
        self.assertEqual(len(jan1.items), 1)
        apples = jan1.items[0]
        self.assertEqual(apples.name, 'Apples')
        self.assertEqual(apples.quantity, 3)
        self.assertEqual(apples.total_profit, Decimal('80'))
        self.assertEqual(apples.cash_profit, Decimal('50'))
        self.assertEqual(apples.qr_profit, Decimal('30'))

    def test_sums_are_consistent(self):
        self._two_days()
        make_bill(self.repo, local(2024, 1, 1, 18), 'qr', [('b', 'Bread', '40', 3, '5'), ('c', 'Milk', '200', 1, '50')])
        bills = self.repo.get_bills()
        days = daily_profits(bills)

        self.assertEqual(sum(d.total_profit for d in days), sum(b.total_profit for b in bills))
        for d in days:
            self.assertEqual(d.cash_profit + d.qr_profit, d.total_profit)
            self.assertEqual(sum(it.total_profit for it in d.items), d.total_profit)
            for it in d.items:
                self.assertEqual(it.cash_profit + it.qr_profit, it.total_profit)

    def test_items_keep_first_encounter_order(self):
        make_bill(self.repo, local(2024, 3, 5, 9), 'cash', [('x', 'Small', '10', 1, '1'), ('y', 'Big', '100', 1, '40')])
        day = daily_profits(self.repo.get_bills())[0]
        self.assertEqual([it.name for it in day.items], ['Small', 'Big'])
        self.assertEqual([it.name for it in day.items_by_profit()], ['Big', 'Small'])

    def test_same_input_same_output(self):
        self._two_days()
        bills = self.repo.get_bills()
        self.assertEqual(daily_profits(bills), daily_profits(bills))
        self.assertEqual(daily_profits(bills), daily_profits(list(reversed(bills))))

    def test_no_bills(self):
        self.assertEqual(daily_profits([]), [])

    def test_day_follows_local_time_zone(self):
        # 20:00 UTC is already the next morning in India
        make_bill(self.repo, datetime(2024, 1, 1, 20, 0, tzinfo=dt_timezone.utc), 'cash', [('a', 'Apples', '100', 1, '20')])
        bills = self.repo.get_bills()
        with timezone.override('Asia/Kolkata'):
            self.assertEqual(daily_profits(bills)[0].date, '2024-01-02')
        with timezone.override('UTC'):
            self.assertEqual(daily_profits(bills)[0].date, '2024-01-01')

    def test_profit_for_missing_day_is_empty(self):
        self._two_days()
        days = daily_profits(self.repo.get_bills())
        self.assertEqual(profit_for_day(days, date(2024, 1, 1)).total_profit, Decimal('80'))
        empty = profit_for_day(days, date(2024, 1, 3))
        self.assertEqual(empty.date, '2024-01-03')
        self.assertEqual(empty.total_profit, Decimal('0'))
        self.assertEqual(empty.items, [])

    def test_as_dict_uses_plain_numbers(self):
        self._two_days()
        jan1 = daily_profits(self.repo.get_bills())[1]
        self.assertEqual(jan1.as_dict(), {
            'date': '2024-01-01',
            'totalProfit': 80,
            'cashProfit': 50,
            'qrProfit': 30,
            'items': [{'name': 'Apples', 'quantity': 3, 'totalProfit': 80, 'cashProfit': 50, 'qrProfit': 30}],
        })


class ReportTests(TestCase):
    def setUp(self):
        User = get_user_model()
        self.user = User.objects.create_user(username='shop', password='p')
        self.repo = ShopRepository(self.user)
        self.now = local(2024, 1, 3, 15)  # a Wednesday

    def test_date_ranges(self):
        start, end = date_range('today', self.now)
        self.assertEqual((start.date(), end.date()), (date(2024, 1, 3), date(2024, 1, 3)))
        start, end = date_range('week', self.now)
        self.assertEqual((start.date(), end.date()), (date(2023, 12, 31), date(2024, 1, 6)))
        start, end = date_range('month', self.now)
        self.assertEqual((start.date(), end.date()), (date(2024, 1, 1), date(2024, 1, 31)))
        self.assertEqual(date_range('forever', self.now), (None, None))

    def test_today_report(self):
        make_bill(self.repo, local(2024, 1, 3, 9, 30), 'cash', [('a', 'Apples', '100', 1, '20')])
        make_bill(self.repo, local(2024, 1, 3, 14), 'qr', [('b', 'Bread', '25', 2, '5')])
        make_bill(self.repo, local(2024, 1, 2, 12), 'cash', [('a', 'Apples', '100', 9, '20')])

        report = sales_report(self.repo.get_bills(), 'today', 'all', now=self.now)
        self.assertEqual(report['metrics'], {'totalSales': 150, 'totalProfit': 30, 'totalBills': 2, 'avgBillValue': 75})
        self.assertEqual(len(report['salesOverTime']), 24)
        by_hour = {row['name']: row['sales'] for row in report['salesOverTime']}
        self.assertEqual(by_hour['09:00'], 100)
        self.assertEqual(by_hour['14:00'], 50)
        self.assertEqual(by_hour['12:00'], 0)
        self.assertEqual(report['paymentBreakdown'], [{'name': 'Cash', 'value': 100}, {'name': 'QR', 'value': 50}])
        self.assertEqual(report['topItems'], [{'name': 'Apples', 'revenue': 100}, {'name': 'Bread', 'revenue': 50}])

    def test_week_report_with_payment_filter(self):
        make_bill(self.repo, local(2024, 1, 1, 10), 'cash', [('a', 'Apples', '100', 1, '20')])
        make_bill(self.repo, local(2024, 1, 2, 10), 'qr', [('b', 'Bread', '40', 1, '10')])
        make_bill(self.repo, local(2023, 12, 30, 10), 'cash', [('a', 'Apples', '100', 1, '20')])

        report = sales_report(self.repo.get_bills(), 'week', 'cash', now=self.now)
        self.assertEqual(report['metrics']['totalBills'], 1)
        self.assertEqual(report['salesOverTime'], [{'name': '2024-01-01', 'sales': 100}])
        self.assertEqual(report['paymentBreakdown'], [{'name': 'Cash', 'value': 100}])

    def test_empty_report(self):
        report = sales_report([], 'month', 'all', now=self.now)
        self.assertEqual(report['metrics'], {'totalSales': 0, 'totalProfit': 0, 'totalBills': 0, 'avgBillValue': 0})
        self.assertEqual(report['paymentBreakdown'], [])
        self.assertEqual(report['topItems'], [])

    def test_home_summary(self):
        self.repo.add_stock_item(name='A', buying_price=Decimal('1'), profit=Decimal('1'), mrp=Decimal('2'), quantity=0)
        self.repo.add_stock_item(name='B', buying_price=Decimal('1'), profit=Decimal('1'), mrp=Decimal('2'), quantity=5)
        self.repo.add_stock_item(name='C', buying_price=Decimal('1'), profit=Decimal('1'), mrp=Decimal('2'), quantity=1)
        StockItem.objects.filter(name='A').update(sales_count=10)
        StockItem.objects.filter(name='B').update(sales_count=2)
        StockItem.objects.filter(name='C').update(sales_count=7)
        make_bill(self.repo, local(2024, 1, 3, 11, 15), 'cash', [('a', 'A', '2', 4, '1')])
        make_bill(self.repo, local(2024, 1, 2, 11), 'cash', [('a', 'A', '2', 50, '1')])

        summary = home_summary(self.repo.get_bills(), self.repo.get_stock_items(), now=self.now)
        self.assertEqual(summary['date'], '2024-01-03')
        self.assertEqual(summary['totalSales'], 8)
        self.assertEqual(len(summary['salesByHour']), 24)
        self.assertEqual(summary['salesByHour'][11], {'hour': '11', 'sales': 8})
        self.assertEqual([s['name'] for s in summary['topItems']], ['A', 'C', 'B'])
        self.assertEqual([s['name'] for s in summary['lowStockItems']], ['A', 'C'])


class ProfitViewTests(TestCase):
    def setUp(self):
        User = get_user_model()
        self.user = User.objects.create_user(username='tester', password='pass1234')
        self.client.login(username='tester', password='pass1234')
        self.repo = ShopRepository(self.user)
        make_bill(self.repo, local(2024, 1, 1, 12), 'cash', [('a', 'Apples', '100', 2, '25'), ('b', 'Bread', '40', 1, '60')])
        make_bill(self.repo, local(2024, 1, 2, 12), 'qr', [('b', 'Bread', '40', 2, '5')])

    def test_requires_login(self):
        self.client.logout()
        resp = self.client.get(reverse('profit:profit_view'))
        self.assertEqual(resp.status_code, 302)

    def test_profit_history(self):
        resp = self.client.get(reverse('profit:profit_view'))
        self.assertEqual(resp.status_code, 200)
        data = resp.json()
        self.assertEqual([d['date'] for d in data['days']], ['2024-01-02', '2024-01-01'])
        self.assertEqual(data['days'][1]['totalProfit'], 110)
        self.assertEqual(data['today']['date'], timezone.localdate().isoformat())

    def test_other_users_bills_are_hidden(self):
        other = get_user_model().objects.create_user(username='other', password='x')
        make_bill(ShopRepository(other), local(2024, 1, 5, 12), 'cash', [('z', 'Zinc', '10', 1, '3')])
        data = self.client.get(reverse('profit:profit_view')).json()
        self.assertNotIn('2024-01-05', [d['date'] for d in data['days']])

    def test_day_detail_sorted_by_profit(self):
        resp = self.client.get(reverse('profit:profit_day', args=['2024-01-01']))
        self.assertEqual(resp.status_code, 200)
        self.assertEqual([it['name'] for it in resp.json()['items']], ['Bread', 'Apples'])

    def test_day_detail_bad_date(self):
        resp = self.client.get(reverse('profit:profit_day', args=['yesterday-ish']))
        self.assertEqual(resp.status_code, 404)

    def test_reports_rejects_unknown_filter(self):
        resp = self.client.get(reverse('profit:reports') + '?filter=decade')
        self.assertEqual(resp.status_code, 400)
        resp = self.client.get(reverse('profit:reports') + '?filter=month&payment=card')
        self.assertEqual(resp.status_code, 400)

    def test_reports_and_home(self):
        resp = self.client.get(reverse('profit:reports') + '?filter=month&payment=qr')
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()['paymentFilter'], 'qr')
        resp = self.client.get(reverse('profit:home'))
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(len(resp.json()['salesByHour']), 24)


class ProfitReportCommandTests(TestCase):
    def setUp(self):
        User = get_user_model()
        self.user = User.objects.create_user(username='shop', password='p')
        self.repo = ShopRepository(self.user)

    def test_prints_days(self):
        make_bill(self.repo, local(2024, 1, 1, 12), 'cash', [('a', 'Apples', '100', 2, '25')])
        make_bill(self.repo, local(2024, 1, 2, 12), 'qr', [('b', 'Bread', '40', 2, '5')])
        out = StringIO()
        call_command('profit_report', 'shop', stdout=out)
        output = out.getvalue()
        self.assertIn('*** Daily Profit ***', output)
        self.assertIn('2024-01-02: Rs 10.00 (Cash Rs 0, QR Rs 10.00)', output)
        self.assertIn('Apples x2: Rs 50.00', output)
        self.assertLess(output.index('2024-01-02'), output.index('2024-01-01'))

    def test_limit_days(self):
        make_bill(self.repo, local(2024, 1, 1, 12), 'cash', [('a', 'Apples', '100', 2, '25')])
        make_bill(self.repo, local(2024, 1, 2, 12), 'qr', [('b', 'Bread', '40', 2, '5')])
        out = StringIO()
        call_command('profit_report', 'shop', '--days', '1', stdout=out)
        self.assertNotIn('2024-01-01', out.getvalue())

    def test_empty(self):
        out = StringIO()
        call_command('profit_report', 'shop', stdout=out)
        self.assertIn('No profit data available yet.', out.getvalue())

    def test_unknown_user(self):
        with self.assertRaises(CommandError):
            call_command('profit_report', 'nobody')
