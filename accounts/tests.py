from django.contrib.auth import get_user_model
from django.test import TestCase, override_settings
from django.urls import reverse

from stock.models import StockItem
from .models import ShopProfile

PASSWORD = 'Tr1cky-Passw0rd'


class RegisterTests(TestCase):
    def _register(self, username='newshop', password2=PASSWORD):
        return self.client.post(reverse('accounts:register'), {
            'username': username, 'password1': PASSWORD, 'password2': password2,
        })

    def test_register_creates_profile_and_logs_in(self):
        resp = self._register()
        self.assertEqual(resp.status_code, 201)
        self.assertEqual(resp.json(), {'user': 'newshop', 'onboarded': False, 'hasUpiQrCode': False, 'isNew': True})
        user = get_user_model().objects.get(username='newshop')
        self.assertTrue(ShopProfile.objects.filter(user=user).exists())
        self.assertEqual(StockItem.objects.filter(owner=user).count(), 0)
        self.assertEqual(self.client.get(reverse('accounts:profile')).status_code, 200)

    def test_password_mismatch(self):
        resp = self._register(password2='something-else-1')
        self.assertEqual(resp.status_code, 400)
        self.assertIn('password2', resp.json()['errors'])

    def test_duplicate_username(self):
        get_user_model().objects.create_user(username='newshop', password=PASSWORD)
        self.assertEqual(self._register().status_code, 400)

    @override_settings(STORE_SEED_NEW_USERS=True)
    def test_register_seeds_sample_stock(self):
        self._register()
        user = get_user_model().objects.get(username='newshop')
        self.assertEqual(StockItem.objects.filter(owner=user).count(), 6)

    def test_register_requires_post(self):
        self.assertEqual(self.client.get(reverse('accounts:register')).status_code, 405)


class LoginTests(TestCase):
    def setUp(self):
        self.user = get_user_model().objects.create_user(username='tester', password=PASSWORD)

    def test_login(self):
        resp = self.client.post(reverse('accounts:login'), {'username': 'tester', 'password': PASSWORD})
        self.assertEqual(resp.status_code, 200)
        self.assertFalse(resp.json()['isNew'])
        self.assertEqual(self.client.get(reverse('accounts:profile')).status_code, 200)

    def test_bad_credentials(self):
        resp = self.client.post(reverse('accounts:login'), {'username': 'tester', 'password': 'nope'})
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()['error'], 'Invalid credentials.')

    def test_register_while_logged_in(self):
        self.client.login(username='tester', password=PASSWORD)
        resp = self.client.post(reverse('accounts:register'), {
            'username': 'second', 'password1': PASSWORD, 'password2': PASSWORD,
        })
        self.assertEqual(resp.status_code, 400)

    def test_logout(self):
        self.client.login(username='tester', password=PASSWORD)
        resp = self.client.post(reverse('accounts:logout'))
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(self.client.get(reverse('accounts:profile')).status_code, 302)


class ProfileTests(TestCase):
    def setUp(self):
        self.user = get_user_model().objects.create_user(username='tester', password=PASSWORD)
        self.client.login(username='tester', password=PASSWORD)

    def test_profile_created_on_demand(self):
        resp = self.client.get(reverse('accounts:profile'))
        self.assertEqual(resp.json()['upiQrCode'], '')
        self.assertTrue(ShopProfile.objects.filter(user=self.user).exists())

    def test_update_qr_and_onboarding(self):
        qr = 'data:image/png;base64,iVBORw0KGgo='
        resp = self.client.post(reverse('accounts:profile'), {'upi_qr_code': qr, 'onboarded': 'true'})
        self.assertEqual(resp.status_code, 200)
        self.assertTrue(resp.json()['hasUpiQrCode'])
        profile = ShopProfile.objects.get(user=self.user)
        self.assertEqual(profile.upi_qr_code, qr)
        self.assertTrue(profile.onboarded)

        self.client.post(reverse('accounts:profile'), {'upi_qr_code': ''})
        profile.refresh_from_db()
        self.assertEqual(profile.upi_qr_code, '')
        self.assertTrue(profile.onboarded)
