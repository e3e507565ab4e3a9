import logging

from django.conf import settings
from django.contrib.auth import login as auth_login, logout as auth_logout
from django.contrib.auth.decorators import login_required
from django.contrib.auth.forms import UserCreationForm, AuthenticationForm
from django.http import JsonResponse
from django.views.decorators.http import require_POST

from core.http import form_errors, json_error, request_data
from stock.sample_data import seed_sample_data
from .models import ShopProfile

logger = logging.getLogger(__name__)


def _profile_payload(user, profile):
    return {
        'user': user.get_username(),
        'onboarded': profile.onboarded,
        'hasUpiQrCode': bool(profile.upi_qr_code),
    }


@require_POST
def register_view(request):
    if request.user.is_authenticated:
        return json_error('Already logged in.', status=400)
    form = UserCreationForm(request_data(request))
    if not form.is_valid():
        return json_error('Please correct the errors below.', errors=form_errors(form))
    user = form.save()
    auth_login(request, user)
    profile = ShopProfile.for_user(user)
    if settings.STORE_SEED_NEW_USERS:
        seed_sample_data(user)
    logger.info('Registered user %s', user.get_username())
    return JsonResponse({**_profile_payload(user, profile), 'isNew': True}, status=201)


@require_POST
def login_view(request):
    form = AuthenticationForm(request, data=request_data(request))
    if not form.is_valid():
        return json_error('Invalid credentials.', errors=form_errors(form))
    user = form.get_user()
    auth_login(request, user)
    logger.info('User %s logged in', user.get_username())
    return JsonResponse({**_profile_payload(user, ShopProfile.for_user(user)), 'isNew': False})


@login_required
def logout_view(request):
    username = request.user.get_username()
    auth_logout(request)
    logger.info('User %s logged out', username)
    return JsonResponse({'detail': 'You have been logged out.'})


@login_required
def profile_view(request):
    profile = ShopProfile.for_user(request.user)
    if request.method == 'POST':
        data = request_data(request)
        update_fields = []
        if 'upi_qr_code' in data:
            qr = data['upi_qr_code'] or ''
            if not isinstance(qr, str):
                return json_error('upi_qr_code must be a base64 image string.')
            profile.upi_qr_code = qr
            update_fields.append('upi_qr_code')
        if 'onboarded' in data:
            profile.onboarded = str(data['onboarded']).lower() in ('1', 'true', 'yes', 'on')
            update_fields.append('onboarded')
        if update_fields:
            profile.save(update_fields=update_fields)
    payload = _profile_payload(request.user, profile)
    payload['upiQrCode'] = profile.upi_qr_code
    return JsonResponse(payload)
