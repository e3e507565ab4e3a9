import json

from django.http import JsonResponse


def request_data(request) -> dict:
    """Body of a POST as a plain dict, from either a JSON or a form-encoded request."""
    if request.content_type == 'application/json':
        try:
            data = json.loads(request.body or b'{}')
        except ValueError:
            return {}
        return data if isinstance(data, dict) else {}
    return request.POST.dict()


def json_error(message, status=400, **extra):
    return JsonResponse({'error': message, **extra}, status=status)


def form_errors(form) -> dict:
    """Field name -> list of messages, for JSON responses."""
    return {field: [e['message'] for e in errs] for field, errs in form.errors.get_json_data().items()}
