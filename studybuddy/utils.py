import json
import logging
from functools import wraps

from django.core.exceptions import ObjectDoesNotExist, PermissionDenied, ValidationError
from django.db import DatabaseError
from django.http import Http404, JsonResponse

logger = logging.getLogger(__name__)


def parse_payload(request):
    """Return the JSON body as a dict, falling back to form data."""
    try:
        payload = json.loads(request.body.decode('utf-8'))
    except (json.JSONDecodeError, UnicodeDecodeError):
        return request.POST
    if not isinstance(payload, dict):
        return {}
    return payload


def error_response(message, status, code=None):
    data = {'status': 'error', 'message': message}
    if code:
        data['code'] = code
    return JsonResponse(data, status=status)


def validation_message(exc):
    return ' '.join(exc.messages)


def json_errors(view):
    """Translate the service-layer exceptions into JSON error responses.

    Authorization -> 403, missing objects -> 404, validation -> 400 and
    store failures -> 500. Store failures are logged and never retried.
    """
    @wraps(view)
    def wrapper(request, *args, **kwargs):
        try:
            return view(request, *args, **kwargs)
        except PermissionDenied as exc:
            return error_response(str(exc) or 'Forbidden', 403, 'forbidden')
        except (ObjectDoesNotExist, Http404):
            return error_response('Not found.', 404, 'not_found')
        except ValidationError as exc:
            return error_response(validation_message(exc), 400, 'invalid')
        except DatabaseError:
            logger.exception('Store failure while handling %s %s', request.method, request.path)
            return error_response('Something went wrong. Please try again.', 500, 'store_error')
    return wrapper
