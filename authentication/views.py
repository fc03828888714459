import logging

from django.contrib.auth import authenticate, login as auth_login
from django.contrib.auth import logout as auth_logout
from django.contrib.auth.models import User
from django.db import IntegrityError, transaction
from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_POST

from profiles.models import Profile
from profiles.utils import user_payload
from studybuddy.utils import parse_payload
from .forms import SignupForm

logger = logging.getLogger(__name__)


@csrf_exempt
@require_POST
def signup(request):
    form = SignupForm(parse_payload(request))
    if not form.is_valid():
        errors = dict(form.errors.items())
        first_error = next(iter(errors.values()))[0]
        return JsonResponse({
            "status": False,
            "message": first_error,
            "errors": errors,
        }, status=400)

    email = form.cleaned_data['email']
    try:
        with transaction.atomic():
            user = User.objects.create_user(username=email, email=email, password=form.cleaned_data['password'])
            profile, _ = Profile.objects.get_or_create(user=user)
            profile.display_name = form.cleaned_data['display_name']
            profile.role = Profile.Role.STUDENT
            profile.save()
    except IntegrityError:
        # Another signup with the same email got in after clean_email.
        logger.warning("Signup for %s lost a race with a concurrent signup", email)
        message = "An account with this email already exists."
        return JsonResponse({
            "status": False,
            "message": message,
            "errors": {"email": [message]},
        }, status=400)

    auth_login(request, user)
    logger.info("User %s signed up", user.id)
    return JsonResponse({
        "status": True,
        "message": "Account created successfully!",
        "user": user_payload(user),
    }, status=201)


@csrf_exempt
@require_POST
def login(request):
    payload = parse_payload(request)
    email = (payload.get("email") or "").strip().lower()
    password = payload.get("password") or ""

    user = authenticate(request, username=email, password=password)
    if user is not None:
        if user.is_active:
            auth_login(request, user)
            return JsonResponse({
                "status": True,
                "message": "Login successful!",
                "user": user_payload(user),
            }, status=200)
        return JsonResponse({
            "status": False,
            "message": "Login failed, account is disabled."
        }, status=401)

    logger.warning("Failed login attempt for %s", email or "<blank>")
    return JsonResponse({
        "status": False,
        "message": "Login failed, please check your email or password."
    }, status=401)


def check_login(request):
    if request.user.is_authenticated:
        return JsonResponse({
            "is_logged_in": True,
            "user": user_payload(request.user),
        }, status=200)
    return JsonResponse({
        "is_logged_in": False,
        "user": None,
    }, status=200)


@csrf_exempt
@require_POST
def logout(request):
    if request.user.is_authenticated:
        auth_logout(request)
        return JsonResponse({
            "status": True,
            "message": "Successfully logged out."
        }, status=200)
    return JsonResponse({
        "status": False,
        "message": "No active session found."
    }, status=400)
