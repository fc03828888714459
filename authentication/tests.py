import json
from unittest import mock

from django.db import IntegrityError
from django.test import TestCase, Client
from django.urls import reverse
from django.contrib.auth.models import User

from community import services as membership
from profiles.models import Profile


class BaseSetup(TestCase):
    def setUp(self):
        self.client = Client()
        self.user = User.objects.create_user(username='u1@example.com', email='u1@example.com', password='pass12345')

    def post_json(self, url, data):
        return self.client.post(url, data=json.dumps(data), content_type='application/json')


class SignupTests(BaseSetup):
    def test_get_not_allowed(self):
        resp = self.client.get(reverse('authentication:signup'))
        self.assertEqual(resp.status_code, 405)

    def test_post_success_logs_in(self):
        resp = self.post_json(reverse('authentication:signup'), {
            'email': 'New@Example.com', 'password': 'longenough', 'display_name': 'Newbie',
        })
        self.assertEqual(resp.status_code, 201)
        data = resp.json()
        self.assertTrue(data['status'])
        self.assertEqual(data['user']['email'], 'new@example.com')
        self.assertEqual(data['user']['name'], 'Newbie')
        self.assertEqual(data['user']['role'], 'student')
        self.assertEqual(data['user']['joined_communities'], [])

        user = User.objects.get(username='new@example.com')
        self.assertEqual(user.profile.role, Profile.Role.STUDENT)
        self.assertEqual(int(self.client.session['_auth_user_id']), user.id)

    def test_short_password(self):
        resp = self.post_json(reverse('authentication:signup'), {
            'email': 'x@example.com', 'password': 'short', 'display_name': 'X',
        })
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()['message'], 'Password must be at least 8 characters long.')
        self.assertFalse(User.objects.filter(username='x@example.com').exists())

    def test_email_taken(self):
        resp = self.post_json(reverse('authentication:signup'), {
            'email': 'U1@example.com', 'password': 'longenough', 'display_name': 'Dup',
        })
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()['message'], 'An account with this email already exists.')

    def test_concurrent_signup_with_same_email(self):
        with mock.patch.object(User.objects, 'create_user', side_effect=IntegrityError):
            resp = self.post_json(reverse('authentication:signup'), {
                'email': 'race@example.com', 'password': 'longenough', 'display_name': 'Race',
            })
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()['message'], 'An account with this email already exists.')
        self.assertNotIn('_auth_user_id', self.client.session)

    def test_form_encoded(self):
        resp = self.client.post(reverse('authentication:signup'), {
            'email': 'form@example.com', 'password': 'longenough', 'display_name': 'Form',
        })
        self.assertEqual(resp.status_code, 201)


class LoginTests(BaseSetup):
    def test_success(self):
        membership.create_community(self.user, 'Algorithms101')
        resp = self.post_json(reverse('authentication:login'), {'email': 'u1@example.com', 'password': 'pass12345'})
        self.assertEqual(resp.status_code, 200)
        data = resp.json()
        self.assertTrue(data['status'])
        self.assertEqual(data['user']['id'], self.user.id)
        self.assertEqual(len(data['user']['joined_communities']), 1)

    def test_wrong_password(self):
        resp = self.post_json(reverse('authentication:login'), {'email': 'u1@example.com', 'password': 'nope'})
        self.assertEqual(resp.status_code, 401)
        self.assertFalse(resp.json()['status'])

    def test_inactive_user(self):
        self.user.is_active = False
        self.user.save()
        resp = self.post_json(reverse('authentication:login'), {'email': 'u1@example.com', 'password': 'pass12345'})
        self.assertEqual(resp.status_code, 401)


class CheckLoginTests(BaseSetup):
    def test_anonymous(self):
        resp = self.client.get(reverse('authentication:check_login'))
        self.assertEqual(resp.json(), {'is_logged_in': False, 'user': None})

    def test_logged_in(self):
        self.client.login(username='u1@example.com', password='pass12345')
        data = self.client.get(reverse('authentication:check_login')).json()
        self.assertTrue(data['is_logged_in'])
        self.assertEqual(data['user']['email'], 'u1@example.com')


class LogoutTests(BaseSetup):
    def test_logout(self):
        self.client.login(username='u1@example.com', password='pass12345')
        resp = self.client.post(reverse('authentication:logout'))
        self.assertEqual(resp.status_code, 200)
        self.assertNotIn('_auth_user_id', self.client.session)

    def test_logout_without_session(self):
        resp = self.client.post(reverse('authentication:logout'))
        self.assertEqual(resp.status_code, 400)
