import json

from django.test import TestCase, Client
from django.urls import reverse
from django.contrib.auth.models import User

from community import services as membership
from profiles.models import Profile
from profiles.utils import display_name, is_admin, user_payload


class BaseSetup(TestCase):
    def setUp(self):
        self.client = Client()
        self.user = User.objects.create_user(username='u1@example.com', email='u1@example.com', password='pass12345')
        self.admin = User.objects.create_superuser(username='admin@example.com', password='pass12345', email='admin@example.com')


class ProfileModelTests(BaseSetup):
    def test_profile_created_with_user(self):
        self.assertTrue(Profile.objects.filter(user=self.user).exists())
        self.assertEqual(self.user.profile.role, Profile.Role.STUDENT)

    def test_name_falls_back_to_username(self):
        self.assertEqual(display_name(self.user), 'u1@example.com')
        self.user.profile.display_name = 'Uno'
        self.user.profile.save()
        self.assertEqual(display_name(self.user), 'Uno')

    def test_is_admin(self):
        self.assertFalse(is_admin(self.user))
        self.assertTrue(is_admin(self.admin))
        self.user.profile.role = Profile.Role.ADMIN
        self.user.profile.save()
        self.assertTrue(is_admin(self.user))

    def test_user_payload_lists_joined_communities(self):
        community = membership.create_community(self.admin, 'Algorithms101')
        community.members.add(self.user)
        payload = user_payload(self.user)
        self.assertEqual(payload['joined_communities'], [community.id])
        self.assertEqual(payload['role'], 'student')


class ProfileDetailTests(BaseSetup):
    def test_requires_login(self):
        resp = self.client.get(reverse('profiles:detail'))
        self.assertEqual(resp.status_code, 302)

    def test_detail(self):
        membership.create_community(self.user, 'Algorithms101')
        self.client.login(username='u1@example.com', password='pass12345')
        data = self.client.get(reverse('profiles:detail')).json()
        self.assertEqual(data['email'], 'u1@example.com')
        self.assertEqual([c['name'] for c in data['communities']], ['Algorithms101'])
        self.assertEqual(data['stats'], {'communities': 1, 'posts': 0, 'messages': 0})


class ProfileUpdateTests(BaseSetup):
    def setUp(self):
        super().setUp()
        self.client.login(username='u1@example.com', password='pass12345')

    def test_update(self):
        resp = self.client.post(
            reverse('profiles:edit'),
            data=json.dumps({'display_name': 'Uno', 'bio': 'Likes graphs'}),
            content_type='application/json',
        )
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()['profile']['name'], 'Uno')
        self.user.profile.refresh_from_db()
        self.assertEqual(self.user.profile.bio, 'Likes graphs')

    def test_blank_display_name(self):
        resp = self.client.post(reverse('profiles:edit'), {'display_name': '  '})
        self.assertEqual(resp.status_code, 400)
        self.assertIn('display_name', resp.json()['errors'])
