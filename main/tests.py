from django.test import TestCase, Client
from django.urls import reverse
from django.contrib.auth.models import User

from community import services as membership
from profiles.models import Profile
from studyroom.models import StudyRoom


class MainViewBase(TestCase):
    def setUp(self):
        self.client = Client()
        self.normal_user = User.objects.create_user(username='u1@example.com', password='pass12345')
        self.admin_user = User.objects.create_user(username='u2@example.com', password='pass12345')
        self.super_user = User.objects.create_superuser(
            username='super@example.com', password='pass12345', email='super@example.com'
        )

        self.admin_user.profile.role = Profile.Role.ADMIN
        self.admin_user.profile.display_name = 'Admin'
        self.admin_user.profile.save()

        self.c1 = membership.create_community(self.admin_user, 'C1', 'd')
        self.c2 = membership.create_community(self.super_user, 'C2', 'd')
        self.room = StudyRoom.objects.create(community=self.c1, name='R1', creator=self.admin_user)
        StudyRoom.objects.create(community=self.c1, name='Closed', creator=self.admin_user, is_active=False)


class MainViewAnonymousTests(MainViewBase):
    def test_home_anonymous(self):
        resp = self.client.get(reverse('main:home'))
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json(), {'app': 'StudyBuddy', 'is_logged_in': False})

    def test_dashboard_requires_login(self):
        resp = self.client.get(reverse('main:dashboard'))
        self.assertEqual(resp.status_code, 302)


class MainViewAuthenticatedNonAdminTests(MainViewBase):
    def test_home_shows_name(self):
        self.client.login(username='u1@example.com', password='pass12345')
        data = self.client.get(reverse('main:home')).json()
        self.assertTrue(data['is_logged_in'])
        self.assertEqual(data['name'], 'u1@example.com')

    def test_dashboard_without_communities(self):
        self.client.login(username='u1@example.com', password='pass12345')
        data = self.client.get(reverse('main:dashboard')).json()
        self.assertEqual(data['communities'], [])
        self.assertEqual(data['active_rooms'], [])
        self.assertEqual(data['created'], [])
        self.assertNotIn('total_communities', data['stats'])

    def test_dashboard_after_approval(self):
        membership.request_join(self.normal_user, self.c1.id)
        request = self.admin_user.community_notifications.get()
        membership.approve(request.id, self.admin_user)

        self.client.login(username='u1@example.com', password='pass12345')
        data = self.client.get(reverse('main:dashboard')).json()
        self.assertEqual([c['name'] for c in data['communities']], ['C1'])
        self.assertEqual([r['name'] for r in data['active_rooms']], ['R1'])
        self.assertEqual(data['stats']['unread_notifications'], 1)


class MainViewAuthenticatedAdminTests(MainViewBase):
    def test_dashboard_admin_role(self):
        self.client.login(username='u2@example.com', password='pass12345')
        data = self.client.get(reverse('main:dashboard')).json()
        self.assertEqual(data['name'], 'Admin')
        self.assertEqual(data['stats']['total_communities'], 2)
        self.assertEqual(data['stats']['created_communities'], 1)
        self.assertEqual([c['name'] for c in data['created']], ['C1'])
        self.assertTrue(data['communities'][0]['is_creator'])

    def test_dashboard_superuser(self):
        self.client.login(username='super@example.com', password='pass12345')
        data = self.client.get(reverse('main:dashboard')).json()
        self.assertEqual(data['stats']['total_communities'], 2)
