from django.core.exceptions import PermissionDenied, ValidationError
from django.db import IntegrityError, transaction
from django.test import TestCase, Client
from django.urls import reverse
from django.contrib.auth.models import User

from community import services as membership
from notifications import selectors, services
from notifications.models import Notification, NotificationType
from realtime.services import user_group


class BaseSetup(TestCase):
    def setUp(self):
        self.client = Client()
        self.alice = User.objects.create_user(username='alice@example.com', email='alice@example.com', password='pass12345')
        self.bob = User.objects.create_user(username='bob@example.com', email='bob@example.com', password='pass12345')
        self.carol = User.objects.create_user(username='carol@example.com', email='carol@example.com', password='pass12345')

        self.community = membership.create_community(self.alice, 'Algorithms101')
        membership.request_join(self.bob, self.community.id)
        self.request = Notification.objects.get(sender=self.bob, notif_type=NotificationType.JOIN_REQUEST)

    def login(self, user):
        self.client.login(username=user.username, password='pass12345')


class SelectorTests(BaseSetup):
    def test_pending_queue_belongs_to_creator(self):
        self.assertEqual(list(selectors.pending_requests_for(self.alice)), [self.request])
        self.assertEqual(list(selectors.pending_requests_for(self.bob)), [])

    def test_pending_queue_newest_first(self):
        membership.request_join(self.carol, self.community.id)
        senders = [n.sender for n in selectors.pending_requests_for(self.alice)]
        self.assertEqual(senders, [self.carol, self.bob])

    def test_feed_excludes_pending_queue(self):
        self.assertEqual(list(selectors.feed_for(self.alice)), [])
        self.assertEqual(list(selectors.feed_for(self.bob)), [self.request])

    def test_feed_includes_received_resolution(self):
        resolution = membership.approve(self.request.id, self.alice)
        self.assertIn(resolution, selectors.feed_for(self.bob))
        self.assertIn(resolution, selectors.feed_for(self.alice))
        self.assertEqual(list(selectors.pending_requests_for(self.alice)), [])

    def test_unread_count(self):
        self.assertEqual(selectors.unread_count(self.alice), 1)
        self.assertEqual(selectors.unread_count(self.bob), 0)
        membership.reject(self.request.id, self.alice)
        self.assertEqual(selectors.unread_count(self.alice), 0)
        self.assertEqual(selectors.unread_count(self.bob), 1)

    def test_snapshot_shape(self):
        snapshot = selectors.notification_snapshot(self.alice)
        self.assertEqual(set(snapshot), {'pending', 'feed', 'unread'})
        self.assertEqual(snapshot['pending'][0]['type'], 'join_request')
        self.assertEqual(snapshot['pending'][0]['community_name'], 'Algorithms101')


class ConstraintTests(BaseSetup):
    def test_second_pending_request_is_refused(self):
        with self.assertRaises(IntegrityError):
            with transaction.atomic():
                Notification.objects.create(
                    recipient=self.alice,
                    sender=self.bob,
                    community_creator=self.alice,
                    community=self.community,
                    notif_type=NotificationType.JOIN_REQUEST,
                    message='again',
                )

    def test_second_resolution_is_refused(self):
        membership.approve(self.request.id, self.alice)
        with self.assertRaises(IntegrityError):
            with transaction.atomic():
                Notification.objects.create(
                    recipient=self.bob,
                    sender=self.alice,
                    community_creator=self.alice,
                    community=self.community,
                    notif_type=NotificationType.APPROVAL,
                    message='again',
                    request=self.request,
                )


class ServiceTests(BaseSetup):
    def test_mark_read(self):
        resolution = membership.reject(self.request.id, self.alice)
        services.mark_read(resolution.id, self.bob)
        resolution.refresh_from_db()
        self.assertTrue(resolution.is_read)

    def test_mark_read_other_user(self):
        resolution = membership.reject(self.request.id, self.alice)
        with self.assertRaises(PermissionDenied):
            services.mark_read(resolution.id, self.carol)

    def test_pending_request_cannot_be_marked_read(self):
        with self.assertRaises(ValidationError):
            services.mark_read(self.request.id, self.alice)
        self.request.refresh_from_db()
        self.assertFalse(self.request.is_read)

    def test_deleting_pending_request_withdraws_it(self):
        services.delete_notification(self.request.id, self.bob)
        self.assertFalse(Notification.objects.filter(pk=self.request.pk).exists())
        self.assertFalse(self.community.join_requests.filter(pk=self.bob.pk).exists())
        self.assertEqual(membership.membership_state(self.bob, self.community), 'none')

    def test_delete_by_stranger(self):
        with self.assertRaises(PermissionDenied):
            services.delete_notification(self.request.id, self.carol)
        self.assertTrue(Notification.objects.filter(pk=self.request.pk).exists())

    def test_changes_reach_user_groups_on_commit(self):
        with self.captureOnCommitCallbacks() as callbacks:
            membership.approve(self.request.id, self.alice)
        self.assertTrue(callbacks)


class NotificationViewTests(BaseSetup):
    def test_requires_login(self):
        resp = self.client.get(reverse('notifications:pending'))
        self.assertEqual(resp.status_code, 302)

    def test_pending(self):
        self.login(self.alice)
        data = self.client.get(reverse('notifications:pending')).json()
        self.assertEqual([n['id'] for n in data['notifications']], [self.request.id])

    def test_feed(self):
        self.login(self.bob)
        data = self.client.get(reverse('notifications:feed')).json()
        self.assertEqual([n['id'] for n in data['notifications']], [self.request.id])
        self.assertEqual(data['unread'], 0)

    def test_unread(self):
        self.login(self.alice)
        self.assertEqual(self.client.get(reverse('notifications:unread')).json(), {'unread': 1})

    def test_reject(self):
        self.login(self.alice)
        resp = self.client.post(reverse('notifications:reject', args=[self.request.id]))
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()['resolution']['type'], 'rejection')
        self.assertEqual(resp.json()['resolution']['user_id'], self.bob.id)
        self.assertFalse(self.community.members.filter(pk=self.bob.pk).exists())

    def test_approve_unknown_request(self):
        self.login(self.alice)
        resp = self.client.post(reverse('notifications:approve', args=[999999]))
        self.assertEqual(resp.status_code, 404)

    def test_approve_resolution_is_not_a_request(self):
        resolution = membership.approve(self.request.id, self.alice)
        self.login(self.alice)
        resp = self.client.post(reverse('notifications:approve', args=[resolution.id]))
        self.assertEqual(resp.status_code, 404)

    def test_mark_read_pending_request(self):
        self.login(self.alice)
        resp = self.client.post(reverse('notifications:mark_read', args=[self.request.id]))
        self.assertEqual(resp.status_code, 400)

    def test_delete(self):
        self.login(self.bob)
        resp = self.client.post(reverse('notifications:delete', args=[self.request.id]))
        self.assertEqual(resp.json(), {'success': True})
        self.assertFalse(Notification.objects.filter(pk=self.request.pk).exists())


class UserGroupTests(TestCase):
    def test_group_name(self):
        self.assertEqual(user_group(7), 'notifications.user.7')
