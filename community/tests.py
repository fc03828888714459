import json
from unittest import mock

from django.core.exceptions import PermissionDenied, ValidationError
from django.db import DatabaseError
from django.test import TestCase, Client
from django.urls import reverse
from django.contrib.auth.models import User

from community import services
from community.models import Community, MembershipState, Post, Reply
from notifications import services as notification_services
from notifications.models import Notification, NotificationType
from studyroom.models import StudyRoom, RoomMessage, RoomPost, Resource, RoomParticipant


def make_user(email, name=None):
    user = User.objects.create_user(username=email, email=email, password='pass12345')
    user.profile.display_name = name or email.split('@')[0].title()
    user.profile.save()
    return user


class BaseSetup(TestCase):
    def setUp(self):
        self.client = Client()

        self.alice = make_user('alice@example.com')
        self.bob = make_user('bob@example.com')
        self.carol = make_user('carol@example.com')

        self.community = services.create_community(self.alice, 'Algorithms101', 'Sorting and searching')

    def login(self, user):
        self.client.login(username=user.username, password='pass12345')

    def post_json(self, url, data=None):
        return self.client.post(url, data=json.dumps(data or {}), content_type='application/json')

    def join_requests_for(self, user):
        return Notification.objects.filter(
            community=self.community, sender=user, notif_type=NotificationType.JOIN_REQUEST
        )

    def assert_exclusive(self, user):
        in_members = self.community.members.filter(pk=user.pk).exists()
        in_requests = self.community.join_requests.filter(pk=user.pk).exists()
        self.assertFalse(in_members and in_requests)


class RequestJoinTests(BaseSetup):
    def test_request_adds_to_join_requests_and_notifies_creator(self):
        state = services.request_join(self.bob, self.community.id)

        self.assertEqual(state, MembershipState.PENDING)
        self.assertTrue(self.community.join_requests.filter(pk=self.bob.pk).exists())
        self.assertFalse(self.community.members.filter(pk=self.bob.pk).exists())

        notifications = self.join_requests_for(self.bob)
        self.assertEqual(notifications.count(), 1)
        n = notifications.get()
        self.assertEqual(n.recipient, self.alice)
        self.assertEqual(n.community_creator, self.alice)
        self.assertFalse(n.is_read)
        self.assertIn('Bob requested to join Algorithms101', n.message)

    def test_request_twice_is_idempotent(self):
        services.request_join(self.bob, self.community.id)
        state = services.request_join(self.bob, self.community.id)

        self.assertEqual(state, MembershipState.PENDING)
        self.assertEqual(self.community.join_requests.filter(pk=self.bob.pk).count(), 1)
        self.assertEqual(self.join_requests_for(self.bob).count(), 1)

    def test_member_request_is_noop(self):
        self.community.members.add(self.bob)
        state = services.request_join(self.bob, self.community.id)

        self.assertEqual(state, MembershipState.MEMBER)
        self.assertFalse(self.community.join_requests.filter(pk=self.bob.pk).exists())
        self.assertEqual(self.join_requests_for(self.bob).count(), 0)

    def test_creator_is_member(self):
        self.assertEqual(services.request_join(self.alice, self.community.id), MembershipState.MEMBER)
        self.assertEqual(Notification.objects.count(), 0)

    def test_missing_community(self):
        with self.assertRaises(Community.DoesNotExist):
            services.request_join(self.bob, 999999)


class ApproveTests(BaseSetup):
    def setUp(self):
        super().setUp()
        services.request_join(self.bob, self.community.id)
        self.request = self.join_requests_for(self.bob).get()

    def test_approve_moves_requester_into_members(self):
        resolution = services.approve(self.request.id, self.alice)

        self.assertTrue(self.community.members.filter(pk=self.bob.pk).exists())
        self.assertFalse(self.community.join_requests.filter(pk=self.bob.pk).exists())
        self.assertEqual(resolution.notif_type, NotificationType.APPROVAL)
        self.assertEqual(resolution.recipient, self.bob)
        self.assertEqual(resolution.request, self.request)

        self.request.refresh_from_db()
        self.assertTrue(self.request.is_read)
        self.assertEqual(
            Notification.objects.filter(recipient=self.bob, notif_type=NotificationType.APPROVAL).count(), 1
        )

    def test_retry_returns_existing_resolution(self):
        first = services.approve(self.request.id, self.alice)
        second = services.approve(self.request.id, self.alice)

        self.assertEqual(first.pk, second.pk)
        self.assertEqual(
            Notification.objects.filter(recipient=self.bob, notif_type=NotificationType.APPROVAL).count(), 1
        )
        self.assertEqual(self.community.members.filter(pk=self.bob.pk).count(), 1)

    def test_reject_after_approve_does_not_undo_membership(self):
        services.approve(self.request.id, self.alice)
        resolution = services.reject(self.request.id, self.alice)

        self.assertEqual(resolution.notif_type, NotificationType.APPROVAL)
        self.assertTrue(self.community.members.filter(pk=self.bob.pk).exists())

    def test_only_creator_can_approve(self):
        with self.assertRaises(PermissionDenied):
            services.approve(self.request.id, self.carol)

        self.assertFalse(self.community.members.filter(pk=self.bob.pk).exists())
        self.assertTrue(self.community.join_requests.filter(pk=self.bob.pk).exists())
        self.request.refresh_from_db()
        self.assertFalse(self.request.is_read)
        self.assertFalse(Notification.objects.filter(notif_type=NotificationType.APPROVAL).exists())

    def test_requester_state_is_exclusive_throughout(self):
        self.assert_exclusive(self.bob)
        services.approve(self.request.id, self.alice)
        self.assert_exclusive(self.bob)
        self.assertEqual(services.membership_state(self.bob, self.community), MembershipState.MEMBER)

    def test_reject_after_deleted_approval_is_refused(self):
        approval = services.approve(self.request.id, self.alice)
        notification_services.delete_notification(approval.id, self.bob)

        with self.assertRaises(ValidationError):
            services.reject(self.request.id, self.alice)

        self.assertEqual(services.membership_state(self.bob, self.community), MembershipState.MEMBER)
        self.assertFalse(
            Notification.objects.filter(recipient=self.bob, notif_type=NotificationType.REJECTION).exists()
        )

    def test_store_failure_rolls_back_approval(self):
        with mock.patch.object(Notification.objects, 'create', side_effect=DatabaseError('disk I/O error')):
            with self.assertLogs('community.services', level='ERROR') as logs:
                with self.assertRaises(DatabaseError):
                    services.approve(self.request.id, self.alice)

        self.assertIn(f'Resolving join request {self.request.id} failed', logs.output[0])
        self.assertFalse(self.community.members.filter(pk=self.bob.pk).exists())
        self.assertTrue(self.community.join_requests.filter(pk=self.bob.pk).exists())
        self.request.refresh_from_db()
        self.assertFalse(self.request.is_read)
        self.assertEqual(services.membership_state(self.bob, self.community), MembershipState.PENDING)

        # Nothing was half-done, so a retry goes through normally.
        services.approve(self.request.id, self.alice)
        self.assertEqual(services.membership_state(self.bob, self.community), MembershipState.MEMBER)

    def test_store_failure_over_http(self):
        self.login(self.alice)
        with mock.patch.object(Notification.objects, 'create', side_effect=DatabaseError('disk I/O error')):
            with self.assertLogs('studybuddy.utils', level='ERROR'):
                resp = self.client.post(reverse('notifications:approve', args=[self.request.id]))

        self.assertEqual(resp.status_code, 500)
        self.assertEqual(resp.json()['code'], 'store_error')
        self.assertTrue(self.community.join_requests.filter(pk=self.bob.pk).exists())


class RejectTests(BaseSetup):
    def setUp(self):
        super().setUp()
        services.request_join(self.bob, self.community.id)
        self.request = self.join_requests_for(self.bob).get()

    def test_reject_clears_request_without_membership(self):
        resolution = services.reject(self.request.id, self.alice)

        self.assertFalse(self.community.members.filter(pk=self.bob.pk).exists())
        self.assertFalse(self.community.join_requests.filter(pk=self.bob.pk).exists())
        self.assertEqual(resolution.notif_type, NotificationType.REJECTION)
        self.assertEqual(
            Notification.objects.filter(recipient=self.bob, notif_type=NotificationType.REJECTION).count(), 1
        )
        self.request.refresh_from_db()
        self.assertTrue(self.request.is_read)
        self.assertEqual(services.membership_state(self.bob, self.community), MembershipState.NONE)

    def test_rejected_user_can_ask_again(self):
        services.reject(self.request.id, self.alice)
        state = services.request_join(self.bob, self.community.id)

        self.assertEqual(state, MembershipState.PENDING)
        self.assertEqual(self.join_requests_for(self.bob).count(), 2)
        self.assertEqual(self.join_requests_for(self.bob).filter(is_read=False).count(), 1)

    def test_approve_after_deleted_rejection_is_refused(self):
        rejection = services.reject(self.request.id, self.alice)
        notification_services.delete_notification(rejection.id, self.bob)

        with self.assertRaises(ValidationError):
            services.approve(self.request.id, self.alice)

        self.assertEqual(services.membership_state(self.bob, self.community), MembershipState.NONE)
        self.assertFalse(Notification.objects.filter(notif_type=NotificationType.APPROVAL).exists())

    def test_handled_request_over_http(self):
        rejection = services.reject(self.request.id, self.alice)
        notification_services.delete_notification(rejection.id, self.bob)

        self.login(self.alice)
        resp = self.client.post(reverse('notifications:approve', args=[self.request.id]))
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()['message'], 'This join request has already been handled.')
        self.assertFalse(self.community.members.filter(pk=self.bob.pk).exists())

    def test_only_creator_can_reject(self):
        with self.assertRaises(PermissionDenied):
            services.reject(self.request.id, self.bob)
        self.assertTrue(self.community.join_requests.filter(pk=self.bob.pk).exists())


class DeleteCommunityTests(BaseSetup):
    def setUp(self):
        super().setUp()
        self.community.members.add(self.bob)
        self.post = Post.objects.create(community=self.community, author=self.bob, content='Hello')
        self.reply = Reply.objects.create(post=self.post, author=self.alice, content='Hi')
        self.room = StudyRoom.objects.create(community=self.community, name='Graphs', creator=self.bob)
        self.message = RoomMessage.objects.create(room=self.room, author=self.bob, content='BFS?')
        self.room_post = RoomPost.objects.create(room=self.room, author=self.bob, content='Notes')
        self.resource = Resource.objects.create(
            room=self.room, author=self.bob, title='CLRS', url='https://example.com/clrs'
        )
        RoomParticipant.objects.create(room=self.room, user=self.bob, display_name='Bob')
        services.request_join(self.carol, self.community.id)

    def test_cascade_removes_everything(self):
        counts = services.delete_community(self.community.id, self.alice)

        self.assertFalse(Community.objects.filter(pk=self.community.pk).exists())
        self.assertFalse(Post.objects.filter(pk=self.post.pk).exists())
        self.assertFalse(Reply.objects.filter(pk=self.reply.pk).exists())
        self.assertFalse(StudyRoom.objects.filter(pk=self.room.pk).exists())
        self.assertFalse(RoomMessage.objects.filter(pk=self.message.pk).exists())
        self.assertFalse(RoomPost.objects.filter(pk=self.room_post.pk).exists())
        self.assertFalse(Resource.objects.filter(pk=self.resource.pk).exists())
        self.assertFalse(Notification.objects.filter(community_id=self.community.pk).exists())

        self.assertEqual(counts['posts'], 1)
        self.assertEqual(counts['study_rooms'], 1)
        self.assertEqual(counts['messages'], 1)
        self.assertEqual(counts['resources'], 1)
        self.assertEqual(counts['notifications'], 1)

    def test_only_creator_can_delete(self):
        with self.assertRaises(PermissionDenied):
            services.delete_community(self.community.id, self.bob)
        self.assertTrue(Community.objects.filter(pk=self.community.pk).exists())
        self.assertTrue(Post.objects.filter(pk=self.post.pk).exists())

    def test_second_delete_reports_not_found(self):
        services.delete_community(self.community.id, self.alice)
        with self.assertRaises(Community.DoesNotExist):
            services.delete_community(self.community.id, self.alice)

    def test_delete_view(self):
        self.login(self.alice)
        resp = self.client.post(reverse('delete_community', args=[self.community.id]))
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()['status'], 'success')
        self.assertFalse(Community.objects.filter(pk=self.community.pk).exists())

        resp = self.client.post(reverse('delete_community', args=[self.community.id]))
        self.assertEqual(resp.status_code, 404)

    def assert_nothing_deleted(self):
        self.assertTrue(Community.objects.filter(pk=self.community.pk).exists())
        self.assertTrue(Post.objects.filter(pk=self.post.pk).exists())
        self.assertTrue(Reply.objects.filter(pk=self.reply.pk).exists())
        self.assertTrue(StudyRoom.objects.filter(pk=self.room.pk).exists())
        self.assertTrue(RoomMessage.objects.filter(pk=self.message.pk).exists())
        self.assertTrue(RoomPost.objects.filter(pk=self.room_post.pk).exists())
        self.assertTrue(Resource.objects.filter(pk=self.resource.pk).exists())
        self.assertEqual(RoomParticipant.objects.filter(room=self.room).count(), 1)
        self.assertEqual(Notification.objects.filter(community=self.community).count(), 1)
        self.assertTrue(self.community.members.filter(pk=self.bob.pk).exists())
        self.assertTrue(self.community.join_requests.filter(pk=self.carol.pk).exists())

    def test_store_failure_rolls_back_cascade(self):
        with mock.patch('community.services.purge_room', side_effect=DatabaseError('disk I/O error')):
            with self.assertLogs('community.services', level='ERROR') as logs:
                with self.assertRaises(DatabaseError):
                    services.delete_community(self.community.id, self.alice)

        self.assertIn(f'Cascade delete of community {self.community.id} failed', logs.output[0])
        self.assert_nothing_deleted()

    def test_store_failure_late_in_cascade(self):
        with mock.patch.object(Community, 'delete', side_effect=DatabaseError('disk I/O error')):
            with self.assertLogs('community.services', level='ERROR'):
                with self.assertRaises(DatabaseError):
                    services.delete_community(self.community.id, self.alice)

        self.assert_nothing_deleted()

    def test_store_failure_over_http(self):
        self.login(self.alice)
        with mock.patch('community.services.purge_room', side_effect=DatabaseError('disk I/O error')):
            with self.assertLogs('studybuddy.utils', level='ERROR'):
                resp = self.client.post(reverse('delete_community', args=[self.community.id]))

        self.assertEqual(resp.status_code, 500)
        self.assertEqual(resp.json()['code'], 'store_error')
        self.assert_nothing_deleted()

    def test_delete_view_forbidden(self):
        self.login(self.bob)
        resp = self.client.post(reverse('delete_community', args=[self.community.id]))
        self.assertEqual(resp.status_code, 403)
        self.assertTrue(Community.objects.filter(pk=self.community.pk).exists())


class JoinWorkflowScenarioTests(BaseSetup):
    def test_request_approve_end_to_end(self):
        self.login(self.bob)
        resp = self.client.post(reverse('join_community', args=[self.community.id]))
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()['membership'], 'pending')

        self.login(self.alice)
        pending = self.client.get(reverse('notifications:pending')).json()['notifications']
        self.assertEqual(len(pending), 1)
        self.assertEqual(pending[0]['sender_id'], self.bob.id)

        resp = self.client.post(reverse('notifications:approve', args=[pending[0]['id']]))
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()['resolution']['type'], 'approval')

        pending = self.client.get(reverse('notifications:pending')).json()['notifications']
        self.assertEqual(pending, [])

        self.assertIn(self.community, self.bob.joined_communities.all())
        self.assertEqual(
            Notification.objects.filter(recipient=self.bob, notif_type=NotificationType.APPROVAL).count(), 1
        )

        self.login(self.bob)
        feed = self.client.get(reverse('notifications:feed')).json()['notifications']
        self.assertEqual([n['type'] for n in feed if n['user_id'] == self.bob.id], ['approval'])

        detail = self.client.get(reverse('community_detail', args=[self.community.id])).json()
        self.assertEqual(detail['membership'], 'member')

    def test_rapid_double_request(self):
        self.login(self.bob)
        url = reverse('join_community', args=[self.community.id])
        first = self.client.post(url)
        second = self.client.post(url)

        self.assertEqual(first.json()['membership'], 'pending')
        self.assertEqual(second.json()['membership'], 'pending')
        self.assertEqual(self.community.join_requests.filter(pk=self.bob.pk).count(), 1)
        self.assertEqual(self.join_requests_for(self.bob).count(), 1)

    def test_non_creator_cannot_approve_over_http(self):
        services.request_join(self.bob, self.community.id)
        request = self.join_requests_for(self.bob).get()

        self.login(self.carol)
        resp = self.client.post(reverse('notifications:approve', args=[request.id]))
        self.assertEqual(resp.status_code, 403)
        self.assertFalse(self.community.members.filter(pk=self.bob.pk).exists())

    def test_join_missing_community(self):
        self.login(self.bob)
        resp = self.client.post(reverse('join_community', args=[999999]))
        self.assertEqual(resp.status_code, 404)

    def test_join_requires_post(self):
        self.login(self.bob)
        resp = self.client.get(reverse('join_community', args=[self.community.id]))
        self.assertEqual(resp.status_code, 405)


class DiscoverCommunitiesTests(BaseSetup):
    def test_requires_login(self):
        resp = self.client.get(reverse('discover_communities'))
        self.assertEqual(resp.status_code, 302)

    def test_list_and_membership_state(self):
        services.request_join(self.bob, self.community.id)
        self.login(self.bob)
        resp = self.client.get(reverse('discover_communities'))
        self.assertEqual(resp.status_code, 200)
        communities = resp.json()['communities']
        self.assertEqual(len(communities), 1)
        self.assertEqual(communities[0]['membership'], 'pending')
        self.assertFalse(communities[0]['can_open'])

    def test_search_query(self):
        services.create_community(self.bob, 'PyStudy', '')
        self.login(self.bob)
        resp = self.client.get(reverse('discover_communities'), {'q': 'pyst'})
        names = [c['name'] for c in resp.json()['communities']]
        self.assertEqual(names, ['PyStudy'])

    def test_my_communities(self):
        services.create_community(self.bob, 'PyStudy', '')
        self.login(self.bob)
        data = self.client.get(reverse('my_communities')).json()
        self.assertEqual([c['name'] for c in data['joined']], ['PyStudy'])
        self.assertEqual([c['name'] for c in data['created']], ['PyStudy'])


class CreateCommunityTests(BaseSetup):
    def test_create_success(self):
        self.login(self.bob)
        resp = self.post_json(reverse('create_community'), {'name': 'NewComm', 'description': 'Nice'})
        self.assertEqual(resp.status_code, 201)
        self.assertEqual(resp.json()['status'], 'success')
        community = Community.objects.get(name='NewComm')
        self.assertEqual(community.creator, self.bob)
        self.assertTrue(community.members.filter(pk=self.bob.pk).exists())

    def test_name_required(self):
        self.login(self.bob)
        resp = self.post_json(reverse('create_community'), {'name': '   '})
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()['message'], 'Name is required.')

    def test_duplicate_name(self):
        self.login(self.bob)
        resp = self.post_json(reverse('create_community'), {'name': 'algorithms101'})
        self.assertEqual(resp.status_code, 409)
        self.assertEqual(resp.json()['code'], 'duplicate_name')

    def test_form_encoded_body(self):
        self.login(self.bob)
        resp = self.client.post(reverse('create_community'), {'name': 'FormComm'})
        self.assertEqual(resp.status_code, 201)
        self.assertTrue(Community.objects.filter(name='FormComm').exists())


class UpdateCommunityTests(BaseSetup):
    def test_only_creator_can_update(self):
        self.login(self.bob)
        resp = self.post_json(reverse('update_community', args=[self.community.id]), {'name': 'X'})
        self.assertEqual(resp.status_code, 403)

    def test_update_success(self):
        self.login(self.alice)
        resp = self.post_json(
            reverse('update_community', args=[self.community.id]),
            {'name': 'Algorithms102', 'description': 'updated'},
        )
        self.assertEqual(resp.status_code, 200)
        self.community.refresh_from_db()
        self.assertEqual(self.community.name, 'Algorithms102')
        self.assertEqual(self.community.description, 'updated')


class CommunityDetailTests(BaseSetup):
    def setUp(self):
        super().setUp()
        self.post = services.create_post(self.alice, self.community.id, 'Welcome!')

    def test_non_member_sees_no_posts(self):
        self.login(self.bob)
        data = self.client.get(reverse('community_detail', args=[self.community.id])).json()
        self.assertEqual(data['membership'], 'none')
        self.assertEqual(data['posts'], [])

    def test_member_sees_posts_and_rooms(self):
        self.community.members.add(self.bob)
        StudyRoom.objects.create(community=self.community, name='Graphs', creator=self.bob)
        self.login(self.bob)
        data = self.client.get(reverse('community_detail', args=[self.community.id])).json()
        self.assertEqual([p['content'] for p in data['posts']], ['Welcome!'])
        self.assertEqual([r['name'] for r in data['study_rooms']], ['Graphs'])
        self.assertEqual(data['post_count'], 1)

    def test_detail_is_read_only_for_creator(self):
        self.community.members.remove(self.alice)
        self.login(self.alice)
        data = self.client.get(reverse('community_detail', args=[self.community.id])).json()

        self.assertEqual(data['membership'], 'member')
        self.assertEqual([p['content'] for p in data['posts']], ['Welcome!'])
        self.assertFalse(self.community.members.filter(pk=self.alice.pk).exists())

    def test_missing_community(self):
        self.login(self.bob)
        resp = self.client.get(reverse('community_detail', args=[999999]))
        self.assertEqual(resp.status_code, 404)


class PostTests(BaseSetup):
    def setUp(self):
        super().setUp()
        self.community.members.add(self.bob)
        self.post = services.create_post(self.bob, self.community.id, 'First post')

    def test_must_be_member(self):
        self.login(self.carol)
        resp = self.post_json(reverse('create_post', args=[self.community.id]), {'content': 'hi'})
        self.assertEqual(resp.status_code, 403)

    def test_validation(self):
        self.login(self.bob)
        resp = self.post_json(reverse('create_post', args=[self.community.id]), {'content': ''})
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()['message'], 'Content is required.')

    def test_create_success(self):
        self.login(self.bob)
        resp = self.post_json(reverse('create_post', args=[self.community.id]), {'content': 'Second'})
        self.assertEqual(resp.status_code, 201)
        self.assertTrue(Post.objects.filter(content='Second', author=self.bob).exists())

    def test_like_toggles(self):
        self.login(self.bob)
        url = reverse('toggle_like', args=[self.post.id])
        resp = self.client.post(url)
        self.assertEqual(resp.json(), {'status': 'success', 'liked': True, 'likes': 1})
        resp = self.client.post(url)
        self.assertEqual(resp.json(), {'status': 'success', 'liked': False, 'likes': 0})

    def test_reply(self):
        self.login(self.alice)
        resp = self.post_json(reverse('create_reply', args=[self.post.id]), {'content': 'Nice!'})
        self.assertEqual(resp.status_code, 201)
        self.assertTrue(Reply.objects.filter(post=self.post, author=self.alice).exists())

    def test_delete_by_author_or_creator_only(self):
        self.login(self.carol)
        resp = self.client.post(reverse('delete_post', args=[self.post.id]))
        self.assertEqual(resp.status_code, 403)

        self.login(self.alice)
        resp = self.client.post(reverse('delete_post', args=[self.post.id]))
        self.assertEqual(resp.status_code, 200)
        self.assertFalse(Post.objects.filter(pk=self.post.pk).exists())
