import json

from django.core.exceptions import PermissionDenied, ValidationError
from django.test import TestCase, Client
from django.urls import reverse
from django.contrib.auth.models import User

from community import services as membership
from realtime.models import SocketEvent
from studyroom import services
from studyroom.models import StudyRoom, RoomParticipant, RoomMessage, RoomPost, Resource


class BaseSetup(TestCase):
    def setUp(self):
        self.client = Client()
        self.alice = User.objects.create_user(username='alice@example.com', email='alice@example.com', password='pass12345')
        self.bob = User.objects.create_user(username='bob@example.com', email='bob@example.com', password='pass12345')
        self.carol = User.objects.create_user(username='carol@example.com', email='carol@example.com', password='pass12345')

        self.community = membership.create_community(self.alice, 'Algorithms101')
        self.community.members.add(self.bob)
        self.room = services.create_room(self.alice, self.community.id, 'Graphs', 'BFS and DFS')

    def login(self, user):
        self.client.login(username=user.username, password='pass12345')

    def post_json(self, url, data=None):
        return self.client.post(url, data=json.dumps(data or {}), content_type='application/json')


class RoomServiceTests(BaseSetup):
    def test_create_requires_membership(self):
        with self.assertRaises(PermissionDenied):
            services.create_room(self.carol, self.community.id, 'Nope')

    def test_create_requires_name(self):
        with self.assertRaises(ValidationError):
            services.create_room(self.bob, self.community.id, '  ')

    def test_join_is_idempotent(self):
        services.join_room(self.bob, self.room.id)
        services.join_room(self.bob, self.room.id)
        self.assertEqual(RoomParticipant.objects.filter(room=self.room, user=self.bob).count(), 1)
        self.assertEqual(SocketEvent.objects.filter(event='room:join').count(), 1)

    def test_join_emits_on_room_channel(self):
        services.join_room(self.bob, self.room.id)
        record = SocketEvent.objects.get(event='room:join')
        self.assertEqual(record.room_key, f'studyroom_{self.room.id}')
        self.assertEqual(record.payload['user_id'], self.bob.id)

    def test_non_member_cannot_join(self):
        with self.assertRaises(PermissionDenied):
            services.join_room(self.carol, self.room.id)

    def test_leave(self):
        services.join_room(self.bob, self.room.id)
        self.assertTrue(services.leave_room(self.bob, self.room.id))
        self.assertFalse(services.leave_room(self.bob, self.room.id))
        self.assertEqual(self.room.participant_ids, [])

    def test_set_status(self):
        services.join_room(self.bob, self.room.id)
        participant = services.set_status(self.bob, self.room.id, 'away')
        self.assertEqual(participant.status, RoomParticipant.Status.AWAY)
        with self.assertRaises(ValidationError):
            services.set_status(self.bob, self.room.id, 'asleep')

    def test_rejoin_reactivates(self):
        services.join_room(self.bob, self.room.id)
        services.set_status(self.bob, self.room.id, 'away')
        participant = services.join_room(self.bob, self.room.id)
        self.assertEqual(participant.status, RoomParticipant.Status.ACTIVE)

    def test_message_like_toggles(self):
        message = services.send_message(self.bob, self.room.id, 'hello')
        self.assertEqual(services.toggle_message_like(self.alice, message.id), (True, 1))
        self.assertEqual(services.toggle_message_like(self.alice, message.id), (False, 0))

    def test_resource_url_is_validated(self):
        with self.assertRaises(ValidationError):
            services.add_resource(self.bob, self.room.id, 'Book', 'not a url')
        self.assertEqual(Resource.objects.count(), 0)

    def test_delete_resource_permissions(self):
        resource = services.add_resource(self.bob, self.room.id, 'CLRS', 'https://example.com/clrs')
        with self.assertRaises(PermissionDenied):
            services.delete_resource(resource.id, self.carol)
        services.delete_resource(resource.id, self.alice)
        self.assertFalse(Resource.objects.filter(pk=resource.pk).exists())

    def test_delete_room_purges_contents(self):
        services.join_room(self.bob, self.room.id)
        services.send_message(self.bob, self.room.id, 'hello')
        services.create_room_post(self.bob, self.room.id, 'notes')
        services.add_resource(self.bob, self.room.id, 'CLRS', 'https://example.com/clrs')

        with self.assertRaises(PermissionDenied):
            services.delete_room(self.room.id, self.bob)

        counts = services.delete_room(self.room.id, self.alice)
        self.assertEqual(counts, {'messages': 1, 'room_posts': 1, 'resources': 1, 'participants': 1})
        self.assertFalse(StudyRoom.objects.filter(pk=self.room.pk).exists())
        self.assertEqual(RoomMessage.objects.count(), 0)
        self.assertEqual(RoomPost.objects.count(), 0)


class RoomViewTests(BaseSetup):
    def test_create_room(self):
        self.login(self.bob)
        resp = self.post_json(reverse('studyroom:create_room', args=[self.community.id]), {'name': 'Trees'})
        self.assertEqual(resp.status_code, 201)
        self.assertTrue(StudyRoom.objects.filter(name='Trees', creator=self.bob).exists())

    def test_create_room_non_member(self):
        self.login(self.carol)
        resp = self.post_json(reverse('studyroom:create_room', args=[self.community.id]), {'name': 'Trees'})
        self.assertEqual(resp.status_code, 403)

    def test_detail(self):
        services.join_room(self.bob, self.room.id)
        self.login(self.bob)
        data = self.client.get(reverse('studyroom:room_detail', args=[self.room.id])).json()
        self.assertEqual(data['name'], 'Graphs')
        self.assertEqual(data['participants'], [self.bob.id])
        self.assertFalse(data['is_creator'])

    def test_detail_hidden_from_non_members(self):
        self.login(self.carol)
        resp = self.client.get(reverse('studyroom:room_detail', args=[self.room.id]))
        self.assertEqual(resp.status_code, 403)

    def test_missing_room(self):
        self.login(self.bob)
        resp = self.client.get(reverse('studyroom:room_detail', args=[999999]))
        self.assertEqual(resp.status_code, 404)

    def test_messages_flow(self):
        self.login(self.bob)
        resp = self.post_json(reverse('studyroom:send_message', args=[self.room.id]), {'content': 'Hi all'})
        self.assertEqual(resp.status_code, 201)
        message_id = resp.json()['message']['id']

        resp = self.client.post(reverse('studyroom:like_message', args=[message_id]))
        self.assertEqual(resp.json()['likes'], 1)

        data = self.client.get(reverse('studyroom:messages', args=[self.room.id])).json()
        self.assertEqual([m['content'] for m in data['messages']], ['Hi all'])
        self.assertEqual(data['messages'][0]['likes'], [self.bob.id])

    def test_empty_message(self):
        self.login(self.bob)
        resp = self.post_json(reverse('studyroom:send_message', args=[self.room.id]), {'content': ''})
        self.assertEqual(resp.status_code, 400)

    def test_discussions_flow(self):
        self.login(self.bob)
        resp = self.post_json(reverse('studyroom:create_discussion', args=[self.room.id]), {'content': 'Notes'})
        self.assertEqual(resp.status_code, 201)
        post_id = resp.json()['post']['id']

        resp = self.client.post(reverse('studyroom:like_discussion', args=[post_id]))
        self.assertTrue(resp.json()['liked'])

        data = self.client.get(reverse('studyroom:discussions', args=[self.room.id])).json()
        self.assertEqual(data['posts'][0]['likes'], 1)

    def test_resources_flow(self):
        self.login(self.bob)
        resp = self.post_json(
            reverse('studyroom:add_resource', args=[self.room.id]),
            {'title': 'CLRS', 'url': 'https://example.com/clrs'},
        )
        self.assertEqual(resp.status_code, 201)
        resource_id = resp.json()['resource']['id']

        data = self.client.get(reverse('studyroom:resources', args=[self.room.id])).json()
        self.assertEqual([r['title'] for r in data['resources']], ['CLRS'])

        resp = self.client.post(reverse('studyroom:delete_resource', args=[resource_id]))
        self.assertEqual(resp.status_code, 200)

    def test_join_leave_status(self):
        self.login(self.bob)
        resp = self.client.post(reverse('studyroom:join_room', args=[self.room.id]))
        self.assertEqual(resp.json()['participant']['status'], 'active')

        resp = self.post_json(reverse('studyroom:update_status', args=[self.room.id]), {'status': 'away'})
        self.assertEqual(resp.json()['participant']['status'], 'away')

        resp = self.client.post(reverse('studyroom:leave_room', args=[self.room.id]))
        self.assertEqual(resp.json(), {'status': 'success', 'left': True})

    def test_community_rooms(self):
        self.login(self.bob)
        data = self.client.get(reverse('studyroom:community_rooms', args=[self.community.id])).json()
        self.assertEqual([r['name'] for r in data['rooms']], ['Graphs'])

        self.login(self.carol)
        data = self.client.get(reverse('studyroom:community_rooms', args=[self.community.id])).json()
        self.assertEqual(data['rooms'], [])

    def test_delete_room_view(self):
        self.login(self.bob)
        resp = self.client.post(reverse('studyroom:delete_room', args=[self.room.id]))
        self.assertEqual(resp.status_code, 403)

        self.login(self.alice)
        resp = self.client.post(reverse('studyroom:delete_room', args=[self.room.id]))
        self.assertEqual(resp.status_code, 200)
        self.assertFalse(StudyRoom.objects.filter(pk=self.room.pk).exists())
