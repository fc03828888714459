import json

from channels.db import database_sync_to_async
from channels.testing import WebsocketCommunicator
from django.contrib.auth.models import AnonymousUser, User
from django.test import TestCase, TransactionTestCase, Client, override_settings
from django.urls import reverse

from community import services as membership
from realtime import services
from realtime.consumers import EventConsumer, NotificationConsumer
from realtime.models import PresenceRoom, SocketEvent


class BaseSetup(TestCase):
    def setUp(self):
        self.client = Client()
        self.alice = User.objects.create_user(username='alice@example.com', email='alice@example.com', password='pass12345')
        self.bob = User.objects.create_user(username='bob@example.com', email='bob@example.com', password='pass12345')

    def login(self, user):
        self.client.login(username=user.username, password='pass12345')


class EventServiceTests(BaseSetup):
    def test_group_names(self):
        self.assertEqual(services.event_group('chat'), 'events.chat')
        self.assertEqual(services.event_group('room:message', 'studyroom_4'), 'events.room_message.studyroom_4')

    def test_emit_requires_user(self):
        self.assertIsNone(services.emit(AnonymousUser(), 'chat', {'text': 'hi'}))
        self.assertIsNone(services.emit(None, 'chat'))
        self.assertEqual(SocketEvent.objects.count(), 0)

    def test_emit_broadcasts_after_commit(self):
        with self.captureOnCommitCallbacks() as callbacks:
            services.emit(self.alice, 'chat', {'text': 'hi'}, room_key='room_1')
        # One poke for the global group, one for the room.
        self.assertEqual(len(callbacks), 2)

    def test_events_for_filters_by_room(self):
        services.emit(self.alice, 'chat', {'text': 'a'}, room_key='room_1')
        services.emit(self.bob, 'chat', {'text': 'b'}, room_key='room_2')
        services.emit(self.bob, 'chat', {'text': 'c'})
        services.emit(self.bob, 'other', {'text': 'd'})

        self.assertEqual([r['data']['text'] for r in services.events_for('chat')], ['a', 'b', 'c'])
        self.assertEqual([r['data']['text'] for r in services.events_for('chat', 'room_1')], ['a'])
        self.assertEqual([r['data']['text'] for r in services.events_for('chat', '')], ['c'])

    def test_events_for_keeps_latest(self):
        for i in range(5):
            services.emit(self.alice, 'tick', {'n': i})
        self.assertEqual([r['data']['n'] for r in services.events_for('tick', limit=2)], [3, 4])

    @override_settings(REALTIME_SNAPSHOT_LIMIT=3)
    def test_snapshot_limit_setting(self):
        for i in range(5):
            services.emit(self.alice, 'tick', {'n': i})
        self.assertEqual(len(services.events_for('tick')), 3)

    def test_presence(self):
        services.join_room(self.alice, 'studyroom', 3)
        services.join_room(self.bob, 'studyroom', 3)
        services.join_room(self.bob, 'studyroom', 3)
        self.assertEqual(services.room_members('studyroom', 3), [self.alice.id, self.bob.id])

        services.leave_room(self.alice, 'studyroom', 3)
        self.assertEqual(services.room_members('studyroom', 3), [self.bob.id])
        self.assertIsNone(services.leave_room(self.alice, 'studyroom', 99))
        self.assertEqual(PresenceRoom.objects.count(), 1)


class EventViewTests(BaseSetup):
    def test_emit_and_list(self):
        self.login(self.alice)
        resp = self.client.post(
            reverse('realtime:emit'),
            data=json.dumps({'event': 'chat', 'data': {'text': 'hi'}, 'room': 'r1'}),
            content_type='application/json',
        )
        self.assertEqual(resp.status_code, 201)
        self.assertEqual(resp.json()['record']['sender_id'], self.alice.id)

        data = self.client.get(reverse('realtime:events'), {'event': 'chat', 'room': 'r1'}).json()
        self.assertEqual([r['data'] for r in data['records']], [{'text': 'hi'}])

    def test_event_name_required(self):
        self.login(self.alice)
        self.assertEqual(self.client.get(reverse('realtime:events')).status_code, 400)
        self.assertEqual(self.client.post(reverse('realtime:emit')).status_code, 400)

    def test_requires_login(self):
        resp = self.client.post(reverse('realtime:emit'), {'event': 'chat'})
        self.assertEqual(resp.status_code, 302)

    def test_presence_views(self):
        self.login(self.alice)
        resp = self.client.post(reverse('realtime:join_room'), {'room_type': 'studyroom', 'room_id': '5'})
        self.assertEqual(resp.json()['members'], [self.alice.id])

        resp = self.client.post(reverse('realtime:leave_room'), {'room_type': 'studyroom', 'room_id': '5'})
        self.assertEqual(resp.json()['members'], [])

        resp = self.client.post(reverse('realtime:join_room'), {'room_type': 'studyroom'})
        self.assertEqual(resp.status_code, 400)


class ConsumerTests(TransactionTestCase):
    def setUp(self):
        self.alice = User.objects.create_user(username='alice@example.com', email='alice@example.com', password='pass12345')
        self.bob = User.objects.create_user(username='bob@example.com', email='bob@example.com', password='pass12345')

    async def open(self, consumer, path, user):
        communicator = WebsocketCommunicator(consumer.as_asgi(), path)
        communicator.scope['user'] = user
        connected, _ = await communicator.connect()
        self.assertTrue(connected)
        return communicator

    async def test_anonymous_is_refused(self):
        communicator = WebsocketCommunicator(EventConsumer.as_asgi(), '/ws/events/')
        communicator.scope['user'] = AnonymousUser()
        connected, code = await communicator.connect()
        self.assertFalse(connected)
        self.assertEqual(code, 4401)

    async def test_subscribe_receives_snapshot_then_updates(self):
        communicator = await self.open(EventConsumer, '/ws/events/', self.alice)
        self.assertEqual(await communicator.receive_json_from(), {'type': 'connected', 'user_id': self.alice.id})

        await communicator.send_json_to({'type': 'subscribe', 'event': 'chat'})
        snapshot = await communicator.receive_json_from()
        self.assertEqual(snapshot['type'], 'snapshot')
        self.assertEqual(snapshot['records'], [])

        await communicator.send_json_to({'type': 'emit', 'event': 'chat', 'data': {'text': 'hi'}})
        snapshot = await communicator.receive_json_from()
        self.assertEqual([r['data'] for r in snapshot['records']], [{'text': 'hi'}])

        await communicator.send_json_to({'type': 'ping'})
        self.assertEqual(await communicator.receive_json_from(), {'type': 'pong'})
        await communicator.disconnect()

    async def test_room_subscription_ignores_other_rooms(self):
        communicator = await self.open(EventConsumer, '/ws/events/', self.alice)
        await communicator.receive_json_from()
        await communicator.send_json_to({'type': 'subscribe', 'event': 'chat', 'room': 'r1'})
        await communicator.receive_json_from()

        await database_sync_to_async(services.emit)(self.bob, 'chat', {'text': 'elsewhere'}, 'r2')
        self.assertTrue(await communicator.receive_nothing())

        await database_sync_to_async(services.emit)(self.bob, 'chat', {'text': 'here'}, 'r1')
        snapshot = await communicator.receive_json_from()
        self.assertEqual(snapshot['room'], 'r1')
        self.assertEqual([r['data'] for r in snapshot['records']], [{'text': 'here'}])
        await communicator.disconnect()

    async def test_unknown_message(self):
        communicator = await self.open(EventConsumer, '/ws/events/', self.alice)
        await communicator.receive_json_from()
        await communicator.send_json_to({'type': 'dance'})
        reply = await communicator.receive_json_from()
        self.assertEqual(reply['type'], 'error')
        await communicator.disconnect()

    async def test_presence_messages(self):
        communicator = await self.open(EventConsumer, '/ws/events/', self.alice)
        await communicator.receive_json_from()
        await communicator.send_json_to({'type': 'join_room', 'room_type': 'studyroom', 'room_id': 3})
        self.assertEqual(await communicator.receive_json_from(), {'type': 'joined', 'room': 'studyroom_3'})
        members = await database_sync_to_async(services.room_members)('studyroom', 3)
        self.assertEqual(members, [self.alice.id])
        await communicator.disconnect()

    async def test_notifications_follow_join_requests(self):
        community = await database_sync_to_async(membership.create_community)(self.alice, 'Algorithms101')

        communicator = await self.open(NotificationConsumer, '/ws/notifications/', self.alice)
        first = await communicator.receive_json_from()
        self.assertEqual(first['type'], 'notifications')
        self.assertEqual(first['pending'], [])

        await database_sync_to_async(membership.request_join)(self.bob, community.id)
        update = await communicator.receive_json_from()
        self.assertEqual([n['sender_id'] for n in update['pending']], [self.bob.id])
        self.assertEqual(update['unread'], 1)
        await communicator.disconnect()
