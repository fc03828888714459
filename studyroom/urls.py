from django.urls import path
from . import views

app_name = 'studyroom'

urlpatterns = [
    path('community/<int:community_id>/', views.community_rooms, name='community_rooms'),
    path('community/<int:community_id>/create/', views.create_room, name='create_room'),
    path('<int:room_id>/', views.room_detail, name='room_detail'),
    path('<int:room_id>/delete/', views.delete_room, name='delete_room'),
    path('<int:room_id>/join/', views.join_room, name='join_room'),
    path('<int:room_id>/leave/', views.leave_room, name='leave_room'),
    path('<int:room_id>/status/', views.update_status, name='update_status'),

    path('<int:room_id>/messages/', views.messages, name='messages'),
    path('<int:room_id>/messages/send/', views.send_message, name='send_message'),
    path('messages/<int:message_id>/like/', views.like_message, name='like_message'),

    path('<int:room_id>/discussions/', views.discussions, name='discussions'),
    path('<int:room_id>/discussions/create/', views.create_discussion, name='create_discussion'),
    path('discussions/<int:post_id>/like/', views.like_discussion, name='like_discussion'),

    path('<int:room_id>/resources/', views.resources, name='resources'),
    path('<int:room_id>/resources/add/', views.add_resource, name='add_resource'),
    path('resources/<int:resource_id>/delete/', views.delete_resource, name='delete_resource'),
]
