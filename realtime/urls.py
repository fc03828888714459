from django.urls import path
from . import views

app_name = 'realtime'

urlpatterns = [
    path('events/', views.list_events, name='events'),
    path('emit/', views.emit_event, name='emit'),
    path('rooms/join/', views.join_presence, name='join_room'),
    path('rooms/leave/', views.leave_presence, name='leave_room'),
]
