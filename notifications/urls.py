from django.urls import path
from . import views

app_name = 'notifications'

urlpatterns = [
    path('pending/', views.pending_requests, name='pending'),
    path('feed/', views.notification_feed, name='feed'),
    path('unread/', views.unread, name='unread'),
    path('<int:notif_id>/read/', views.mark_read, name='mark_read'),
    path('<int:notif_id>/delete/', views.delete_notification, name='delete'),
    path('<int:notif_id>/approve/', views.approve_request, name='approve'),
    path('<int:notif_id>/reject/', views.reject_request, name='reject'),
]
