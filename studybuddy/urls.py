from django.contrib import admin
from django.urls import path, include

urlpatterns = [
    path('', include('main.urls')),
    path('admin/', admin.site.urls),
    path('auth/', include('authentication.urls')),
    path('profile/', include('profiles.urls')),
    path('communities/', include('community.urls')),
    path('notifications/', include('notifications.urls')),
    path('studyrooms/', include('studyroom.urls')),
    path('realtime/', include('realtime.urls')),
]
