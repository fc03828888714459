from django.urls import path
from authentication.views import signup, login, check_login, logout

app_name = 'authentication'

urlpatterns = [
    path('signup/', signup, name='signup'),
    path('login/', login, name='login'),
    path('check_login/', check_login, name='check_login'),
    path('logout/', logout, name='logout'),
]
