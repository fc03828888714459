from django.urls import path
import community.views as views

urlpatterns = [
    path('', views.discover_communities, name='discover_communities'),
    path('my/', views.my_communities, name='my_communities'),
    path('create/', views.create_community, name='create_community'),
    path('<int:community_id>/', views.community_detail, name='community_detail'),
    path('<int:community_id>/join/', views.join_community, name='join_community'),
    path('<int:community_id>/update/', views.update_community, name='update_community'),
    path('<int:community_id>/delete/', views.delete_community, name='delete_community'),
    path('<int:community_id>/posts/create/', views.create_post, name='create_post'),
    path('post/<int:post_id>/like/', views.toggle_like, name='toggle_like'),
    path('post/<int:post_id>/reply/', views.create_reply, name='create_reply'),
    path('post/<int:post_id>/delete/', views.delete_post, name='delete_post'),
]
