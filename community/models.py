from django.db import models
from django.contrib.auth.models import User


class MembershipState(models.TextChoices):
    NONE = 'none', 'Not a member'
    PENDING = 'pending', 'Join request pending'
    MEMBER = 'member', 'Member'


class Community(models.Model):
    name = models.CharField(max_length=100)
    description = models.TextField(blank=True, default='')
    creator = models.ForeignKey(User, on_delete=models.CASCADE, related_name='created_communities')
    members = models.ManyToManyField(User, related_name='joined_communities', blank=True)
    join_requests = models.ManyToManyField(User, related_name='requested_communities', blank=True)
    is_private = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at', '-id']
        verbose_name_plural = 'communities'

    def __str__(self):
        return self.name

    @property
    def post_count(self):
        return self.posts.count()

    def is_member(self, user):
        return self.creator_id == user.id or self.members.filter(pk=user.pk).exists()

    def has_pending_request(self, user):
        return self.join_requests.filter(pk=user.pk).exists()


class Post(models.Model):
    community = models.ForeignKey(Community, on_delete=models.CASCADE, related_name='posts')
    author = models.ForeignKey(User, on_delete=models.CASCADE, related_name='community_posts')
    content = models.TextField()
    liked_by = models.ManyToManyField(User, related_name='liked_community_posts', blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at', '-id']

    def __str__(self):
        return f'Post by {self.author.username} in {self.community.name}'


class Reply(models.Model):
    post = models.ForeignKey(Post, on_delete=models.CASCADE, related_name='replies')
    author = models.ForeignKey(User, on_delete=models.CASCADE, related_name='community_replies')
    content = models.TextField()
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['created_at', 'id']
        verbose_name_plural = 'replies'

    def __str__(self):
        return f'Reply by {self.author.username} to {self.post.id}'
