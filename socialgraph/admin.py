from django.contrib import admin
from django.contrib.auth.admin import UserAdmin
from .models import Identity
from .models import Follow
from .models import Session
from .models import Notification
# localhost:8000/admin
# create the first account with: python manage.py createsuperuser


class IdentityAdmin(UserAdmin):
    list_display = ('id', 'username', 'email', 'first_name', 'last_name', 'private_profile')
    fieldsets = UserAdmin.fieldsets + (
        ('Profile', {'fields': ('description', 'date_birth', 'phone_number', 'genre', 'private_profile')}),
    )
    search_fields = ('username', 'email', 'first_name', 'last_name')


class SessionAdmin(admin.ModelAdmin):
    list_display = ['id', 'identity', 'issued_at', 'expires_at']
    search_fields = ['identity__username']
    # refresh values are credentials; not shown on the change form
    exclude = ['refresh_token']


admin.site.register(Identity, IdentityAdmin)
admin.site.register(Session, SessionAdmin)


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ('id', 'type', 'sender', 'receiver', 'status', 'created_at')
    list_filter = ('type', 'status')
    search_fields = ('sender__username', 'receiver__username')


@admin.register(Follow)
class FollowAdmin(admin.ModelAdmin):
    list_display = ('follower', 'followee', 'created_at')
    search_fields = ('follower__username', 'followee__username')
