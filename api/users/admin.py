from django.contrib import admin
from django.contrib.auth.admin import UserAdmin
from .models import CustomUser


@admin.register(CustomUser)
class CustomUserAdmin(UserAdmin):
    fieldsets = UserAdmin.fieldsets + (
        ("Rol", {"fields": ("rol",)}),
    )
    list_display = ('username', 'email', 'rol', 'is_superuser', 'is_active')
    list_filter = ('rol', 'is_superuser', 'is_active')
