from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from django.utils.translation import gettext_lazy as _

from .models import User


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    """Back-office users and the commission role each one holds."""

    list_display = ("email", "get_full_name", "role", "manages_commissions", "is_active", "last_login")
    list_filter = ("role", "is_active", "is_superuser")
    search_fields = ("email", "first_name", "last_name")
    ordering = ("email",)
    actions = ("set_role_finance", "set_role_sales", "deactivate_users")

    fieldsets = (
        (None, {"fields": ("email", "password")}),
        (_("Perfil"), {"fields": ("first_name", "last_name", "role")}),
        (_("Acceso"), {"fields": ("is_active", "is_staff", "is_superuser", "groups")}),
        (_("Actividad"), {"fields": ("last_login", "date_joined")}),
    )
    add_fieldsets = (
        (None, {
            "classes": ("wide",),
            "fields": ("email", "first_name", "last_name", "role", "password1", "password2"),
        }),
    )
    readonly_fields = ("date_joined", "last_login")

    @admin.display(boolean=True, description="Gestiona comisiones")
    def manages_commissions(self, obj):
        return obj.can_manage_commissions

    @admin.action(description="Asignar rol Finanzas")
    def set_role_finance(self, request, queryset):
        updated = queryset.update(role=User.Role.FINANCE)
        self.message_user(request, f"{updated} usuario(s) ahora con rol Finanzas.")

    @admin.action(description="Asignar rol Ventas")
    def set_role_sales(self, request, queryset):
        updated = queryset.update(role=User.Role.SALES)
        self.message_user(request, f"{updated} usuario(s) ahora con rol Ventas.")

    @admin.action(description="Desactivar usuarios seleccionados")
    def deactivate_users(self, request, queryset):
        queryset.exclude(pk=request.user.pk).update(is_active=False)
