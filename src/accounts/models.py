import uuid

from django.contrib.auth.models import (
    AbstractBaseUser,
    BaseUserManager,
    PermissionsMixin,
)
from django.db import models
from django.utils import timezone


class UserManager(BaseUserManager):
    """Custom manager for the User model that uses email as the unique identifier."""

    use_in_migrations = True

    def create_user(self, email, password=None, **extra_fields):
        if not email:
            raise ValueError("El correo electronico es obligatorio.")
        email = self.normalize_email(email)
        extra_fields.setdefault("is_active", True)
        user = self.model(email=email, **extra_fields)
        user.set_password(password)
        user.save(using=self._db)
        return user

    def create_superuser(self, email, password=None, **extra_fields):
        extra_fields.setdefault("role", User.Role.ADMIN)
        extra_fields.setdefault("is_staff", True)
        extra_fields.setdefault("is_superuser", True)

        if extra_fields.get("is_staff") is not True:
            raise ValueError("El superusuario debe tener is_staff=True.")
        if extra_fields.get("is_superuser") is not True:
            raise ValueError("El superusuario debe tener is_superuser=True.")

        return self.create_user(email, password, **extra_fields)


class User(AbstractBaseUser, PermissionsMixin):
    """
    Back-office user of the commission service.

    Uses email as the unique identifier instead of a username.
    The role decides which commission endpoints the user may reach:
    ADMIN and CEO manage configuration and calculations, FINANCE
    records payments, collections and invoices, SALES only reads.
    """

    class Role(models.TextChoices):
        ADMIN = "ADMIN", "Administrador"
        CEO = "CEO", "Direccion general"
        FINANCE = "FINANCE", "Finanzas"
        SALES = "SALES", "Ventas"

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
    )
    email = models.EmailField(
        "correo electronico",
        unique=True,
        error_messages={
            "unique": "Ya existe un usuario con este correo electronico.",
        },
    )
    first_name = models.CharField("nombre", max_length=150)
    last_name = models.CharField("apellidos", max_length=150)
    role = models.CharField(
        "rol",
        max_length=20,
        choices=Role.choices,
        default=Role.SALES,
        db_index=True,
    )
    is_active = models.BooleanField("activo", default=True, db_index=True)
    is_staff = models.BooleanField("miembro del personal", default=False)
    date_joined = models.DateTimeField("fecha de alta", default=timezone.now)

    objects = UserManager()

    USERNAME_FIELD = "email"
    REQUIRED_FIELDS = ["first_name", "last_name"]

    class Meta:
        verbose_name = "usuario"
        verbose_name_plural = "usuarios"
        ordering = ["last_name", "first_name"]

    def __str__(self):
        return self.get_full_name() or self.email

    def get_full_name(self):
        full_name = f"{self.first_name} {self.last_name}".strip()
        return full_name

    def get_short_name(self):
        return self.first_name

    # ------------------------------------------------------------------
    # Role helper properties
    # ------------------------------------------------------------------

    @property
    def is_admin(self):
        return self.role == self.Role.ADMIN

    @property
    def is_ceo(self):
        return self.role == self.Role.CEO

    @property
    def is_finance(self):
        return self.role == self.Role.FINANCE

    @property
    def can_manage_commissions(self):
        return self.is_superuser or self.role in (self.Role.ADMIN, self.Role.CEO)

    @property
    def can_record_payments(self):
        return self.can_manage_commissions or self.role == self.Role.FINANCE
