from django.contrib.auth.models import AbstractUser
from django.db import models


class User(AbstractUser):
    """
    Platform user.

    ``role`` drives billing authorisation: super admins may manage any brand's
    subscription, everyone else only the brands they own.
    """

    class Role(models.TextChoices):
        SUPER_ADMIN = "SUPER_ADMIN", "Super Admin"
        BRAND_ADMIN = "BRAND_ADMIN", "Brand Admin"
        BRANCH_ADMIN = "BRANCH_ADMIN", "Branch Admin"
        EXECUTIVE = "EXECUTIVE", "Executive"

    email = models.EmailField(unique=True)
    role = models.CharField(
        max_length=20,
        choices=Role.choices,
        default=Role.BRAND_ADMIN,
        help_text="Platform role used for access control",
    )
    phone = models.CharField(max_length=20, blank=True, null=True, verbose_name="Phone Number")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    USERNAME_FIELD = 'username'
    REQUIRED_FIELDS = ['email']

    class Meta:
        db_table = 'user'
        verbose_name = 'User'
        verbose_name_plural = 'Users'

    @property
    def is_super_admin(self) -> bool:
        return self.is_superuser or self.role == self.Role.SUPER_ADMIN

    def __str__(self):
        return self.username


class Notification(models.Model):
    """In-app notification shown on the user's dashboard."""

    class Type(models.TextChoices):
        SYSTEM_ALERT = "SYSTEM_ALERT", "System Alert"
        PAYMENT = "PAYMENT", "Payment"
        SUBSCRIPTION = "SUBSCRIPTION", "Subscription"

    user = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name="notifications",
    )
    type = models.CharField(max_length=32, choices=Type.choices, default=Type.SYSTEM_ALERT)
    title = models.CharField(max_length=200)
    message = models.TextField()
    metadata = models.JSONField(blank=True, null=True)
    is_read = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'notification'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['user', 'is_read'], name='notification_user_read_idx'),
        ]

    def __str__(self):
        return f"Notification<{self.user_id}:{self.title}>"
