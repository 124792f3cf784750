from django.contrib.auth.models import AbstractUser
from django.db import models


class Role(models.TextChoices):
    """Closed set of application roles. Values are the canonical wire form."""
    ADMIN = 'admin', 'Admin'
    STORE_BOY = 'storeBoy', 'StoreBoy'
    FINAL_BOY = 'finalBoy', 'FinalBoy'


# Display label <-> canonical value, used only at the API boundary
ROLE_LABEL_TO_VALUE = {label: value for value, label in Role.choices}
ROLE_VALUE_TO_LABEL = {value: label for value, label in Role.choices}


def normalize_role(raw):
    """Map either spelling of a role ('Admin' or 'admin') to its canonical value, or None."""
    if raw in ROLE_VALUE_TO_LABEL:
        return raw
    return ROLE_LABEL_TO_VALUE.get(raw)


class User(AbstractUser):
    """Application user. Logs in with e-mail; username mirrors the e-mail."""
    name = models.CharField(max_length=200)
    email = models.EmailField(unique=True)
    role = models.CharField(max_length=20, choices=Role.choices, default=Role.STORE_BOY)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    USERNAME_FIELD = 'email'
    REQUIRED_FIELDS = ['username', 'name']

    def __str__(self):
        return f"{self.name} <{self.email}>"

    @property
    def role_label(self):
        return ROLE_VALUE_TO_LABEL.get(self.role, self.role)

    class Meta:
        db_table = 'users'
        constraints = [
            # At most one admin account
            models.UniqueConstraint(fields=['role'], condition=models.Q(role='admin'), name='uniq_single_admin'),
        ]
