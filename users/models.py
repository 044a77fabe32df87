from django.contrib.auth.models import AbstractUser
from django.db import models


class User(AbstractUser):
    class Role(models.TextChoices):
        MEMBER = "member", "Member"
        LIBRARIAN = "librarian", "Librarian"
        ADMIN = "admin", "Admin"

    email = models.EmailField(unique=True)
    role = models.CharField(max_length=10, choices=Role.choices, default=Role.MEMBER)

    def save(self, *args, **kwargs):
        # Librarians and admins manage other users' loans and reservations
        self.is_staff = self.is_staff or self.role != self.Role.MEMBER
        super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.full_name} <{self.email}>"

    @property
    def full_name(self):
        name = f"{self.first_name} {self.last_name}".strip()
        return name or self.username

    @property
    def is_member(self):
        return self.role == self.Role.MEMBER
