from django.db.models.signals import post_save
from django.dispatch import receiver
from django.contrib.auth.models import AbstractUser
from django.db import models
from django.conf import settings


class User(AbstractUser):
    """
    Custom User model with role-based permissions.

    Extends Django's AbstractUser to add role field (admin/faculty/student).
    A Faculty or Student profile is created automatically for the matching role.
    """

    ROLE_ADMIN = "admin"
    ROLE_FACULTY = "faculty"
    ROLE_STUDENT = "student"
    ROLE_CHOICES = [
        (ROLE_ADMIN, "Admin"),
        (ROLE_FACULTY, "Faculty"),
        (ROLE_STUDENT, "Student"),
    ]

    role = models.CharField(
        max_length=20,
        choices=ROLE_CHOICES,
        default=ROLE_STUDENT,
    )
    updated_at = models.DateTimeField(auto_now=True)

    class Meta(AbstractUser.Meta):
        swappable = "AUTH_USER_MODEL"

    def save(self, *args, **kwargs):
        """
        OVERRIDE: Business role drives Django permissions.

        1. Superusers are always ROLE_ADMIN with is_staff=True
        2. ROLE_ADMIN users get is_staff=True (access to Django admin)
        3. Faculty and students never get is_staff
        """
        if self.is_superuser:
            self.role = self.ROLE_ADMIN
            self.is_staff = True
        elif self.role == self.ROLE_ADMIN:
            self.is_staff = True
        else:
            self.is_staff = False

        super().save(*args, **kwargs)


class Faculty(models.Model):
    """
    Faculty profile for users with ROLE_FACULTY.

    Faculty members are the candidates offered projects by the allocation cascade.
    """

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='faculty'
    )
    department = models.CharField(max_length=100, blank=True, default='')
    designation = models.CharField(max_length=100, blank=True, default='')

    class Meta:
        verbose_name_plural = "Faculty"

    @property
    def full_name(self):
        name = self.user.get_full_name()
        return name if name else self.user.username

    def __str__(self):
        return f"Faculty: {self.full_name}"


class Student(models.Model):
    """
    Student profile for users with ROLE_STUDENT.

    Students form groups and submit faculty preferences for their projects.
    """

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='student'
    )
    roll_number = models.CharField(max_length=30, blank=True, default='')
    semester = models.PositiveSmallIntegerField(null=True, blank=True)

    @property
    def full_name(self):
        name = self.user.get_full_name()
        return name if name else self.user.username

    def __str__(self):
        return f"Student: {self.full_name}"


# SIGNAL: Auto-create the role profile
@receiver(post_save, sender=User)
def create_role_profile(sender, instance, created, **kwargs):
    """
    Signal receiver that auto-creates the Faculty/Student profile
    when a user with that role is created.

    Only triggers for newly created users.
    """
    if not created:
        return

    if instance.role == User.ROLE_FACULTY:
        Faculty.objects.create(user=instance)
    elif instance.role == User.ROLE_STUDENT:
        Student.objects.create(user=instance)
