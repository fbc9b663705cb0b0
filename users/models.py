from django.contrib.auth.models import AbstractUser
from django.db import models
from schools.models import School


class User(AbstractUser):
    photo = models.ImageField(upload_to='user_photos/', null=True, blank=True)
    phone_number = models.CharField(max_length=20, null=True, blank=True, help_text='Phone number with country code (e.g., +256712345678)')

    def __str__(self):
        return self.username


class Profile(models.Model):
    ROLE_CHOICES = [
        ('admin', 'Admin'),
        ('teacher', 'Teacher'),
        ('student', 'Student'),
        ('parent', 'Parent'),
    ]
    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name='profile')
    school = models.ForeignKey(School, on_delete=models.SET_NULL, null=True, blank=True)
    role = models.CharField(max_length=20, choices=ROLE_CHOICES, default='student')

    def __str__(self):
        return f"{self.user.username} - {self.role}"

    class Meta:
        indexes = [
            models.Index(fields=['school', 'role'], name='profile_school_role_idx'),
            models.Index(fields=['school'], name='profile_school_idx'),
        ]
