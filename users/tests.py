from django.contrib.auth import get_user_model
from rest_framework import status
from rest_framework.test import APITestCase

from schools.models import School
from .models import Profile

User = get_user_model()


class CurrentUserTests(APITestCase):
    def setUp(self):
        self.school = School.objects.create(name='Hill School')

    def test_me(self):
        user = User.objects.create_user(username='parent', password='pass')
        Profile.objects.create(user=user, school=self.school, role='parent')
        self.client.force_authenticate(user=user)
        response = self.client.get('/api/users/me/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['profile']['role'], 'parent')

    def test_me_without_profile(self):
        user = User.objects.create_user(username='ghost', password='pass')
        self.client.force_authenticate(user=user)
        self.assertEqual(self.client.get('/api/users/me/').status_code, status.HTTP_404_NOT_FOUND)

    def test_token_login(self):
        User.objects.create_user(username='admin', password='pass')
        response = self.client.post('/api/token/', {'username': 'admin', 'password': 'pass'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data)


class RolePermissionTests(APITestCase):
    def setUp(self):
        self.school = School.objects.create(name='Hill School')

    def login(self, role):
        user = User.objects.create_user(username=role, password='pass')
        Profile.objects.create(user=user, school=self.school, role=role)
        self.client.force_authenticate(user=user)

    def test_parent_reads_but_cannot_write(self):
        self.login('parent')
        self.assertEqual(self.client.get('/api/academics/subjects/').status_code, status.HTTP_200_OK)
        response = self.client.post('/api/academics/subjects/', {'school_id': self.school.id, 'name': 'Art'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_admin_writes(self):
        self.login('admin')
        response = self.client.post('/api/academics/subjects/', {'school_id': self.school.id, 'name': 'Art'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

    def test_superuser_without_profile(self):
        user = User.objects.create_superuser(username='root', password='pass')
        self.client.force_authenticate(user=user)
        response = self.client.post('/api/academics/subjects/', {'school_id': self.school.id, 'name': 'Art'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
