from datetime import date

from django.contrib.auth import get_user_model
from django.core.management import call_command
from django.test import TestCase
from rest_framework import status
from rest_framework.test import APITestCase

from academics.models import ClassRoom, StudentProfile, Subject, Term
from academics.terms import ACTIVE
from attendance.models import AttendanceRecord
from results.models import Examination, Grading, Result
from users.models import Profile
from .models import School

User = get_user_model()


class DashboardStatsTests(APITestCase):
    def setUp(self):
        self.school = School.objects.create(name='Hill School')
        self.admin = User.objects.create_user(username='admin', password='pass')
        Profile.objects.create(user=self.admin, school=self.school, role='admin')
        self.client.force_authenticate(user=self.admin)

    def test_school_from_profile(self):
        response = self.client.get('/api/dashboard-stats/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['school_name'], 'Hill School')
        self.assertIsNone(response.data['active_term'])
        self.assertIsNone(response.data['performance'])

    def test_school_from_header(self):
        other = School.objects.create(name='Valley School')
        response = self.client.get('/api/dashboard-stats/', HTTP_X_SCHOOL_ID=str(other.id))
        self.assertEqual(response.data['school_id'], other.id)

    def test_invalid_school(self):
        self.assertEqual(self.client.get('/api/dashboard-stats/', {'school': 'x'}).status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(self.client.get('/api/dashboard-stats/', {'school': 99999}).status_code, status.HTTP_404_NOT_FOUND)

    def test_performance_for_active_term(self):
        classroom = ClassRoom.objects.create(school=self.school, name='P.5')
        subject = Subject.objects.create(school=self.school, name='Mathematics')
        term = Term.objects.create(school=self.school, term_name='Term 1', year=2024, status=ACTIVE)
        student = StudentProfile.objects.create(
            user=User.objects.create_user(username='amina'), school=self.school, classroom=classroom,
        )
        exam = Examination.objects.create(school=self.school, term=term, name='Mid', classroom=classroom)
        Result.objects.create(examination=exam, student=student, subject=subject, marks_obtained=60)
        AttendanceRecord.objects.create(school=self.school, student=student, date=date.today(), status='present')

        response = self.client.get('/api/dashboard-stats/')
        self.assertEqual(response.data['students_count'], 1)
        self.assertEqual(response.data['active_term']['id'], term.id)
        self.assertEqual(response.data['performance']['overall_average'], 60.0)
        self.assertEqual(response.data['attendance_data'][0]['present'], 1)

    def test_requires_authentication(self):
        self.client.force_authenticate(user=None)
        response = self.client.get('/api/dashboard-stats/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


class SeedDemoDataTests(TestCase):
    def test_seed(self):
        call_command('seed_demo_data', '--create-school', '--students', '4', '--teachers', '2',
                     '--classes', '2', '--subjects', '2', '--attendance-days', '3')
        school = School.objects.get(name='Demo School')
        self.assertEqual(Term.objects.filter(school=school, status=ACTIVE).count(), 1)
        self.assertEqual(Grading.objects.filter(school=school).count(), 7)
        self.assertTrue(Result.objects.filter(examination__school=school).exists())
        self.assertEqual(AttendanceRecord.objects.filter(school=school).count(), 12)
        self.assertFalse(Result.objects.filter(examination__school=school, grade='').exists())
