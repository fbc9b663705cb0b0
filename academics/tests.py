from django.contrib.auth import get_user_model
from django.test import SimpleTestCase, TestCase
from rest_framework import status
from rest_framework.test import APITestCase

from results.exceptions import MissingDataError
from results.models import Examination
from schools.models import School
from users.models import Profile
from .models import ClassRoom, StudentProfile, Term
from .terms import ACTIVE, INACTIVE, TermRecord, active_term, changed_terms, set_active_term

User = get_user_model()


class TermTransitionTests(SimpleTestCase):
    def setUp(self):
        self.terms = (
            TermRecord(1, 'Term 1', 2024, ACTIVE),
            TermRecord(2, 'Term 2', 2024),
            TermRecord(3, 'Term 3', 2024),
        )

    def test_only_target_is_active(self):
        updated = set_active_term(self.terms, 3)
        self.assertEqual([t.status for t in updated], [INACTIVE, INACTIVE, ACTIVE])
        self.assertEqual(active_term(updated).id, 3)

    def test_input_is_untouched(self):
        set_active_term(self.terms, 2)
        self.assertEqual(self.terms[0].status, ACTIVE)
        self.assertEqual(self.terms[1].status, INACTIVE)

    def test_idempotent(self):
        once = set_active_term(self.terms, 2)
        self.assertEqual(set_active_term(once, 2), once)

    def test_unknown_term(self):
        with self.assertRaises(MissingDataError):
            set_active_term(self.terms, 42)

    def test_changed_terms(self):
        updated = set_active_term(self.terms, 2)
        self.assertEqual([t.id for t in changed_terms(self.terms, updated)], [1, 2])
        self.assertEqual(changed_terms(updated, updated), [])

    def test_no_active_term(self):
        self.assertIsNone(active_term(self.terms[1:]))


class TermActivationTests(TestCase):
    def setUp(self):
        self.school = School.objects.create(name='Hill School')
        self.terms = [
            Term.objects.create(school=self.school, term_name=f'Term {n}', year=2024)
            for n in (1, 2, 3)
        ]

    def statuses(self):
        return {t.id: t.status for t in Term.objects.filter(school=self.school)}

    def test_activate_demotes_siblings(self):
        self.terms[0].activate()
        self.terms[2].activate()
        statuses = self.statuses()
        self.assertEqual(statuses[self.terms[2].id], ACTIVE)
        self.assertEqual(list(statuses.values()).count(ACTIVE), 1)

    def test_saving_active_term_goes_through_activation(self):
        self.terms[1].activate()
        Term.objects.create(school=self.school, term_name='Term 1', year=2025, status=ACTIVE)
        self.assertEqual(list(self.statuses().values()).count(ACTIVE), 1)
        self.terms[1].refresh_from_db()
        self.assertEqual(self.terms[1].status, INACTIVE)

    def test_other_schools_untouched(self):
        other = School.objects.create(name='Valley School')
        other_term = Term.objects.create(school=other, term_name='Term 1', year=2024, status=ACTIVE)
        self.terms[0].activate()
        other_term.refresh_from_db()
        self.assertEqual(other_term.status, ACTIVE)

    def test_activate_twice(self):
        self.terms[0].activate()
        self.terms[0].activate()
        self.assertEqual(self.statuses()[self.terms[0].id], ACTIVE)


class TermAPITestCase(APITestCase):
    def setUp(self):
        self.school = School.objects.create(name='Hill School')
        self.admin = User.objects.create_user(username='admin', password='pass')
        Profile.objects.create(user=self.admin, school=self.school, role='admin')
        self.client.force_authenticate(user=self.admin)
        self.term1 = Term.objects.create(school=self.school, term_name='Term 1', year=2024, status=ACTIVE)
        self.term2 = Term.objects.create(school=self.school, term_name='Term 2', year=2024)

    def test_activate(self):
        response = self.client.post(f'/api/academics/terms/{self.term2.id}/activate/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['active']['id'], self.term2.id)
        self.term1.refresh_from_db()
        self.assertEqual(self.term1.status, INACTIVE)

        response = self.client.get('/api/academics/terms/active/', {'school': self.school.id})
        self.assertEqual(response.data['id'], self.term2.id)

    def test_create_active_term_through_api(self):
        response = self.client.post('/api/academics/terms/', {
            'school': self.school.id, 'term_name': 'Term 3', 'year': 2024, 'status': ACTIVE,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Term.objects.filter(school=self.school, status=ACTIVE).count(), 1)

    def test_next_term_dates_validated(self):
        response = self.client.post('/api/academics/terms/', {
            'school': self.school.id, 'term_name': 'Term 3', 'year': 2024,
            'next_term_starts': '2024-09-10', 'next_term_ends': '2024-09-01',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_no_active_term(self):
        self.term1.status = INACTIVE
        self.term1.save()
        response = self.client.get('/api/academics/terms/active/', {'school': self.school.id})
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_delete_term_with_examinations_refused(self):
        classroom = ClassRoom.objects.create(school=self.school, name='P.5')
        Examination.objects.create(school=self.school, term=self.term1, name='Mid', classroom=classroom)
        response = self.client.delete(f'/api/academics/terms/{self.term1.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.client.delete(f'/api/academics/terms/{self.term2.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)

    def test_teacher_cannot_activate(self):
        teacher = User.objects.create_user(username='teacher', password='pass')
        Profile.objects.create(user=teacher, school=self.school, role='teacher')
        self.client.force_authenticate(user=teacher)
        response = self.client.post(f'/api/academics/terms/{self.term2.id}/activate/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_update_conduct(self):
        user = User.objects.create_user(username='amina', password='pass')
        student = StudentProfile.objects.create(user=user, school=self.school)
        response = self.client.post(f'/api/academics/students/{student.id}/update_conduct/', {
            'discipline': 'Excellent', 'attendance_remarks': 'Punctual',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        student.refresh_from_db()
        self.assertEqual(student.conduct()['discipline'], 'Excellent')
        self.assertEqual(student.attendance_remarks, 'Punctual')

    def test_create_student_creates_login(self):
        response = self.client.post('/api/academics/students/', {
            'school_id': self.school.id, 'first_name': 'Brian', 'last_name': 'Ouma',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        student = StudentProfile.objects.get(pk=response.data['id'])
        self.assertEqual(student.user.profile.role, 'student')
        self.assertEqual(student.full_name, 'Brian Ouma')
