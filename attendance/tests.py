from datetime import date, timedelta

from django.contrib.auth import get_user_model
from django.db import IntegrityError, transaction
from django.test import SimpleTestCase, override_settings
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APITestCase

from academics.models import ClassRoom, StudentProfile, Subject
from results.exceptions import InvalidRecordError
from schools.models import School
from users.models import Profile
from .aggregation import (
    PRESENT, ABSENT, LATE, EXCUSED, AttendanceEntry, aggregate_attendance, at_risk_students,
    attendance_overview, attendance_rate, lowest_attendance,
)
from .models import AttendanceRecord

User = get_user_model()


def entries(student_id, *statuses):
    start = date(2024, 2, 1)
    return [
        AttendanceEntry(student_id=student_id, date=start + timedelta(days=i), status=s)
        for i, s in enumerate(statuses)
    ]


class AttendanceAggregatorTests(SimpleTestCase):
    def test_late_counts_against_rate(self):
        summary = aggregate_attendance(entries(1, PRESENT, PRESENT, ABSENT, LATE))[1]
        self.assertEqual((summary.present, summary.absent, summary.late, summary.total), (2, 1, 1, 4))
        self.assertEqual(summary.attendance_rate, 50.0)
        self.assertTrue(summary.is_at_risk)

    def test_no_records(self):
        self.assertEqual(aggregate_attendance([]), {})
        self.assertEqual(attendance_rate(0, 0), 0.0)
        self.assertEqual(attendance_overview({}), {
            'total_students': 0, 'average_attendance_rate': 0.0, 'at_risk_count': 0,
        })

    def test_threshold_is_exclusive(self):
        summary = aggregate_attendance(entries(1, PRESENT, PRESENT, PRESENT, PRESENT, ABSENT))[1]
        self.assertEqual(summary.attendance_rate, 80.0)
        self.assertFalse(summary.is_at_risk)
        self.assertTrue(aggregate_attendance(entries(1, PRESENT, ABSENT), risk_threshold=60)[1].is_at_risk)

    def test_excused_counts_as_other(self):
        summary = aggregate_attendance(entries(1, PRESENT, EXCUSED))[1]
        self.assertEqual(summary.other, 1)
        self.assertEqual(summary.attendance_rate, 50.0)

    def test_at_risk_order_is_stable(self):
        records = entries('a', PRESENT, ABSENT) + entries('b', PRESENT, ABSENT, ABSENT, ABSENT) + entries('c', ABSENT, PRESENT)
        summaries = aggregate_attendance(records)
        self.assertEqual(list(summaries), ['a', 'b', 'c'])
        self.assertEqual([s.student_id for s in at_risk_students(summaries)], ['b', 'a', 'c'])

    def test_lowest_and_overview(self):
        records = entries(1, PRESENT, PRESENT) + entries(2, ABSENT, PRESENT) + entries(3, ABSENT, ABSENT)
        summaries = aggregate_attendance(records)
        self.assertEqual([s.student_id for s in lowest_attendance(summaries, limit=2)], [3, 2])
        self.assertEqual(attendance_overview(summaries), {
            'total_students': 3, 'average_attendance_rate': 50.0, 'at_risk_count': 2,
        })

    def test_aggregation_is_repeatable(self):
        records = entries(1, PRESENT, LATE) + entries(2, ABSENT)
        self.assertEqual(aggregate_attendance(records), aggregate_attendance(records))

    def test_from_mapping(self):
        entry = AttendanceEntry.from_mapping({'studentId': 3, 'status': 'Present', 'date': '2024-05-01'})
        self.assertEqual(entry.status, PRESENT)
        self.assertEqual(entry.date, date(2024, 5, 1))
        with self.assertRaises(InvalidRecordError):
            AttendanceEntry.from_mapping({'studentId': 3})
        with self.assertRaises(InvalidRecordError):
            AttendanceEntry.from_mapping({'status': 'present'})


class AttendanceAPITestCase(APITestCase):
    def setUp(self):
        self.school = School.objects.create(name='Hill School')
        self.teacher = User.objects.create_user(username='teacher', password='pass')
        Profile.objects.create(user=self.teacher, school=self.school, role='teacher')
        self.client.force_authenticate(user=self.teacher)

        self.classroom = ClassRoom.objects.create(school=self.school, name='P.5')
        self.alice = self.make_student('alice')
        self.bob = self.make_student('bob')
        self.today = timezone.now().date()

    def make_student(self, username):
        user = User.objects.create_user(username=username, password='pass')
        return StudentProfile.objects.create(user=user, school=self.school, classroom=self.classroom)

    def mark(self, student, status_value, days_ago=0):
        return AttendanceRecord.objects.create(
            school=self.school, student=student, classroom=self.classroom,
            date=self.today - timedelta(days=days_ago), status=status_value,
        )

    def test_bulk_save_upserts(self):
        url = '/api/attendance/records/bulk_save/'
        day = '2024-03-04'
        response = self.client.post(url, {'records': [
            {'student': self.alice.id, 'date': day, 'status': 'Present'},
            {'student': self.bob.id, 'date': day, 'status': 'absent'},
        ]}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['created'], 2)

        response = self.client.post(url, {'records': [
            {'student': self.alice.id, 'date': day, 'status': 'late', 'note': 'Bus delay'},
        ]}, format='json')
        self.assertEqual(response.data['updated'], 1)
        self.assertEqual(AttendanceRecord.objects.filter(student=self.alice).count(), 1)
        record = AttendanceRecord.objects.get(student=self.alice)
        self.assertEqual(record.status, LATE)
        self.assertEqual(record.classroom, self.classroom)

    def test_bulk_save_reports_bad_rows(self):
        response = self.client.post('/api/attendance/records/bulk_save/', {'records': [
            {'student': self.alice.id, 'date': '2024-03-04', 'status': 'sleeping'},
            {'student': 99999, 'date': '2024-03-04', 'status': 'present'},
            {'student': self.bob.id, 'date': '2024-03-04', 'status': 'present'},
        ]}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['saved'], 1)
        self.assertEqual([e['index'] for e in response.data['errors']], [0, 1])
        self.assertFalse(response.data['success'])

    def test_bulk_save_requires_records(self):
        response = self.client.post('/api/attendance/records/bulk_save/', {'records': []}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_subject_attendance_is_separate(self):
        maths = Subject.objects.create(school=self.school, name='Mathematics')
        url = '/api/attendance/records/bulk_save/'
        self.client.post(url, {'records': [
            {'student': self.alice.id, 'date': '2024-03-04', 'status': 'present'},
            {'student': self.alice.id, 'date': '2024-03-04', 'status': 'absent', 'subject': maths.id},
        ]}, format='json')
        self.assertEqual(AttendanceRecord.objects.filter(student=self.alice).count(), 2)

    def test_insights(self):
        self.mark(self.alice, PRESENT, days_ago=1)
        self.mark(self.alice, ABSENT, days_ago=2)
        self.mark(self.bob, PRESENT, days_ago=1)
        self.mark(self.bob, ABSENT, days_ago=60)

        response = self.client.get('/api/attendance/records/insights/', {'school': self.school.id, 'period': 'week'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['overview'], {
            'total_students': 2, 'average_attendance_rate': 75.0, 'at_risk_count': 1,
        })
        self.assertEqual([s['student_id'] for s in response.data['at_risk']], [self.alice.id])
        self.assertEqual(response.data['threshold'], 80)

        response = self.client.get('/api/attendance/records/insights/', {
            'school': self.school.id, 'period': 'week', 'threshold': 40,
        })
        self.assertEqual(response.data['overview']['at_risk_count'], 0)

    @override_settings(ATTENDANCE_RISK_THRESHOLD=40)
    def test_insights_threshold_setting(self):
        self.mark(self.alice, PRESENT, days_ago=1)
        self.mark(self.alice, ABSENT, days_ago=2)
        response = self.client.get('/api/attendance/records/insights/', {'school': self.school.id})
        self.assertEqual(response.data['threshold'], 40)
        self.assertEqual(response.data['at_risk'], [])

    def test_student_summary(self):
        self.mark(self.alice, PRESENT, days_ago=1)
        self.mark(self.alice, PRESENT, days_ago=2)
        self.mark(self.alice, LATE, days_ago=3)
        self.mark(self.alice, ABSENT, days_ago=4)

        response = self.client.get('/api/attendance/records/student_summary/', {'student': self.alice.id})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['attendance_rate'], 50.0)
        self.assertTrue(response.data['is_at_risk'])

        response = self.client.get('/api/attendance/records/student_summary/', {'student': self.bob.id})
        self.assertEqual(response.data['total'], 0)
        self.assertEqual(response.data['attendance_rate'], 0.0)

    def test_monthly_report(self):
        AttendanceRecord.objects.create(school=self.school, student=self.alice, date=date(2024, 3, 4), status=PRESENT)
        AttendanceRecord.objects.create(school=self.school, student=self.alice, date=date(2024, 3, 5), status=LATE)

        response = self.client.get('/api/attendance/records/monthly_report/', {'school': self.school.id, 'month': '2024-03'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        rows = {row['student_id']: row for row in response.data}
        self.assertEqual(rows[self.alice.id]['attendance_percentage'], 50.0)
        self.assertEqual(rows[self.alice.id]['late_days'], 1)
        self.assertEqual(rows[self.bob.id]['total_days'], 0)

        response = self.client.get('/api/attendance/records/monthly_report/', {'school': self.school.id, 'month': 'March'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_daily_summary(self):
        AttendanceRecord.objects.create(school=self.school, student=self.alice, date=date(2024, 3, 4), status=PRESENT)
        response = self.client.get('/api/attendance/records/daily_summary/', {'school': self.school.id, 'date': '2024-03-04'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        row = response.data[0]
        self.assertEqual(row['total_students'], 2)
        self.assertEqual(row['present_count'], 1)
        self.assertEqual(row['unmarked_count'], 1)
        self.assertEqual(row['attendance_percentage'], 50.0)

    def test_create_rejects_second_whole_day_record(self):
        url = '/api/attendance/records/'
        payload = {'school': self.school.id, 'student': self.alice.id, 'date': '2024-03-01', 'subject': None, 'status': 'present'}
        response = self.client.post(url, payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        record_id = response.data['id']

        response = self.client.post(url, dict(payload, status='absent'), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(AttendanceRecord.objects.filter(student=self.alice, date=date(2024, 3, 1)).count(), 1)

        response = self.client.patch(f'{url}{record_id}/', {'status': 'late'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(AttendanceRecord.objects.get(pk=record_id).status, LATE)

        maths = Subject.objects.create(school=self.school, name='Mathematics')
        response = self.client.post(url, dict(payload, subject=maths.id), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

    def test_whole_day_record_is_unique_in_the_database(self):
        self.mark(self.alice, PRESENT)
        with self.assertRaises(IntegrityError), transaction.atomic():
            self.mark(self.alice, ABSENT)
