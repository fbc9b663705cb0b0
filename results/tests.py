from datetime import date
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.test import SimpleTestCase
from rest_framework import status
from rest_framework.test import APITestCase

from academics.models import ClassRoom, Subject, StudentProfile, TeacherAssignment, Term
from academics.terms import ACTIVE
from attendance.aggregation import AttendanceEntry
from schools.models import School
from users.models import Profile
from .aggregation import aggregate_results, results_by_exam_type, trend_remark, ResultSummary
from .exceptions import GradingScaleError, InvalidRecordError, MissingDataError
from .grading import classify, describe, default_scale, find_gaps, pick_remark, validate_scale
from .models import Examination, Grading, Result, StudentOverallResult
from .records import ExamResultRecord, ExamType, GradingScaleEntry, RemarkBand
from .report_cards import ReportLayout, compose, compose_class

User = get_user_model()


def record(subject_id, marks, total=100, exam_type=ExamType.END, student_id=1, subject_name=''):
    return ExamResultRecord(
        student_id=student_id,
        subject_id=subject_id,
        exam_type=exam_type,
        marks_obtained=marks,
        total_marks=total,
        subject_name=subject_name,
    )


class GradeClassifierTests(SimpleTestCase):
    def test_default_thresholds(self):
        cases = [
            (100, 'A+'), (90, 'A+'), (89.99, 'A'), (80, 'A'), (79.99, 'B+'), (70, 'B+'),
            (60, 'B'), (50, 'C'), (40, 'D'), (39.99, 'F'), (0, 'F'), (-5, 'F'),
        ]
        for percentage, grade in cases:
            with self.subTest(percentage=percentage):
                self.assertEqual(classify(percentage), grade)

    def test_describe_returns_remark(self):
        self.assertEqual(describe(95).comment, 'Excellent')
        self.assertEqual(describe(10).comment, 'Fail')

    def test_empty_scale_uses_defaults(self):
        self.assertEqual(classify(72, []), 'B+')

    def test_authored_scale_first_match_wins(self):
        scale = [GradingScaleEntry(0, 60, 'X'), GradingScaleEntry(50, 100, 'Y')]
        self.assertEqual(classify(55, scale), 'X')
        self.assertEqual(classify(61, scale), 'Y')

    def test_authored_scale_gap_is_ungraded(self):
        scale = [GradingScaleEntry(0, 49, 'F'), GradingScaleEntry(50, 100, 'P')]
        with self.assertLogs('results.grading', level='WARNING'):
            self.assertIsNone(classify(49.5, scale))

    def test_coverage_agrees_with_classify(self):
        scale = [GradingScaleEntry(0, 39, 'F'), GradingScaleEntry(40, 100, 'P')]
        self.assertEqual(find_gaps(scale), [(39, 40)])
        with self.assertLogs('results.grading', level='WARNING'):
            self.assertIsNone(classify(79 * 100 / 200, scale))

        closed = [GradingScaleEntry(0, 39.99, 'F'), GradingScaleEntry(40, 100, 'P')]
        self.assertEqual(find_gaps(closed), [])
        self.assertEqual(classify(39.994, closed), 'F')
        self.assertEqual(classify(39.996, closed), 'P')

    def test_default_scale_matches_thresholds(self):
        scale = default_scale()
        self.assertEqual([e.grade for e in scale], ['A+', 'A', 'B+', 'B', 'C', 'D', 'F'])
        self.assertEqual((scale[0].lower, scale[0].upper), (90, 100))
        self.assertEqual((scale[-1].lower, scale[-1].upper), (0, 40))


class ScaleValidationTests(SimpleTestCase):
    def test_valid_scale_is_sorted(self):
        entries = [GradingScaleEntry(50, 100, 'P'), GradingScaleEntry(0, 49, 'F')]
        self.assertEqual([e.grade for e in validate_scale(entries)], ['F', 'P'])

    def test_overlap_rejected(self):
        entries = [GradingScaleEntry(0, 50, 'F'), GradingScaleEntry(50, 100, 'P')]
        with self.assertRaises(GradingScaleError):
            validate_scale(entries)

    def test_inverted_range_rejected(self):
        with self.assertRaises(GradingScaleError):
            validate_scale([GradingScaleEntry(60, 50, 'B')])

    def test_out_of_bounds_rejected(self):
        with self.assertRaises(ValueError):
            validate_scale([GradingScaleEntry(0, 120, 'A')])

    def test_find_gaps(self):
        self.assertEqual(find_gaps([]), [(0, 100)])
        self.assertEqual(find_gaps([GradingScaleEntry(0, 39, 'F'), GradingScaleEntry(40, 100, 'P')]), [(39, 40)])
        self.assertEqual(find_gaps([GradingScaleEntry(0, 39.99, 'F'), GradingScaleEntry(40, 100, 'P')]), [])
        self.assertEqual(find_gaps([GradingScaleEntry(0, 39, 'F'), GradingScaleEntry(45, 100, 'P')]), [(39, 45)])
        self.assertEqual(find_gaps([GradingScaleEntry(10, 100, 'P')]), [(0, 10)])
        self.assertEqual(find_gaps([GradingScaleEntry(0, 80, 'P')]), [(80, 100)])

    def test_pick_remark(self):
        bands = [RemarkBand(0, 49.99, 'Work harder'), RemarkBand(50, 100, 'Well done')]
        self.assertEqual(pick_remark(bands, 72), 'Well done')
        self.assertEqual(pick_remark(bands, 20), 'Work harder')
        self.assertEqual(pick_remark([], 72), 'No comment available')


class RecordTests(SimpleTestCase):
    def test_from_mapping_accepts_camel_case(self):
        rec = ExamResultRecord.from_mapping({
            'studentId': 1, 'subjectId': 2, 'examType': 'mid',
            'marksObtained': '45', 'totalMarks': 50, 'date': '2024-03-01T08:00:00Z',
        })
        self.assertEqual(rec.exam_type, ExamType.MID)
        self.assertEqual(rec.marks_obtained, 45.0)
        self.assertEqual(rec.date, date(2024, 3, 1))
        self.assertEqual(rec.percentage, 90.0)

    def test_from_mapping_rejects_bad_input(self):
        base = {'student_id': 1, 'subject_id': 2, 'exam_type': 'END', 'marks_obtained': 10, 'total_marks': 100}
        bad = [
            {k: v for k, v in base.items() if k != 'student_id'},
            dict(base, exam_type='FINAL'),
            dict(base, marks_obtained=-1),
            dict(base, total_marks=0),
            dict(base, marks_obtained='ten'),
        ]
        for data in bad:
            with self.subTest(data=data):
                with self.assertRaises(InvalidRecordError):
                    ExamResultRecord.from_mapping(data)

    def test_grading_entry_from_mapping(self):
        entry = GradingScaleEntry.from_mapping({'from': '80', 'to': 100, 'grade': 'A', 'comment': 'Great'})
        self.assertEqual((entry.lower, entry.upper, entry.grade), (80.0, 100.0, 'A'))
        self.assertTrue(entry.covers(80))
        self.assertTrue(entry.covers(100))


class ResultAggregatorTests(SimpleTestCase):
    def test_summary(self):
        results = [record(1, 80), record(1, 60), record(2, 100)]
        summary = aggregate_results(results)
        self.assertEqual(summary.by_subject, {1: 70.0, 2: 100.0})
        self.assertEqual(summary.overall_average, 80.0)
        self.assertEqual(summary.highest, 100.0)
        self.assertEqual(summary.lowest, 60.0)
        self.assertEqual(summary.count, 3)

    def test_overall_average_weights_each_result(self):
        results = [record(1, 80), record(1, 60), record(2, 100)]
        summary = aggregate_results(results)
        subject_mean = sum(summary.by_subject.values()) / len(summary.by_subject)
        self.assertEqual(subject_mean, 85.0)
        self.assertNotEqual(summary.overall_average, subject_mean)

    def test_percentages_compare_across_totals(self):
        summary = aggregate_results([record(1, 45, total=50), record(1, 18, total=20)])
        self.assertEqual(summary.overall_average, 90.0)

    def test_empty(self):
        summary = aggregate_results([])
        self.assertEqual(summary, ResultSummary())
        self.assertEqual(summary.as_dict(), {
            'by_subject': {}, 'overall_average': 0.0, 'highest': 0.0, 'lowest': 0.0, 'count': 0,
        })

    def test_does_not_mutate_input(self):
        results = [record(1, 50), record(2, 70)]
        before = list(results)
        aggregate_results(results)
        self.assertEqual(results, before)

    def test_as_dict_rounds(self):
        summary = aggregate_results([record(1, 2, total=3)])
        self.assertEqual(summary.as_dict()['overall_average'], 66.67)

    def test_group_by_exam_type(self):
        grouped = results_by_exam_type([record(1, 50, exam_type='MID'), record(1, 60), record(2, 70, exam_type='MID')])
        self.assertEqual(list(grouped), ['MID', 'END'])
        self.assertEqual([r.marks_obtained for r in grouped['MID']], [50, 70])

    def test_trend_remark(self):
        self.assertEqual(trend_remark(0, 50), 'Good')
        self.assertEqual(trend_remark(None, 50), 'Good')
        self.assertEqual(trend_remark(50, 60), 'Improved')
        self.assertEqual(trend_remark(60, 50), 'Needs improvement')
        self.assertEqual(trend_remark(50, 50), 'Consistent')


class ReportCardComposerTests(SimpleTestCase):
    student = {'id': 1, 'name': 'Amina Okello'}
    term = {'id': 5, 'term_name': 'Term 1', 'year': 2024}

    def test_missing_student_or_term(self):
        with self.assertRaises(MissingDataError):
            compose(None, None, self.term, [])
        with self.assertRaises(MissingDataError):
            compose({'name': 'No id'}, None, self.term, [])
        with self.assertRaises(MissingDataError):
            compose(self.student, None, None, [])

    def test_unknown_layout(self):
        with self.assertRaises(ValueError):
            compose(self.student, None, self.term, [], layout='end-only')

    def test_empty_card(self):
        card = compose(self.student, None, self.term, [])
        self.assertEqual(card.subjects, [])
        self.assertEqual(card.layout, ReportLayout.MID_END)
        empty = {'marks_obtained': 0, 'average': 0.0, 'grade': None, 'subjects_counted': 0}
        self.assertEqual(card.performance, {'mid_term': empty, 'end_term': empty})
        self.assertEqual(card.comments, {
            'class_teacher': 'No comment available',
            'head_teacher': 'No comment available',
        })
        self.assertEqual(card.conduct['discipline'], 'Good')
        self.assertEqual(card.conduct['attendance_remarks'], 'Regular')
        self.assertEqual(card.conduct['attendance_percentage'], 0.0)
        self.assertEqual(card.school, {'id': None, 'name': ''})
        self.assertEqual(card.term['name'], 'Term 1')
        self.assertEqual(len(card.grading_scale), 7)

    def test_full_card(self):
        results = [
            record(1, 60, exam_type=ExamType.MID, subject_name='Mathematics'),
            record(1, 75, exam_type=ExamType.END, subject_name='Mathematics'),
            record(2, 45, total=50, exam_type=ExamType.END, subject_name='English'),
        ]
        subjects = [
            {'id': 1, 'name': 'Mathematics', 'teacher_name': 'Jane Doe'},
            {'id': 2, 'name': 'English'},
            {'id': 3, 'name': 'Art'},
        ]
        attendance = [
            AttendanceEntry(1, date(2024, 2, 1), 'present'),
            AttendanceEntry(1, date(2024, 2, 2), 'present'),
            AttendanceEntry(1, date(2024, 2, 3), 'absent'),
            AttendanceEntry(1, date(2024, 2, 4), 'late'),
        ]
        card = compose(
            self.student, {'id': 9, 'name': 'Hill School'}, self.term, results,
            conduct={'discipline': 'Excellent', 'smartness': ''},
            comments={'class_teacher': [RemarkBand(80, 100, 'Excellent term')]},
            subjects=subjects,
            attendance=attendance,
        )

        maths, english, art = card.subjects
        self.assertEqual(maths['mid_term'], {'marks': 60, 'total_marks': 100, 'percentage': 60.0, 'grade': 'B'})
        self.assertEqual(maths['end_term']['grade'], 'B+')
        self.assertEqual(maths['teacher_comment'], 'Improved')
        self.assertEqual(maths['teacher_initials'], 'J.D')
        self.assertIsNone(english['mid_term'])
        self.assertEqual(english['end_term']['percentage'], 90.0)
        self.assertEqual(english['end_term']['grade'], 'A+')
        self.assertEqual(english['teacher_comment'], 'Good')
        self.assertIsNone(art['mid_term'])
        self.assertIsNone(art['end_term'])
        self.assertEqual(art['teacher_initials'], 'N/A')
        self.assertEqual([maths['full_marks'], english['full_marks'], art['full_marks']], [100, 50, 100])

        self.assertEqual(card.performance['end_term'], {
            'marks_obtained': 120, 'average': 82.5, 'grade': 'A', 'subjects_counted': 2,
        })
        self.assertEqual(card.performance['mid_term']['average'], 60.0)
        self.assertEqual(card.comments['class_teacher'], 'Excellent term')
        self.assertEqual(card.comments['head_teacher'], 'No comment available')
        self.assertEqual(card.conduct['discipline'], 'Excellent')
        self.assertEqual(card.conduct['smartness'], 'Good')
        self.assertEqual(card.conduct['attendance_percentage'], 50.0)

    def test_bot_mid_layout(self):
        results = [record(1, 40, exam_type=ExamType.BOT), record(1, 30, exam_type=ExamType.MID)]
        card = compose(self.student, None, self.term, results, layout=ReportLayout.BOT_MID)
        row = card.subjects[0]
        self.assertEqual(set(card.performance), {'bot_term', 'mid_term'})
        self.assertEqual(row['bot_term']['grade'], 'D')
        self.assertEqual(row['teacher_comment'], 'Needs improvement')

    def test_scale_gap_leaves_cell_ungraded(self):
        scale = [GradingScaleEntry(0, 49, 'F'), GradingScaleEntry(50, 100, 'P')]
        with self.assertLogs('results.grading', level='WARNING'):
            card = compose(self.student, None, self.term, [record(1, 49.5)], grading_scale=scale)
        self.assertIsNone(card.subjects[0]['end_term']['grade'])
        self.assertEqual(card.grading_scale[0], {'from': 0, 'to': 49, 'grade': 'F', 'comment': ''})

    def test_compose_class(self):
        students = [{'id': 1, 'name': 'A'}, {'id': 2, 'name': 'B'}]
        cards = compose_class(students, None, self.term, {1: [record(1, 70)]})
        self.assertEqual(len(cards), 2)
        self.assertEqual(len(cards[0].subjects), 1)
        self.assertEqual(cards[1].subjects, [])
        self.assertEqual(cards[1].as_dict()['student'], {'id': 2, 'name': 'B'})


class ResultsAPITestCase(APITestCase):
    def setUp(self):
        self.school = School.objects.create(name='Hill School')
        self.admin = User.objects.create_user(username='admin', password='pass')
        Profile.objects.create(user=self.admin, school=self.school, role='admin')
        self.client.force_authenticate(user=self.admin)

        self.classroom = ClassRoom.objects.create(school=self.school, name='P.5')
        self.maths = Subject.objects.create(school=self.school, name='Mathematics')
        self.english = Subject.objects.create(school=self.school, name='English')
        self.term = Term.objects.create(school=self.school, term_name='Term 1', year=2024, status=ACTIVE)
        self.student = self.make_student('amina', 'Amina')
        self.exam = Examination.objects.create(
            school=self.school, term=self.term, name='End of Term 1', exam_type=ExamType.END,
            classroom=self.classroom, exam_date=date(2024, 4, 10),
        )

    def make_student(self, username, first_name):
        user = User.objects.create_user(username=username, password='pass', first_name=first_name)
        return StudentProfile.objects.create(user=user, school=self.school, classroom=self.classroom)

    def bulk(self, rows):
        url = f'/api/results/examinations/{self.exam.id}/bulk_results/'
        return self.client.post(url, {'results': rows}, format='json')

    def test_bulk_results_upsert(self):
        response = self.bulk([
            {'student_id': self.student.id, 'subject_id': self.maths.id, 'marks_obtained': 85},
            {'student_id': self.student.id, 'subject_id': self.english.id, 'marks_obtained': 120},
            {'student_id': 99999, 'subject_id': self.maths.id, 'marks_obtained': 10},
            {'student_id': self.student.id, 'marks_obtained': 10},
        ])
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['created'], 1)
        self.assertEqual(len(response.data['errors']), 3)

        result = Result.objects.get(student=self.student, subject=self.maths)
        self.assertEqual(result.grade, 'A')

        response = self.bulk([{'student_id': self.student.id, 'subject_id': self.maths.id, 'marks_obtained': 92}])
        self.assertEqual(response.data['updated'], 1)
        self.assertEqual(Result.objects.filter(student=self.student, subject=self.maths).count(), 1)
        result.refresh_from_db()
        self.assertEqual(result.grade, 'A+')
        self.assertTrue(result.is_passed)

        overall = StudentOverallResult.objects.get(examination=self.exam, student=self.student)
        self.assertEqual(overall.rank, 1)
        self.assertEqual(float(overall.percentage), 92.0)

    def test_result_marks_cannot_exceed_total(self):
        response = self.client.post('/api/results/results/', {
            'examination': self.exam.id, 'student': self.student.id,
            'subject': self.maths.id, 'marks_obtained': 101,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_summary(self):
        self.bulk([
            {'student_id': self.student.id, 'subject_id': self.maths.id, 'marks_obtained': 80},
            {'student_id': self.student.id, 'subject_id': self.english.id, 'marks_obtained': 60},
        ])
        response = self.client.get('/api/results/results/summary/', {'student': self.student.id, 'term': self.term.id})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['overall_average'], 70.0)
        self.assertEqual(response.data['count'], 2)
        self.assertEqual(response.data['grade'], 'B+')
        self.assertEqual(response.data['by_exam_type'], {'END': 70.0})

    def test_grading_overlap_rejected(self):
        url = '/api/results/gradings/'
        response = self.client.post(url, {'school': self.school.id, 'from': 0, 'to': 49, 'grade': 'F'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

        response = self.client.post(url, {'school': self.school.id, 'from': 40, 'to': 60, 'grade': 'D'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.client.post(url, {'school': self.school.id, 'from': 80, 'to': 70, 'grade': 'A'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(Grading.objects.filter(school=self.school).count(), 1)

    def test_grading_coverage(self):
        Grading.objects.create(school=self.school, from_percentage=0, to_percentage=49, grade='F')
        response = self.client.get('/api/results/gradings/coverage/', {'school': self.school.id})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(response.data['uses_default'])
        self.assertEqual(response.data['gaps'], [{'from': 49.0, 'to': 100}])

    def test_coverage_reports_gap_left_between_ranges(self):
        Grading.objects.create(school=self.school, from_percentage=0, to_percentage=39, grade='F')
        Grading.objects.create(school=self.school, from_percentage=40, to_percentage=100, grade='P')
        response = self.client.get('/api/results/gradings/coverage/', {'school': self.school.id})
        self.assertEqual(response.data['gaps'], [{'from': 39, 'to': 40}])

        self.bulk([{'student_id': self.student.id, 'subject_id': self.maths.id, 'marks_obtained': 79, 'total_marks': 200}])
        result = Result.objects.get(student=self.student, subject=self.maths)
        self.assertEqual(result.percentage, Decimal('39.50'))
        self.assertEqual(result.grade, '')

    def test_scale_change_regrades_results(self):
        self.bulk([{'student_id': self.student.id, 'subject_id': self.maths.id, 'marks_obtained': 85}])
        Grading.objects.create(school=self.school, from_percentage=0, to_percentage=100, grade='X')
        self.assertEqual(Result.objects.get(student=self.student).grade, 'X')

    def test_teacher_cannot_edit_grading(self):
        teacher = User.objects.create_user(username='teacher', password='pass')
        Profile.objects.create(user=teacher, school=self.school, role='teacher')
        self.client.force_authenticate(user=teacher)
        response = self.client.post('/api/results/gradings/', {'school': self.school.id, 'from': 0, 'to': 100, 'grade': 'P'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_student_report_card(self):
        teacher = User.objects.create_user(username='jdoe', first_name='Jane', last_name='Doe')
        TeacherAssignment.objects.create(teacher=teacher, subject=self.maths, classroom=self.classroom)
        self.bulk([{'student_id': self.student.id, 'subject_id': self.maths.id, 'marks_obtained': 90}])

        url = f'/api/results/report-cards/student/{self.student.id}/'
        response = self.client.get(url, {'term': self.term.id, 'type': 'mid-end'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['school']['name'], 'Hill School')
        self.assertEqual(response.data['term']['id'], self.term.id)
        row = response.data['subjects'][0]
        self.assertEqual(row['name'], 'Mathematics')
        self.assertEqual(row['teacher_initials'], 'J.D')
        self.assertEqual(row['end_term']['grade'], 'A+')
        self.assertIsNone(row['mid_term'])

    def test_report_card_errors(self):
        url = f'/api/results/report-cards/student/{self.student.id}/'
        self.assertEqual(self.client.get('/api/results/report-cards/student/99999/').status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(self.client.get(url, {'term': 99999}).status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(self.client.get(url, {'type': 'bogus'}).status_code, status.HTTP_400_BAD_REQUEST)

        other = School.objects.create(name='No Terms')
        student = StudentProfile.objects.create(user=User.objects.create_user(username='lone'), school=other)
        response = self.client.get(f'/api/results/report-cards/student/{student.id}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_class_report_cards(self):
        self.make_student('brian', 'Brian')
        self.bulk([{'student_id': self.student.id, 'subject_id': self.maths.id, 'marks_obtained': 70}])

        response = self.client.get(f'/api/results/report-cards/class/{self.classroom.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 2)
        self.assertEqual(len(response.data['report_cards']), 2)
