from datetime import timedelta

import pytest
from django.utils import timezone

from academics import services as enrollment
from .models import Grade
from . import services

pytestmark = pytest.mark.django_db


@pytest.fixture
def enrolled(student, classroom):
    enrollment.enroll(student.pk, classroom.pk)
    return student, classroom


def add_grade(student, classroom, **kwargs):
    data = {
        'assignment_name': 'Assignment',
        'assignment_type': 'homework',
        'score': 8,
        'max_score': 10,
    }
    data.update(kwargs)
    return Grade.objects.create(student=student, classroom=classroom, **data)


class TestStudentAverage:
    def test_weighted_average(self, enrolled):
        student, classroom = enrolled
        add_grade(student, classroom, score=8, max_score=10, weightage=2)
        add_grade(student, classroom, score=18, max_score=20, weightage=1, assignment_type='exam')

        assert services.student_average(student.pk, classroom.pk) == 83.33

    def test_no_grades_is_zero(self, enrolled):
        student, classroom = enrolled

        assert services.student_average(student.pk, classroom.pk) == 0

    def test_zero_total_weight_is_zero(self, enrolled):
        student, classroom = enrolled
        add_grade(student, classroom, weightage=0)

        assert services.student_average(student.pk, classroom.pk) == 0

    def test_other_classrooms_are_ignored(self, enrolled, make_classroom):
        student, classroom = enrolled
        other = make_classroom(name='Biology')
        enrollment.enroll(student.pk, other.pk)
        add_grade(student, classroom, score=10, max_score=10)
        add_grade(student, other, score=0, max_score=10)

        assert services.student_average(student.pk, classroom.pk) == 100


class TestClassroomStatistics:
    def test_empty_classroom(self, classroom):
        assert services.classroom_statistics(classroom.pk) == {
            'average_score': 0,
            'highest_score': 0,
            'lowest_score': 0,
            'assignment_count': 0,
            'assignment_types': {},
        }

    def test_statistics_are_unweighted(self, enrolled, make_student):
        student, classroom = enrolled
        other = make_student()
        enrollment.enroll(other.pk, classroom.pk)
        add_grade(student, classroom, score=8, max_score=10, weightage=2)
        add_grade(other, classroom, score=18, max_score=20, weightage=1, assignment_type='exam')
        add_grade(other, classroom, score=7, max_score=10, weightage=5)

        stats = services.classroom_statistics(classroom.pk)

        assert stats == {
            'average_score': 80.0,
            'highest_score': 90.0,
            'lowest_score': 70.0,
            'assignment_count': 3,
            'assignment_types': {'homework': 2, 'exam': 1},
        }


class TestGradeModel:
    def test_late_flag_follows_dates(self, enrolled):
        student, classroom = enrolled
        due = timezone.now()
        grade = add_grade(student, classroom, due_date=due, submission_date=due + timedelta(hours=1))
        assert grade.late_submission is True

        grade.due_date = due + timedelta(days=1)
        grade.save()
        grade.refresh_from_db()
        assert grade.late_submission is False

    def test_no_due_date_is_never_late(self, enrolled):
        student, classroom = enrolled

        assert add_grade(student, classroom).late_submission is False

    def test_percentage(self, enrolled):
        student, classroom = enrolled

        assert add_grade(student, classroom, score=17, max_score=20).percentage == 85.0


class TestGradeAPI:
    def test_create_grade_for_enrolled_student(self, teacher_api, teacher, enrolled):
        student, classroom = enrolled
        due = timezone.now() - timedelta(days=1)

        response = teacher_api.post('/api/grades/', {
            'student': student.pk,
            'classroom': classroom.pk,
            'assignment_name': 'Essay',
            'assignment_type': 'project',
            'score': 45,
            'max_score': 50,
            'due_date': due.isoformat(),
        })

        data = response.json()['data']
        assert response.status_code == 201
        assert data['graded_by'] == teacher.user.pk
        assert data['late_submission'] is True
        assert data['percentage'] == 90.0

    def test_grade_requires_enrollment(self, teacher_api, student, classroom):
        response = teacher_api.post('/api/grades/', {
            'student': student.pk,
            'classroom': classroom.pk,
            'assignment_name': 'Essay',
            'assignment_type': 'project',
            'score': 45,
            'max_score': 50,
        })

        assert response.status_code == 400
        assert 'student' in response.json()['error']['message']

    def test_average_endpoint(self, student_api, enrolled):
        student, classroom = enrolled
        add_grade(student, classroom, score=8, max_score=10, weightage=2)
        add_grade(student, classroom, score=18, max_score=20, weightage=1)

        response = student_api.get('/api/grades/average/', {'student': student.pk, 'classroom': classroom.pk})

        assert response.json() == {
            'success': True,
            'data': {'student': student.pk, 'classroom': classroom.pk, 'average': 83.33},
        }

    def test_statistics_endpoint_requires_classroom(self, student_api):
        response = student_api.get('/api/grades/statistics/')

        assert response.status_code == 400
        assert response.json()['error']['message'] == {'classroom': ['This query parameter is required.']}

    def test_statistics_endpoint(self, student_api, classroom):
        response = student_api.get('/api/grades/statistics/', {'classroom': classroom.pk})

        assert response.json()['data']['assignment_count'] == 0

    def test_export_csv(self, admin_api, enrolled):
        student, classroom = enrolled
        add_grade(student, classroom, assignment_name='Quiz 7', assignment_type='quiz')

        response = admin_api.get('/api/grades/export_csv/')

        assert response.status_code == 200
        assert response['Content-Type'].startswith('text/csv')
        assert b'Quiz 7' in response.content
