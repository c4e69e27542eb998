import threading
import time

import pytest
from django.contrib.auth import get_user_model
from django.db import connection

from attendance.models import Attendance, AttendanceRecord
from attendance.services import create_attendance
from backend.exceptions import CapacityExceeded, Conflict, NotFound, TransientError, ValidationError
from grades.models import Grade
from .models import ClassRoom, Enrollment, StudentProfile, TeacherProfile
from .serializers import ClassRoomSerializer
from . import profiles, services

User = get_user_model()

pytestmark = pytest.mark.django_db


def classroom_ids(student):
    return set(StudentProfile.objects.get(pk=student.pk).classrooms.values_list('id', flat=True))


def student_ids(classroom):
    return set(ClassRoom.objects.get(pk=classroom.pk).students.values_list('id', flat=True))


def assert_consistent(students, classrooms):
    for student in students:
        for classroom in classrooms:
            assert (classroom.pk in classroom_ids(student)) == (student.pk in student_ids(classroom))


class TestEnrollment:
    def test_enroll_is_visible_from_both_sides(self, student, classroom):
        returned_student, returned_classroom = services.enroll(student.pk, classroom.pk)

        assert classroom.pk in classroom_ids(student)
        assert student.pk in student_ids(classroom)
        assert list(returned_classroom.students.all()) == [returned_student]

    def test_double_enroll_conflicts_and_leaves_state_unchanged(self, student, classroom):
        services.enroll(student.pk, classroom.pk)

        with pytest.raises(Conflict):
            services.enroll(student.pk, classroom.pk)

        assert Enrollment.objects.filter(student=student, classroom=classroom).count() == 1
        assert student_ids(classroom) == {student.pk}

    def test_capacity_one_scenario(self, make_student, make_classroom):
        classroom = make_classroom(max_capacity=1)
        first, second = make_student(), make_student()

        services.enroll(first.pk, classroom.pk)
        with pytest.raises(CapacityExceeded):
            services.enroll(second.pk, classroom.pk)

        assert student_ids(classroom) == {first.pk}
        assert classroom_ids(second) == set()

    def test_capacity_frees_up_after_withdraw(self, make_student, make_classroom):
        classroom = make_classroom(max_capacity=1)
        first, second = make_student(), make_student()

        services.enroll(first.pk, classroom.pk)
        services.withdraw(first.pk, classroom.pk)
        services.enroll(second.pk, classroom.pk)

        assert student_ids(classroom) == {second.pk}

    def test_capacity_never_exceeded_over_a_sequence(self, make_student, make_classroom):
        classroom = make_classroom(max_capacity=2)
        students = [make_student() for _ in range(4)]

        for student in students:
            try:
                services.enroll(student.pk, classroom.pk)
            except CapacityExceeded:
                pass
            assert classroom.enrollments.count() <= 2
        services.withdraw(students[0].pk, classroom.pk)
        services.enroll(students[3].pk, classroom.pk)

        assert classroom.enrollments.count() == 2
        assert_consistent(students, [classroom])

    def test_no_capacity_means_unlimited(self, make_student, classroom):
        for _ in range(5):
            services.enroll(make_student().pk, classroom.pk)

        assert classroom.enrollments.count() == 5
        assert classroom.is_at_capacity() is False

    def test_is_at_capacity(self, make_classroom):
        classroom = make_classroom(max_capacity=3)

        assert classroom.is_at_capacity(2) is False
        assert classroom.is_at_capacity(3) is True

    def test_withdraw_when_not_enrolled_conflicts(self, student, classroom):
        with pytest.raises(Conflict):
            services.withdraw(student.pk, classroom.pk)

    def test_missing_entities_raise_not_found(self, student, classroom):
        with pytest.raises(NotFound):
            services.enroll(999999, classroom.pk)
        with pytest.raises(NotFound):
            services.enroll(student.pk, 999999)
        with pytest.raises(NotFound):
            services.withdraw(student.pk, 999999)

    def test_delete_classroom_detaches_everything(self, make_student, classroom, teacher):
        first, second = make_student(), make_student()
        services.enroll(first.pk, classroom.pk)
        services.enroll(second.pk, classroom.pk)
        Grade.objects.create(student=first, classroom=classroom, assignment_name='Quiz 1',
                             assignment_type='quiz', score=5, max_score=10)
        create_attendance(classroom.pk, '2024-03-01', records=[{'student': first.pk}])

        detached = services.delete_classroom(classroom.pk)

        assert detached == {'teacher': teacher.pk, 'students': [first.pk, second.pk]}
        assert not ClassRoom.objects.filter(pk=classroom.pk).exists()
        assert not teacher.classrooms.exists()
        assert classroom_ids(first) == set()
        assert classroom_ids(second) == set()
        assert not Grade.objects.exists()
        assert not Attendance.objects.exists()

    def test_delete_classroom_failure_rolls_back(self, student, classroom, monkeypatch):
        services.enroll(student.pk, classroom.pk)
        Grade.objects.create(student=student, classroom=classroom, assignment_name='Quiz 1',
                             assignment_type='quiz', score=5, max_score=10)
        create_attendance(classroom.pk, '2024-03-01', records=[{'student': student.pk}])

        def broken_delete(self, *args, **kwargs):
            raise RuntimeError('storage failure')

        monkeypatch.setattr(ClassRoom, 'delete', broken_delete)

        with pytest.raises(RuntimeError):
            services.delete_classroom(classroom.pk)

        assert student_ids(classroom) == {student.pk}
        assert classroom_ids(student) == {classroom.pk}
        assert Grade.objects.filter(classroom=classroom).count() == 1
        assert AttendanceRecord.objects.filter(attendance__classroom=classroom, student=student).exists()

    def test_update_classroom_capacity_checked_against_enrollment(self, make_student, classroom):
        services.enroll(make_student().pk, classroom.pk)
        services.enroll(make_student().pk, classroom.pk)

        with pytest.raises(ValidationError):
            services.update_classroom(classroom.pk, max_capacity=1)
        classroom.refresh_from_db()
        assert classroom.max_capacity is None

        updated = services.update_classroom(classroom.pk, max_capacity=2, name='Algebra II')
        assert (updated.max_capacity, updated.name) == (2, 'Algebra II')
        assert updated.is_at_capacity() is True

    def test_delete_missing_classroom(self):
        with pytest.raises(NotFound):
            services.delete_classroom(424242)

    def test_student_and_teacher_classrooms(self, student, teacher, make_classroom):
        older = make_classroom(name='Geometry', year=2023)
        newer = make_classroom(name='Calculus', year=2025)
        services.enroll(student.pk, older.pk)
        services.enroll(student.pk, newer.pk)

        assert list(services.student_classrooms(student.pk)) == [newer, older]
        assert list(services.teacher_classrooms(teacher.pk)) == [newer, older]


@pytest.mark.django_db(transaction=True)
def test_concurrent_enrolls_for_the_last_seat(make_student, make_classroom):
    classroom = make_classroom(max_capacity=2)
    services.enroll(make_student().pk, classroom.pk)
    racers = [make_student(), make_student()]
    barrier = threading.Barrier(len(racers), timeout=10)
    outcomes = []

    def attempt(student):
        try:
            barrier.wait()
            # A storage-level conflict is reported as TransientError and is safe to retry
            for _ in range(100):
                try:
                    services.enroll(student.pk, classroom.pk)
                except TransientError:
                    time.sleep(0.01)
                    continue
                except CapacityExceeded:
                    outcomes.append('full')
                else:
                    outcomes.append('enrolled')
                break
        finally:
            connection.close()

    threads = [threading.Thread(target=attempt, args=(s,)) for s in racers]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert sorted(outcomes) == ['enrolled', 'full']
    assert Enrollment.objects.filter(classroom=classroom).count() == 2


class TestProfiles:
    def test_create_student_profile_sets_role(self, make_user):
        user = make_user(User.ROLE_TEACHER)

        student = profiles.create_student_profile(
            user.pk, student_id='S-900', grade='10', guardian_name='G', guardian_email='g@example.com',
            guardian_phone='555',
        )

        user.refresh_from_db()
        assert student.user == user
        assert user.role == User.ROLE_STUDENT

    def test_duplicate_student_profile_conflicts(self, student):
        with pytest.raises(Conflict):
            profiles.create_student_profile(
                student.user.pk, student_id='S-901', grade='10', guardian_name='G',
                guardian_email='g@example.com', guardian_phone='555',
            )

    def test_create_profile_for_missing_user(self):
        with pytest.raises(NotFound):
            profiles.create_teacher_profile(31337, teacher_id='T-404')

    def test_create_teacher_profile_dedupes_subjects(self, make_user):
        user = make_user()

        teacher = profiles.create_teacher_profile(user.pk, teacher_id='T-100', subjects=['Art', 'Music', 'Art'])

        user.refresh_from_db()
        assert teacher.subjects == ['Art', 'Music']
        assert user.role == User.ROLE_TEACHER

    def test_delete_teacher_with_classrooms_conflicts(self, teacher, classroom):
        with pytest.raises(Conflict):
            profiles.delete_teacher_profile(teacher.pk)
        assert TeacherProfile.objects.filter(pk=teacher.pk).exists()

    def test_delete_teacher_resets_role(self, teacher):
        user = teacher.user

        profiles.delete_teacher_profile(teacher.pk)

        user.refresh_from_db()
        assert not TeacherProfile.objects.filter(pk=teacher.pk).exists()
        assert user.role == User.ROLE_STUDENT

    def test_delete_enrolled_student_conflicts(self, student, classroom):
        services.enroll(student.pk, classroom.pk)

        with pytest.raises(Conflict):
            profiles.delete_student_profile(student.pk)
        assert StudentProfile.objects.filter(pk=student.pk).exists()

    def test_delete_student_cascades_grades_and_attendance(self, make_student, classroom):
        leaving, staying = make_student(), make_student()
        services.enroll(leaving.pk, classroom.pk)
        services.enroll(staying.pk, classroom.pk)
        Grade.objects.create(student=leaving, classroom=classroom, assignment_name='Quiz 1',
                             assignment_type='quiz', score=7, max_score=10)
        Grade.objects.create(student=staying, classroom=classroom, assignment_name='Quiz 1',
                             assignment_type='quiz', score=9, max_score=10)
        shared = create_attendance(classroom.pk, '2024-03-01', records=[{'student': leaving}, {'student': staying}])
        solo = create_attendance(classroom.pk, '2024-03-02', records=[{'student': leaving}])
        services.withdraw(leaving.pk, classroom.pk)

        profiles.delete_student_profile(leaving.pk)

        assert not StudentProfile.objects.filter(pk=leaving.pk).exists()
        assert not Grade.objects.filter(student_id=leaving.pk).exists()
        assert Grade.objects.filter(student=staying).count() == 1
        assert not AttendanceRecord.objects.filter(student_id=leaving.pk).exists()
        assert list(shared.records.values_list('student_id', flat=True)) == [staying.pk]
        assert not Attendance.objects.filter(pk=solo.pk).exists()

    def test_delete_student_failure_rolls_back(self, make_student, classroom, monkeypatch):
        leaving, staying = make_student(), make_student()
        Grade.objects.create(student=leaving, classroom=classroom, assignment_name='Quiz 1',
                             assignment_type='quiz', score=7, max_score=10)
        create_attendance(classroom.pk, '2024-03-01', records=[{'student': leaving}, {'student': staying}])
        solo = create_attendance(classroom.pk, '2024-03-02', records=[{'student': leaving}])

        def broken_delete(self, *args, **kwargs):
            raise RuntimeError('storage failure')

        # Fails after grades and sub-records have already been removed
        monkeypatch.setattr(StudentProfile, 'delete', broken_delete)

        with pytest.raises(RuntimeError):
            profiles.delete_student_profile(leaving.pk)

        assert StudentProfile.objects.filter(pk=leaving.pk).exists()
        assert Grade.objects.filter(student=leaving).count() == 1
        assert AttendanceRecord.objects.filter(student=leaving).count() == 2
        assert Attendance.objects.filter(pk=solo.pk).exists()

    def test_subjects_add_and_remove(self, teacher):
        profiles.add_subject(teacher.pk, 'Physics')
        with pytest.raises(Conflict):
            profiles.add_subject(teacher.pk, 'Physics')

        teacher = profiles.remove_subject(teacher.pk, 'Mathematics')
        assert teacher.subjects == ['Physics']
        with pytest.raises(Conflict):
            profiles.remove_subject(teacher.pk, 'Mathematics')

    def test_delete_user_goes_through_profile_guards(self, student, classroom):
        services.enroll(student.pk, classroom.pk)

        with pytest.raises(Conflict):
            profiles.delete_user(student.user.pk)
        assert User.objects.filter(pk=student.user.pk).exists()

        services.withdraw(student.pk, classroom.pk)
        profiles.delete_user(student.user.pk)
        assert not User.objects.filter(pk=student.user_id).exists()


class TestClassRoomAPI:
    def test_list_is_paginated_and_filterable(self, admin_api, make_classroom):
        make_classroom(name='Fall class', semester='Fall')
        make_classroom(name='Spring class', semester='Spring')

        response = admin_api.get('/api/academics/classrooms/', {'semester': 'Spring'})

        body = response.json()
        assert response.status_code == 200
        assert body['success'] is True
        assert [c['name'] for c in body['data']] == ['Spring class']
        assert body['pagination'] == {'page': 1, 'limit': 10, 'total': 1, 'pages': 1}

    def test_enroll_endpoint(self, teacher_api, student, classroom):
        response = teacher_api.post(f'/api/academics/classrooms/{classroom.pk}/enroll/', {'student': student.pk})

        body = response.json()
        assert response.status_code == 200
        assert body['success'] is True
        assert body['data']['classroom']['students'] == [student.pk]
        assert body['data']['student']['classrooms'] == [classroom.pk]

    def test_enroll_over_capacity(self, teacher_api, make_student, make_classroom):
        classroom = make_classroom(max_capacity=1)
        services.enroll(make_student().pk, classroom.pk)

        response = teacher_api.post(f'/api/academics/classrooms/{classroom.pk}/enroll/', {'student': make_student().pk})

        body = response.json()
        assert response.status_code == 409
        assert body == {
            'success': False,
            'error': {'code': 'capacity_exceeded', 'message': 'Classroom is at maximum capacity.'},
        }

    def test_enroll_twice_is_conflict(self, teacher_api, student, classroom):
        services.enroll(student.pk, classroom.pk)

        response = teacher_api.post(f'/api/academics/classrooms/{classroom.pk}/enroll/', {'student': student.pk})

        assert response.status_code == 409
        assert response.json()['error']['code'] == 'conflict'

    def test_enroll_requires_student(self, teacher_api, classroom):
        response = teacher_api.post(f'/api/academics/classrooms/{classroom.pk}/enroll/', {})

        assert response.status_code == 400
        assert response.json()['error'] == {
            'code': 'validation_error',
            'message': {'student': ['This field is required.']},
        }

    def test_students_are_read_only(self, student_api, classroom, student):
        response = student_api.post(f'/api/academics/classrooms/{classroom.pk}/enroll/', {'student': student.pk})

        assert response.status_code == 403
        assert response.json()['success'] is False

    def test_capacity_cannot_drop_below_enrollment(self, teacher_api, make_student, classroom):
        services.enroll(make_student().pk, classroom.pk)
        services.enroll(make_student().pk, classroom.pk)

        response = teacher_api.patch(f'/api/academics/classrooms/{classroom.pk}/', {'max_capacity': 1})

        assert response.status_code == 400
        assert 'max_capacity' in response.json()['error']['message']

    def test_capacity_change_sees_enrollment_made_after_validation(
        self, teacher_api, make_student, make_classroom, monkeypatch
    ):
        classroom = make_classroom(max_capacity=2)
        services.enroll(make_student().pk, classroom.pk)
        late = make_student()
        validate = ClassRoomSerializer.validate

        def validate_then_enroll(serializer, attrs):
            attrs = validate(serializer, attrs)
            services.enroll(late.pk, classroom.pk)
            return attrs

        monkeypatch.setattr(ClassRoomSerializer, 'validate', validate_then_enroll)

        response = teacher_api.patch(f'/api/academics/classrooms/{classroom.pk}/', {'max_capacity': 1})

        classroom.refresh_from_db()
        assert response.status_code == 400
        assert classroom.max_capacity == 2
        assert classroom.enrollments.count() == 2

    def test_delete_classroom_endpoint(self, admin_api, student, classroom, teacher):
        services.enroll(student.pk, classroom.pk)

        response = admin_api.delete(f'/api/academics/classrooms/{classroom.pk}/')

        assert response.status_code == 200
        assert response.json()['data'] == {'id': classroom.pk, 'teacher': teacher.pk, 'students': [student.pk]}

    def test_unauthenticated_requests_are_rejected(self, api_client, classroom):
        response = api_client.get('/api/academics/classrooms/')

        assert response.status_code == 401
        assert response.json()['error']['code'] == 'not_authenticated'


class TestProfileAPI:
    def test_create_student_profile(self, admin_api, make_user):
        user = make_user(User.ROLE_TEACHER)

        response = admin_api.post('/api/academics/students/', {
            'user_id': user.pk,
            'student_id': 'S-777',
            'grade': '11',
            'guardian_name': 'Gale Guardian',
            'guardian_email': 'gale@example.com',
            'guardian_phone': '555-0199',
        })

        assert response.status_code == 201
        assert response.json()['data']['user']['role'] == User.ROLE_STUDENT

    def test_only_admins_create_profiles(self, teacher_api, make_user):
        admin = make_user(User.ROLE_ADMIN)
        other = make_user(User.ROLE_TEACHER)

        response = teacher_api.post('/api/academics/teachers/', {'user_id': admin.pk, 'teacher_id': 'T-999'})
        assert response.status_code == 403

        response = teacher_api.post('/api/academics/students/', {
            'user_id': other.pk,
            'student_id': 'S-778',
            'grade': '11',
            'guardian_name': 'Gale Guardian',
            'guardian_email': 'gale@example.com',
            'guardian_phone': '555-0199',
        })
        assert response.status_code == 403

        admin.refresh_from_db()
        other.refresh_from_db()
        assert admin.role == User.ROLE_ADMIN
        assert other.role == User.ROLE_TEACHER
        assert not TeacherProfile.objects.filter(user=admin).exists()
        assert not StudentProfile.objects.filter(user=other).exists()

    def test_filter_students_by_grade(self, admin_api, make_student):
        make_student(grade='9')
        make_student(grade='12')

        response = admin_api.get('/api/academics/students/', {'grade': '12'})

        assert [s['grade'] for s in response.json()['data']] == ['12']

    def test_delete_enrolled_student_is_conflict(self, admin_api, student, classroom):
        services.enroll(student.pk, classroom.pk)

        response = admin_api.delete(f'/api/academics/students/{student.pk}/')

        assert response.status_code == 409

    def test_teacher_subject_endpoints(self, admin_api, teacher):
        response = admin_api.post(f'/api/academics/teachers/{teacher.pk}/subjects/', {'subject': 'Physics'})
        assert response.json()['data']['subjects'] == ['Mathematics', 'Physics']

        response = admin_api.delete(f'/api/academics/teachers/{teacher.pk}/subjects/', {'subject': 'Chemistry'})
        assert response.status_code == 409

    def test_student_grades_with_average(self, admin_api, student, classroom):
        services.enroll(student.pk, classroom.pk)
        Grade.objects.create(student=student, classroom=classroom, assignment_name='HW 1',
                             assignment_type='homework', score=8, max_score=10, weightage=2)
        Grade.objects.create(student=student, classroom=classroom, assignment_name='Test 1',
                             assignment_type='exam', score=18, max_score=20, weightage=1)

        response = admin_api.get(f'/api/academics/students/{student.pk}/grades/', {'classroom': classroom.pk})

        data = response.json()['data']
        assert data['average'] == 83.33
        assert len(data['grades']) == 2
